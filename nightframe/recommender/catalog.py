import datetime
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from nightframe.errors import UpstreamFetchError

from .providers.openngc import OpenNgcProvider, SkippedRow
from .types import Target

logger = logging.getLogger(__name__)

DEFAULT_TTL = datetime.timedelta(hours=24)
DEFAULT_RETRY_AFTER = datetime.timedelta(minutes=5)
DEFAULT_WAIT_TIMEOUT_S = 15.0

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_key(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def target_key(target: Target) -> str:
    return normalize_key(target.id or target.name)


def merge_catalogs(curated: Iterable[Target], dynamic: Iterable[Target]) -> list[Target]:
    """Merge two target lists, de-duplicating by normalized identity.

    Dynamic entries are inserted first and curated entries overlaid afterwards,
    so a curated target always replaces a dynamic one with the same key. The
    replaced entry keeps its position in the result.
    """
    by_key: dict[str, Target] = {}
    for target in dynamic:
        key = target_key(target)
        if key and key not in by_key:
            by_key[key] = target
    for target in curated:
        key = target_key(target)
        if not key:
            continue
        existing = by_key.get(key)
        if existing is None or existing.source != "curated":
            by_key[key] = target
    return list(by_key.values())


def filter_dynamic(targets: Iterable[Target], max_mag: float, max_items: int) -> list[Target]:
    selected: list[Target] = []
    for target in targets:
        if len(selected) >= max_items:
            break
        if target.mag is not None and target.mag > max_mag:
            continue
        selected.append(target)
    return selected


@dataclass(frozen=True)
class CatalogSnapshot:
    targets: tuple[Target, ...] = ()
    fetched_at: datetime.datetime | None = None
    skipped: tuple[SkippedRow, ...] = ()
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "stale" if self.targets else "error"
        if self.fetched_at is None:
            return "empty"
        return "ok"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class DynamicCatalogCache:
    """Process-wide snapshot of the remote catalog.

    Readers always get a fully built, immutable :class:`CatalogSnapshot`. A
    refresh builds the replacement off to the side and swaps the reference under
    the lock, so at most one fetch runs at a time. While a refresh is in flight
    other callers keep getting the previous snapshot, except before the first
    successful fetch, when they wait for it up to ``wait_timeout`` seconds and
    then get the empty snapshot.
    """

    def __init__(
        self,
        provider: OpenNgcProvider,
        ttl: datetime.timedelta = DEFAULT_TTL,
        retry_after: datetime.timedelta = DEFAULT_RETRY_AFTER,
        clock: Callable[[], datetime.datetime] = _utcnow,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT_S,
    ) -> None:
        self._provider = provider
        self._ttl = ttl
        self._retry_after = retry_after
        self._clock = clock
        self._wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._snapshot = CatalogSnapshot()
        self._expires_at: datetime.datetime | None = None

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def get_or_refresh(self, now: datetime.datetime | None = None) -> CatalogSnapshot:
        now = now or self._clock()
        if self._is_fresh(now):
            return self._snapshot
        if self._snapshot.fetched_at is None:
            acquired = self._lock.acquire(timeout=self._wait_timeout)
        else:
            acquired = self._lock.acquire(blocking=False)
        if not acquired:
            return self._snapshot
        try:
            if self._is_fresh(now):
                return self._snapshot
            self._snapshot, self._expires_at = self._refresh(now)
            return self._snapshot
        finally:
            self._lock.release()

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = CatalogSnapshot()
            self._expires_at = None

    def _is_fresh(self, now: datetime.datetime) -> bool:
        expires_at = self._expires_at
        return expires_at is not None and now < expires_at

    def _refresh(self, now: datetime.datetime) -> tuple[CatalogSnapshot, datetime.datetime]:
        try:
            result = self._provider.fetch()
        except UpstreamFetchError as e:
            logger.warning("Dynamic catalog refresh failed, using curated targets only: %s", e)
            previous = self._snapshot
            failed = CatalogSnapshot(
                targets=previous.targets,
                fetched_at=previous.fetched_at,
                skipped=previous.skipped,
                error=str(e),
            )
            return failed, now + self._retry_after
        snapshot = CatalogSnapshot(
            targets=tuple(result.targets),
            fetched_at=now,
            skipped=tuple(result.skipped),
        )
        logger.info("Dynamic catalog refreshed: %d targets", len(snapshot.targets))
        return snapshot, now + self._ttl


_shared_caches: dict[str, DynamicCatalogCache] = {}
_shared_lock = threading.Lock()


def shared_cache(
    provider: OpenNgcProvider,
    ttl: datetime.timedelta = DEFAULT_TTL,
    retry_after: datetime.timedelta = DEFAULT_RETRY_AFTER,
) -> DynamicCatalogCache:
    """Return the process-wide cache for ``provider.source``, creating it once."""
    with _shared_lock:
        cache = _shared_caches.get(provider.source)
        if cache is None:
            cache = DynamicCatalogCache(
                provider,
                ttl=ttl,
                retry_after=retry_after,
                wait_timeout=provider.timeout_s,
            )
            _shared_caches[provider.source] = cache
        return cache
