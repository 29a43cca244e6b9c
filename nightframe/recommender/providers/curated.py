from dataclasses import dataclass
import json
import logging
from pathlib import Path

from .base import CatalogProvider
from nightframe.recommender.astro import parse_dec_dms, parse_ra_hms
from nightframe.recommender.types import Target

logger = logging.getLogger(__name__)


@dataclass
class CuratedCatalogProvider(CatalogProvider):
    name: str = "curated"
    catalog_path: Path | None = None

    def _resolve_path(self) -> Path:
        if self.catalog_path is not None:
            return self.catalog_path
        package_root = Path(__file__).resolve().parents[2]
        return package_root / "data" / "targets.json"

    def list_targets(self) -> list[Target]:
        path = self._resolve_path()
        if not path.exists():
            raise FileNotFoundError(f"Curated catalog not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        targets: list[Target] = []
        for idx, row in enumerate(rows):
            target = _target_from_row(row)
            if target is None:
                logger.warning("Skipping curated entry %d in %s: missing or invalid fields", idx, path)
                continue
            targets.append(target)
        return targets


def _target_from_row(row: dict) -> Target | None:
    target_id = _parse_optional(row.get("id"))
    name = _parse_optional(row.get("name")) or target_id
    ra_hms = _parse_optional(row.get("ra_hms"))
    dec_dms = _parse_optional(row.get("dec_dms"))
    size = row.get("size_deg")
    if not name or not ra_hms or not dec_dms or not isinstance(size, (int, float)):
        return None
    ra = parse_ra_hms(ra_hms)
    dec = parse_dec_dms(dec_dms)
    if not ra.ok or not dec.ok:
        logger.debug("Curated entry %s has malformed coordinates (%s, %s)", name, ra_hms, dec_dms)
    try:
        months = tuple(m for m in (int(v) for v in row.get("best_months") or ()) if 1 <= m <= 12)
    except (TypeError, ValueError):
        return None
    return Target(
        id=target_id or name,
        name=name,
        type=_parse_optional(row.get("type")) or "Object",
        size_deg=float(size),
        ra_hours=ra.value,
        dec_deg=dec.value,
        ra_hms=ra_hms,
        dec_dms=dec_dms,
        best_months=months,
        image_url=_parse_optional(row.get("image_url")),
        description=_parse_optional(row.get("description")),
        mag=row.get("mag"),
        source="curated",
    )


def _parse_optional(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
