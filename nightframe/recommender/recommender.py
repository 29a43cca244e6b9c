import datetime
import logging
import time

from .capture import suggest_capture
from .catalog import (
    DynamicCatalogCache,
    filter_dynamic,
    merge_catalogs,
    shared_cache,
)
from .ephemeris import EphemerisProvider, LowPrecisionEphemeris
from .framing import field_of_view, fill_ratio, framing_score
from .providers import CuratedCatalogProvider, get_catalog_providers
from .scoring import (
    ScoringWeights,
    clamp_limit,
    final_score,
    local_month,
    rank,
    seasonal_factor,
    visibility_score,
)
from .types import (
    EquipmentProfile,
    MountCapability,
    ObserverContext,
    RecommendationMetrics,
    RecommendationRequest,
    RecommendationResult,
    ScoredTarget,
    Target,
)
from .visibility import VisibilitySampler, can_reach

logger = logging.getLogger(__name__)

LOW_FRAMING_THRESHOLD = 0.15
FILTERED_EXAMPLES = 3
TIME_BASIS = "local_from_longitude"


class Recommender:
    def __init__(
        self,
        config,
        ephemeris: EphemerisProvider | None = None,
        curated: CuratedCatalogProvider | None = None,
        dynamic_cache: DynamicCatalogCache | None = None,
        weights: ScoringWeights | None = None,
    ):
        self._config = config
        self._ephemeris = ephemeris or LowPrecisionEphemeris()
        default_curated, dynamic_provider = get_catalog_providers(config)
        self._curated = curated or default_curated
        if dynamic_cache is None and dynamic_provider is not None:
            dynamic_cache = shared_cache(
                dynamic_provider,
                ttl=datetime.timedelta(hours=config.catalog_ttl_hours),
                retry_after=datetime.timedelta(seconds=config.catalog_retry_after_s),
            )
        self._dynamic_cache = dynamic_cache
        self._weights = weights or ScoringWeights.from_overrides(config.scoring_overrides)
        self._curated_targets: list[Target] | None = None

    def default_request(
        self,
        observer: ObserverContext,
        equipment: EquipmentProfile,
    ) -> RecommendationRequest:
        return RecommendationRequest(
            observer=observer,
            equipment=equipment,
            mount=MountCapability.parse(self._config.default_mount),
            min_alt_deg=self._config.default_min_alt_deg,
            max_mag=self._config.default_max_mag,
            limit=self._config.default_limit,
            openngc_max=self._config.default_openngc_max,
        )

    def recommend(self, request: RecommendationRequest, offline: bool = False) -> RecommendationResult:
        t0 = time.monotonic()
        observer = request.observer
        when = observer.when_utc
        lat = observer.latitude_deg
        lon = observer.longitude_deg

        # Raises ComputationError on degenerate optics before any catalog work.
        fov = field_of_view(request.equipment)
        short_fov = fov.short_deg
        month = local_month(when, lon)

        sampler = VisibilitySampler(self._ephemeris, step_min=self._config.sampling_step_min)
        night = sampler.night_for(observer)
        night_hours = night.hours if night is not None else None
        moon = self._ephemeris.moon(when, lat, lon)

        catalog, metrics = self._load_catalog(request, offline=offline)

        scored: list[ScoredTarget] = []
        low_framing: list[ScoredTarget] = []
        for index, target in enumerate(catalog):
            fill = fill_ratio(target.size_deg, short_fov)
            framing = framing_score(fill, self._weights.ideal_fill, self._weights.fill_sigma)
            window = None
            if night is not None and can_reach(target, lat, request.min_alt_deg):
                window = sampler.sample(target, observer, when, request.min_alt_deg)
            vis_score, visible_hours = visibility_score(window, night_hours, self._weights)
            season = seasonal_factor(target.best_months, month, lat)
            entry = ScoredTarget(
                target=target,
                fill_ratio=round(fill, 3),
                framing_score=round(framing, 3),
                visibility_score=vis_score,
                seasonal_factor=season,
                visible_hours=round(visible_hours, 2),
                score=final_score(vis_score, framing, season, self._weights),
                suggested_capture=suggest_capture(request.mount, request.equipment, target.dec_deg),
                catalog_index=index,
                window=window,
            )
            scored.append(entry)
            if entry.framing_score <= LOW_FRAMING_THRESHOLD and len(low_framing) < FILTERED_EXAMPLES:
                low_framing.append(entry)

        ranked = rank(scored, request.limit)
        metrics.source_count = len(catalog)
        metrics.visible_count = len(ranked)
        metrics.compute_ms = int((time.monotonic() - t0) * 1000)

        message = None
        if night is None:
            message = "No dark interval tonight at this location; twilight never reaches the required depth."
        elif not ranked:
            message = f"No targets rise above {request.min_alt_deg:.0f}° during the night."

        return RecommendationResult(
            setup=self._setup(request, fov.width_deg, fov.height_deg),
            targets=ranked,
            metrics=metrics,
            night=night,
            moon=moon,
            filtered_out_examples=low_framing,
            message=message,
        )

    def _load_catalog(
        self,
        request: RecommendationRequest,
        offline: bool,
    ) -> tuple[list[Target], RecommendationMetrics]:
        if self._curated_targets is None:
            self._curated_targets = list(self._curated.list_targets())
        metrics = RecommendationMetrics(source_count=0, visible_count=0, compute_ms=0)
        dynamic: list[Target] = []
        if self._dynamic_cache is not None and not offline:
            snapshot = self._dynamic_cache.get_or_refresh()
            dynamic = filter_dynamic(snapshot.targets, request.max_mag, request.openngc_max)
            metrics.dynamic_status = snapshot.status
            metrics.skipped_rows = len(snapshot.skipped)
            if snapshot.error:
                logger.warning("Dynamic catalog unavailable (%s); %d curated targets", snapshot.error, len(self._curated_targets))
        elif offline:
            metrics.dynamic_status = "offline"
        metrics.dynamic_count = len(dynamic)
        return merge_catalogs(self._curated_targets, dynamic), metrics

    def _setup(self, request: RecommendationRequest, fov_w: float, fov_h: float) -> dict:
        observer = request.observer
        equipment = request.equipment
        return {
            "lat": observer.latitude_deg,
            "lon": observer.longitude_deg,
            "sensorW": equipment.sensor_width_mm,
            "sensorH": equipment.sensor_height_mm,
            "pixelUm": equipment.pixel_um,
            "focalMm": equipment.focal_mm,
            "fNum": equipment.f_number,
            "mount": request.mount.value,
            "date": observer.when_utc.isoformat().replace("+00:00", "Z"),
            "time_basis": TIME_BASIS,
            "hemisphere": observer.hemisphere,
            "minAlt": request.min_alt_deg,
            "maxMag": request.max_mag,
            "limit": clamp_limit(request.limit),
            "fov_deg": {"width": round(fov_w, 2), "height": round(fov_h, 2)},
        }
