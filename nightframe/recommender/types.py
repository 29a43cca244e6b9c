from dataclasses import dataclass, field
import datetime
import enum
from typing import Optional, Sequence

from nightframe.errors import FieldIssue, ValidationError


class MountCapability(enum.Enum):
    FIXED = "fixed"
    TRACKER = "tracker"
    GUIDED = "guided"

    @classmethod
    def parse(cls, value: "str | MountCapability | None") -> "MountCapability":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.TRACKER
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValidationError(
                f"Mount must be one of: {choices}",
                [FieldIssue("mount", f"must be one of: {choices}")],
            ) from None


@dataclass(frozen=True)
class Target:
    id: str
    name: str
    type: str
    size_deg: float
    ra_hours: float
    dec_deg: float
    ra_hms: str
    dec_dms: str
    best_months: tuple[int, ...] = ()
    image_url: str | None = None
    description: str | None = None
    mag: float | None = None
    source: str = "curated"


@dataclass
class ObserverContext:
    latitude_deg: float
    longitude_deg: float
    when_utc: datetime.datetime

    def __post_init__(self):
        if self.when_utc.tzinfo is None:
            self.when_utc = self.when_utc.replace(tzinfo=datetime.timezone.utc)
        self.when_utc = self.when_utc.astimezone(datetime.timezone.utc)
        issues = []
        if not -90.0 <= self.latitude_deg <= 90.0:
            issues.append(FieldIssue("lat", "must be within [-90, 90]"))
        if not -180.0 <= self.longitude_deg <= 180.0:
            issues.append(FieldIssue("lon", "must be within [-180, 180]"))
        if issues:
            raise ValidationError("Observer location out of range", issues)

    @property
    def hemisphere(self) -> str:
        return "southern" if self.latitude_deg < 0 else "northern"


@dataclass
class EquipmentProfile:
    sensor_width_mm: float
    sensor_height_mm: float
    focal_mm: float
    f_number: float
    pixel_um: float | None = None

    def __post_init__(self):
        values = {
            "sensorW": self.sensor_width_mm,
            "sensorH": self.sensor_height_mm,
            "focalMm": self.focal_mm,
            "fNum": self.f_number,
        }
        if self.pixel_um is not None:
            values["pixelUm"] = self.pixel_um
        issues = [FieldIssue(name, "must be positive") for name, v in values.items() if not v > 0]
        if issues:
            raise ValidationError("Equipment values must be positive", issues)


@dataclass(frozen=True)
class NightWindow:
    start_utc: datetime.datetime
    end_utc: datetime.datetime
    source: str

    @property
    def hours(self) -> float:
        return (self.end_utc - self.start_utc).total_seconds() / 3600.0


@dataclass(frozen=True)
class MoonInfo:
    illumination: float
    altitude_deg: float


@dataclass(frozen=True)
class VisibilityWindow:
    start_utc: datetime.datetime
    end_utc: datetime.datetime
    alt_max_deg: float
    alt_max_utc: datetime.datetime | None = None

    @property
    def hours(self) -> float:
        return max(0.0, (self.end_utc - self.start_utc).total_seconds() / 3600.0)


@dataclass
class SuggestedCapture:
    sub_exposure_s: float
    gain: int
    subs: int
    notes: str
    npf_limit_s: float | None = None
    pixel_scale_arcsec: float | None = None


@dataclass
class ScoredTarget:
    target: Target
    fill_ratio: float
    framing_score: float
    visibility_score: float
    seasonal_factor: float
    visible_hours: float
    score: float
    suggested_capture: SuggestedCapture
    catalog_index: int
    window: VisibilityWindow | None = None


@dataclass
class RecommendationRequest:
    observer: ObserverContext
    equipment: EquipmentProfile
    mount: MountCapability = MountCapability.TRACKER
    min_alt_deg: float = 10.0
    max_mag: float = 12.0
    limit: int = 200
    openngc_max: int = 3000


@dataclass
class RecommendationMetrics:
    source_count: int
    visible_count: int
    compute_ms: int
    dynamic_count: int = 0
    dynamic_status: str = "disabled"
    skipped_rows: int = 0


@dataclass
class RecommendationResult:
    setup: dict
    targets: Sequence[ScoredTarget]
    metrics: RecommendationMetrics
    night: NightWindow | None = None
    moon: MoonInfo | None = None
    filtered_out_examples: Sequence[ScoredTarget] = field(default_factory=list)
    message: Optional[str] = None
