import math
from dataclasses import dataclass

from nightframe.errors import ComputationError

from .types import EquipmentProfile

IDEAL_FILL = 0.3
FILL_SIGMA = 0.15


@dataclass(frozen=True)
class FieldOfView:
    width_deg: float
    height_deg: float

    @property
    def short_deg(self) -> float:
        return min(self.width_deg, self.height_deg)


def fov_deg(sensor_mm: float, focal_mm: float) -> float:
    if focal_mm <= 0 or not math.isfinite(focal_mm):
        raise ComputationError("invalid optical configuration: focal length must be positive")
    return math.degrees(2.0 * math.atan((sensor_mm / 2.0) / focal_mm))


def field_of_view(equipment: EquipmentProfile) -> FieldOfView:
    return FieldOfView(
        width_deg=fov_deg(equipment.sensor_width_mm, equipment.focal_mm),
        height_deg=fov_deg(equipment.sensor_height_mm, equipment.focal_mm),
    )


def fill_ratio(size_deg: float, short_fov_deg: float) -> float:
    if not math.isfinite(short_fov_deg) or short_fov_deg <= 0:
        raise ComputationError("invalid optical configuration: field of view must be positive")
    return size_deg / short_fov_deg


def framing_score(fill: float, ideal: float = IDEAL_FILL, sigma: float = FILL_SIGMA) -> float:
    """Gaussian preference for targets filling ~30% of the short FOV edge."""
    if not math.isfinite(fill) or fill <= 0:
        return 0.0
    score = math.exp(-((fill - ideal) ** 2) / (2.0 * sigma * sigma))
    return max(0.0, min(1.0, score))


def pixel_scale_arcsec(pixel_um: float, focal_mm: float) -> float:
    return 206.265 * (pixel_um / focal_mm)


def npf_limit_s(f_number: float, pixel_um: float, focal_mm: float, dec_deg: float = 0.0) -> float:
    """Longest untracked exposure before stars trail across pixels (NPF rule)."""
    cos_dec = math.cos(math.radians(dec_deg))
    return (35.0 * f_number + 13.7 * pixel_um) / (focal_mm * max(cos_dec, 1e-6))
