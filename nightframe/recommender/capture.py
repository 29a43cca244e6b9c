from .framing import npf_limit_s, pixel_scale_arcsec
from .types import EquipmentProfile, MountCapability, SuggestedCapture

DEFAULT_GAIN = 100
DEFAULT_SUBS = 50
FIXED_MOUNT_TARGET_INTEGRATION_S = 500.0

MOUNT_PROFILES = {
    MountCapability.FIXED: (10.0, "Fixed mount: keep subs short"),
    MountCapability.TRACKER: (60.0, "Tracker: moderate subs recommended"),
    MountCapability.GUIDED: (180.0, "Guided mount: longer subs OK"),
}


def suggest_capture(
    mount: MountCapability,
    equipment: EquipmentProfile,
    dec_deg: float = 0.0,
) -> SuggestedCapture:
    sub_s, notes = MOUNT_PROFILES[mount]
    subs = DEFAULT_SUBS
    npf = None
    scale = None
    if equipment.pixel_um is not None:
        scale = round(pixel_scale_arcsec(equipment.pixel_um, equipment.focal_mm), 2)
        npf = round(npf_limit_s(equipment.f_number, equipment.pixel_um, equipment.focal_mm, dec_deg), 1)
        if mount is MountCapability.FIXED and npf < sub_s:
            sub_s = max(1.0, npf)
            subs = max(DEFAULT_SUBS, int(round(FIXED_MOUNT_TARGET_INTEGRATION_S / sub_s)))
            notes = f"{notes}; NPF limit {npf:.1f}s at this declination"
    return SuggestedCapture(
        sub_exposure_s=sub_s,
        gain=DEFAULT_GAIN,
        subs=subs,
        notes=notes,
        npf_limit_s=npf,
        pixel_scale_arcsec=scale,
    )
