from .format import (
    deg_to_dms,
    hours_to_hms,
    format_angle,
)

__all__ = [
    "deg_to_dms",
    "hours_to_hms",
    "format_angle",
]
