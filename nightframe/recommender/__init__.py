from .recommender import Recommender
from .types import (
    EquipmentProfile,
    MountCapability,
    ObserverContext,
    RecommendationRequest,
    RecommendationResult,
    ScoredTarget,
    Target,
    VisibilityWindow,
)

__all__ = [
    "Recommender",
    "EquipmentProfile",
    "MountCapability",
    "ObserverContext",
    "RecommendationRequest",
    "RecommendationResult",
    "ScoredTarget",
    "Target",
    "VisibilityWindow",
]
