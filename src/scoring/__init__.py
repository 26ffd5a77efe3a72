"""
Scoring module for powder quality analysis.

Transformation functions:
- clamp / linear: bounded normalization
- angle_difference: shortest distance between bearings
- leeward_alignment: cosine alignment score

Scoring:
- compute_powder_scores: per-pixel powder score from aspect, wind and snow
"""

from src.scoring.transforms import (
    clamp,
    linear,
    angle_difference,
    leeward_alignment,
)
from src.scoring.powder import compute_powder_scores

__all__ = [
    # Transforms
    "clamp",
    "linear",
    "angle_difference",
    "leeward_alignment",
    # Scoring
    "compute_powder_scores",
]
