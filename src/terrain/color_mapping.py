"""
Color mapping for powder score overlays.

Maps scores in [0, 1] to RGBA through a fixed ramp of control points. Low
scores are fully transparent so below-average terrain is hidden; high
scores glow magenta -> pink -> white, which contrasts with green/brown
base maps.
"""

import logging

import numpy as np
import matplotlib
from matplotlib.colors import LinearSegmentedColormap

logger = logging.getLogger(__name__)


# =============================================================================
# Powder Color Ramp
# =============================================================================

# Each stop: (score, r, g, b, a)
POWDER_RAMP = [
    (0.00, 0, 0, 0, 0),          # transparent
    (0.35, 0, 0, 0, 0),          # still transparent, hide below-average areas
    (0.40, 120, 50, 160, 80),    # faint purple hint
    (0.50, 170, 50, 180, 150),   # medium purple
    (0.60, 220, 50, 160, 190),   # magenta
    (0.75, 255, 80, 130, 220),   # hot pink
    (0.90, 255, 170, 200, 240),  # light pink
    (1.00, 255, 255, 255, 255),  # bright white, the best powder
]

_RAMP = np.array(POWDER_RAMP, dtype=np.float64)

# Register the powder colormap with matplotlib for previews and legends
powder_cmap = LinearSegmentedColormap.from_list(
    "powder",
    [(stop[0], tuple(channel / 255.0 for channel in stop[1:])) for stop in POWDER_RAMP],
    N=256,
)
try:
    # Register with new API (matplotlib >= 3.7)
    matplotlib.colormaps.register(powder_cmap, force=True)
except (AttributeError, TypeError):
    # Fall back to old API
    import matplotlib.pyplot as plt

    plt.register_cmap(cmap=powder_cmap)


def sample_ramp(scores) -> np.ndarray:
    """
    Interpolate the powder ramp at the given score(s).

    Scores at or below the first stop, or at or above the last, take that
    stop's color exactly. Between stops each channel is linearly
    interpolated and rounded half up.

    Args:
        scores: Scalar or array of scores

    Returns:
        uint8 array of shape (*scores.shape, 4)

    Examples:
        >>> sample_ramp(1.0).tolist()
        [255, 255, 255, 255]
        >>> sample_ramp(0.2).tolist()
        [0, 0, 0, 0]
    """
    values = np.asarray(scores, dtype=np.float64)
    thresholds = _RAMP[:, 0]

    channels = [
        np.interp(values, thresholds, _RAMP[:, channel])
        for channel in range(1, 5)
    ]
    rgba = np.floor(np.stack(channels, axis=-1) + 0.5)
    # NaN scores match no stop and stay transparent
    rgba = np.where(np.isnan(rgba), 0.0, rgba)
    return np.clip(rgba, 0, 255).astype(np.uint8)


def score_colormap(scores: np.ndarray) -> np.ndarray:
    """
    Map a 2D score grid to an RGBA image.

    Args:
        scores: 2D array of powder scores

    Returns:
        uint8 array of shape (height, width, 4)
    """
    logger.info(f"Coloring score grid {scores.shape[1]}x{scores.shape[0]}")
    rgba = sample_ramp(scores)
    visible = int(np.count_nonzero(rgba[..., 3]))
    logger.debug(f"{visible} of {scores.size} pixels visible")
    return rgba


def powder_colormap() -> LinearSegmentedColormap:
    """Matplotlib colormap approximating the powder ramp."""
    return powder_cmap
