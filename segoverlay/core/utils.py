"""Image and numeric utility functions."""

import re
from typing import Tuple

import numpy as np


FALLBACK_COLOR = (0, 255, 0)

_HEX_COLOR = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def blend_images(
    img1: np.ndarray, img2: np.ndarray, alpha: np.ndarray | float
) -> np.ndarray:
    """Blend two images using alpha mask or scalar.

    Args:
        img1: First image (background).
        img2: Second image (foreground).
        alpha: Blend factor (0-1). Can be scalar or 2D/3D array.

    Returns:
        Blended image as uint8 array.

    Raises:
        ValueError: If image shapes don't match.
    """
    if img1.shape != img2.shape:
        raise ValueError(f"Shape mismatch: {img1.shape} vs {img2.shape}")

    if isinstance(alpha, np.ndarray) and alpha.ndim == 2:
        alpha = alpha[:, :, np.newaxis]

    blended = img1.astype(np.float32) * (1 - alpha) + img2.astype(np.float32) * alpha
    return np.clip(blended, 0, 255).astype(np.uint8)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """Parse a ``#rrggbb`` color.

    Args:
        color: Hex color string, leading '#' optional.

    Returns:
        (r, g, b) tuple. Unparseable input yields green.
    """
    match = _HEX_COLOR.match(color.strip())
    if match is None:
        return FALLBACK_COLOR
    return tuple(int(part, 16) for part in match.groups())


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic function that does not overflow for large negative inputs."""
    x = np.asarray(x, dtype=np.float32)
    return np.exp(-np.logaddexp(0.0, -x)).astype(np.float32)
