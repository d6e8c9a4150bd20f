"""Decode raw per-anchor network output into detections."""

from typing import List

import numpy as np

from ..core.geometry import BoundingBox, Letterbox
from .base import Detection


BOX_PARAMS = 4


def output_rows(output: np.ndarray) -> np.ndarray:
    """Transpose a (1, C, N) or (C, N) output into (N, C) anchor rows.

    Raises:
        ValueError: If the array has any other shape.
    """
    output = np.asarray(output, dtype=np.float32)
    if output.ndim == 3:
        if output.shape[0] != 1:
            raise ValueError(f"Expected batch size 1, got output shape {output.shape}")
        output = output[0]
    if output.ndim != 2:
        raise ValueError(f"Expected output of shape (1, C, N), got {output.shape}")
    if output.shape[0] < BOX_PARAMS:
        raise ValueError(
            f"Output needs at least {BOX_PARAMS} box rows, got shape {output.shape}"
        )
    return output.T


def decode_detections(
    output: np.ndarray,
    image_width: int,
    image_height: int,
    letterbox: Letterbox,
    confidence_threshold: float = 0.5,
    num_classes: int = 1,
) -> List[Detection]:
    """Turn anchor rows into detections above the confidence threshold.

    Each row holds ``cx, cy, w, h`` in input-square pixels, then
    ``num_classes`` class scores, then mask coefficients (if any).

    Args:
        output: Raw prediction array, (1, C, N) or (C, N).
        image_width: Original image width.
        image_height: Original image height.
        letterbox: Transform used to build the network input.
        confidence_threshold: Minimum class score; equal scores are kept.
        num_classes: Number of class score columns.

    Returns:
        Detections in original image space. Order is not significant.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")

    rows = output_rows(output)
    class_end = BOX_PARAMS + max(num_classes, 0)
    class_scores = rows[:, BOX_PARAMS:class_end]

    # Missing score columns means no anchor can have a class
    if rows.shape[1] < class_end or class_scores.shape[1] == 0 or rows.shape[0] == 0:
        return []

    class_ids = np.argmax(class_scores, axis=1)
    scores = class_scores[np.arange(rows.shape[0]), class_ids]

    widths = rows[:, 2]
    heights = rows[:, 3]
    keep = (scores >= confidence_threshold) & (widths >= 0) & (heights >= 0)

    detections = []
    for index in np.flatnonzero(keep):
        cx, cy, w, h = rows[index, :BOX_PARAMS].tolist()
        x1 = cx - w / 2
        y1 = cy - h / 2
        box = letterbox.box_to_original(BoundingBox(x1, y1, w, h))

        coefficients = rows[index, class_end:]
        detections.append(
            Detection(
                box=box,
                score=float(scores[index]),
                class_id=int(class_ids[index]),
                mask_coefficients=coefficients.copy() if coefficients.size else None,
            )
        )

    return detections
