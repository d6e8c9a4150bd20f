"""Draw detections, labels and segmentation masks onto an RGB raster."""

import math
from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

from ..core.geometry import Letterbox
from ..core.utils import blend_images
from ..detection.base import Detection
from .palette import DEFAULT_COLORS, DEFAULT_LABELS, color_for_class, label_for_class


MASK_DISPLAY_THRESHOLD = 0.6
MASK_ALPHA_SCALE = 180

FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.6
FONT_THICKNESS = 2
TEXT_COLOR = (255, 255, 255)
LABEL_PADDING = 5
LABEL_HEIGHT = 25


def format_label(name: str, score: float) -> str:
    return f"{name}: {score * 100:.1f}%"


def draw_segmentation_mask(
    canvas: np.ndarray,
    detection: Detection,
    color: Tuple[int, int, int],
    letterbox: Letterbox,
    threshold: float = MASK_DISPLAY_THRESHOLD,
    alpha_scale: float = MASK_ALPHA_SCALE,
) -> np.ndarray:
    """Composite a detection's mask inside its bounding box.

    Each image pixel in the box is mapped through the letterbox into
    input-square space, then into mask space. Pixels whose mask probability
    exceeds ``threshold`` get ``color`` blended at
    ``min(floor(p * alpha_scale), 255) / 255``.

    Args:
        canvas: RGB uint8 image, modified in place.
        detection: Detection with a 2D ``mask``.
        color: RGB color.
        letterbox: Transform used to build the network input.
        threshold: Minimum probability to paint.
        alpha_scale: Probability to alpha multiplier (0-255 range).

    Returns:
        The canvas.
    """
    if detection.mask is None:
        return canvas

    mask = detection.mask
    mask_height, mask_width = mask.shape[:2]
    img_height, img_width = canvas.shape[:2]
    box = detection.box

    left = max(0, math.floor(box.x))
    top = max(0, math.floor(box.y))
    right = min(img_width, math.ceil(box.x2))
    bottom = min(img_height, math.ceil(box.y2))
    if right <= left or bottom <= top:
        return canvas

    mask_scale = letterbox.input_size / mask_width

    xs = np.arange(left, right, dtype=np.float64)
    ys = np.arange(top, bottom, dtype=np.float64)
    mask_x = np.floor((xs * letterbox.scale + letterbox.pad_left) / mask_scale).astype(int)
    mask_y = np.floor((ys * letterbox.scale + letterbox.pad_top) / mask_scale).astype(int)
    valid_x = (mask_x >= 0) & (mask_x < mask_width)
    valid_y = (mask_y >= 0) & (mask_y < mask_height)

    probs = np.zeros((len(ys), len(xs)), dtype=np.float32)
    probs[np.ix_(valid_y, valid_x)] = mask[np.ix_(mask_y[valid_y], mask_x[valid_x])]

    alpha = np.minimum(np.floor(probs * alpha_scale), 255) / 255.0
    alpha = np.where(probs > threshold, alpha, 0.0).astype(np.float32)
    if not alpha.any():
        return canvas

    region = canvas[top:bottom, left:right]
    overlay = np.empty_like(region)
    overlay[:] = color
    canvas[top:bottom, left:right] = blend_images(region, overlay, alpha)
    return canvas


def label_position(
    center_x: float, box_top: float, text_width: int, canvas_width: int
) -> Tuple[int, int]:
    """Text origin for a label centered above a shape, kept on the canvas."""
    x = center_x - text_width / 2
    y = box_top - LABEL_PADDING

    max_x = canvas_width - text_width - LABEL_PADDING
    if max_x >= LABEL_PADDING:
        x = min(max(x, LABEL_PADDING), max_x)
    # Tag top is LABEL_HEIGHT - LABEL_PADDING above the text baseline
    y = max(y, LABEL_HEIGHT - LABEL_PADDING)
    return int(round(x)), int(round(y))


def draw_label(
    canvas: np.ndarray,
    text: str,
    center_x: float,
    box_top: float,
    color: Tuple[int, int, int],
) -> None:
    (text_width, _), _ = cv2.getTextSize(text, FONT, FONT_SCALE, FONT_THICKNESS)
    x, y = label_position(center_x, box_top, text_width, canvas.shape[1])
    cv2.rectangle(
        canvas,
        (x - LABEL_PADDING, y - LABEL_HEIGHT + LABEL_PADDING),
        (x + text_width + LABEL_PADDING, y + LABEL_PADDING),
        color,
        -1,
    )
    cv2.putText(canvas, text, (x, y - 2), FONT, FONT_SCALE, TEXT_COLOR, FONT_THICKNESS)


def draw_detections(
    canvas: np.ndarray,
    detections: Iterable[Detection],
    letterbox: Letterbox,
    labels: Sequence[str] = DEFAULT_LABELS,
    colors: Sequence[str] = DEFAULT_COLORS,
    draw_masks: bool = True,
    draw_boxes: bool = True,
    line_width: int = 3,
    mask_threshold: float = MASK_DISPLAY_THRESHOLD,
    mask_alpha: float = MASK_ALPHA_SCALE,
) -> np.ndarray:
    """Paint masks, ellipses and label tags for each detection.

    Args:
        canvas: RGB uint8 image sized to the original image, modified in place.
        detections: Detections in original image space.
        letterbox: Transform used to build the network input.
        labels: Class names indexed by class id.
        colors: Hex palette, indexed by class id modulo its length.
        draw_masks: Composite masks where detections carry them.
        draw_boxes: Draw the ellipse marker and label tag.
        line_width: Ellipse stroke width.
        mask_threshold: Minimum mask probability to paint.
        mask_alpha: Probability to alpha multiplier.

    Returns:
        The canvas.
    """
    for det in detections:
        color = color_for_class(det.class_id, colors)

        if draw_masks and det.mask is not None:
            draw_segmentation_mask(
                canvas, det, color, letterbox, threshold=mask_threshold, alpha_scale=mask_alpha
            )

        if not draw_boxes:
            continue

        center_x, center_y = det.box.center
        axes = (int(round(det.box.width / 2)), int(round(det.box.height / 2)))
        cv2.ellipse(
            canvas,
            (int(round(center_x)), int(round(center_y))),
            axes,
            0,
            0,
            360,
            color,
            line_width,
        )

        text = format_label(label_for_class(det.class_id, labels), det.score)
        draw_label(canvas, text, center_x, det.box.y, color)

    return canvas
