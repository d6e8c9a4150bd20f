"""Rendering module: overlays painted onto the source image."""

from .palette import DEFAULT_COLORS, DEFAULT_LABELS, color_for_class, label_for_class, load_labels
from .renderer import draw_detections, draw_segmentation_mask

__all__ = [
    "DEFAULT_COLORS",
    "DEFAULT_LABELS",
    "color_for_class",
    "label_for_class",
    "load_labels",
    "draw_detections",
    "draw_segmentation_mask",
]
