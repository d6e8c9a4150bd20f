"""Detection and instance segmentation overlays for images."""

__version__ = "0.1.0"
