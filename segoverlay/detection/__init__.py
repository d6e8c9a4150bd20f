"""Detection module: decoding, suppression and mask decoding."""

from .base import Detection, ModelLoadError, SegmentationModel, detections_to_jsonable
from .decoder import decode_detections
from .masks import PrototypeLayout, Prototypes, decode_masks
from .nms import non_max_suppression

# Lazy imports for the torch-backed model
def __getattr__(name):
    if name in ("TorchScriptModel", "load_model"):
        from . import model
        return getattr(model, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "Detection",
    "ModelLoadError",
    "SegmentationModel",
    "detections_to_jsonable",
    "decode_detections",
    "PrototypeLayout",
    "Prototypes",
    "decode_masks",
    "non_max_suppression",
    "TorchScriptModel",
    "load_model",
]
