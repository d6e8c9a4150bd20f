"""Base detection record, model protocol and errors."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

import numpy as np

from ..core.geometry import BoundingBox


@dataclass
class Detection:
    """Decoded detection.

    Attributes:
        box: Bounding box in original image pixel coordinates.
        score: Confidence score (0.0 to 1.0).
        class_id: Class integer ID.
        mask_coefficients: Optional low-rank mask coefficients, one per
            prototype channel.
        mask: Optional probability grid at prototype resolution.
    """

    box: BoundingBox
    score: float
    class_id: int
    mask_coefficients: Optional[np.ndarray] = None
    mask: Optional[np.ndarray] = None


class SegmentationModel(Protocol):
    """Protocol for a loaded detection/segmentation network."""

    input_size: int

    def execute(self, tensor: np.ndarray) -> List[np.ndarray]:
        """Run the network.

        Args:
            tensor: Normalized RGB input, float32 of shape
                (1, input_size, input_size, 3) with values in [0, 1].

        Returns:
            Output arrays: the prediction array of shape (1, C, N),
            optionally followed by mask prototypes.
        """
        ...


class ModelLoadError(RuntimeError):
    """The model file could not be loaded or warmed up."""


def detections_to_jsonable(
    detections: Iterable[Detection], labels: Sequence[str] = ()
) -> List[dict]:
    """Plain-dict view of detections for JSON output.

    Masks are not serialized; ``has_mask`` tells whether one was decoded.
    """
    records = []
    for det in detections:
        label = labels[det.class_id] if 0 <= det.class_id < len(labels) else str(det.class_id)
        records.append(
            {
                "class_id": det.class_id,
                "label": label,
                "score": float(det.score),
                "box": {
                    "x": float(det.box.x),
                    "y": float(det.box.y),
                    "width": float(det.box.width),
                    "height": float(det.box.height),
                },
                "has_mask": det.mask is not None,
            }
        )
    return records
