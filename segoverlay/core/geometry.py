"""Box geometry and letterbox transforms."""

import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np


PAD_VALUE = 114


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in original image pixel space.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Box width, never negative.
        height: Box height, never negative.
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Box extent must be non-negative, got {self.width}x{self.height}"
            )

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_xyxy(self) -> np.ndarray:
        """Return the box as an [x1, y1, x2, y2] array."""
        return np.array([self.x, self.y, self.x2, self.y2])


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Intersection over union of two boxes.

    Returns 0.0 when the union is empty.
    """
    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x, b.x))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y, b.y))
    intersection = inter_w * inter_h

    union = a.area + b.area - intersection
    if union <= 0:
        return 0.0
    return intersection / union


@dataclass(frozen=True)
class Letterbox:
    """Affine map between original image space and the network input square.

    ``net = orig * scale + pad`` and ``orig = (net - pad) / scale``.

    Attributes:
        scale: Resize factor applied to the original image.
        pad_left: Horizontal padding in input-square pixels.
        pad_top: Vertical padding in input-square pixels.
        input_size: Side of the network input square.
    """

    scale: float
    pad_left: float = 0.0
    pad_top: float = 0.0
    input_size: int = 640

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"Letterbox scale must be positive, got {self.scale}")
        if self.pad_left < 0 or self.pad_top < 0:
            raise ValueError(
                f"Letterbox padding must be non-negative, got ({self.pad_left}, {self.pad_top})"
            )

    @classmethod
    def fit(cls, width: int, height: int, input_size: int = 640) -> "Letterbox":
        """Compute the letterbox that fits a width x height image into the square.

        Args:
            width: Original image width.
            height: Original image height.
            input_size: Network input side length.

        Returns:
            Letterbox with centered padding.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")

        scale = min(input_size / width, input_size / height)
        new_width, new_height = cls.resized_shape(width, height, scale)
        pad_left = (input_size - new_width) // 2
        pad_top = (input_size - new_height) // 2
        return cls(scale=scale, pad_left=pad_left, pad_top=pad_top, input_size=input_size)

    @staticmethod
    def resized_shape(width: int, height: int, scale: float) -> Tuple[int, int]:
        # Half-up rounding, not round-half-even
        new_width = max(1, int(math.floor(width * scale + 0.5)))
        new_height = max(1, int(math.floor(height * scale + 0.5)))
        return new_width, new_height

    def to_input(self, x: float, y: float) -> Tuple[float, float]:
        """Map an original image point into input-square space."""
        return x * self.scale + self.pad_left, y * self.scale + self.pad_top

    def to_original(self, x: float, y: float) -> Tuple[float, float]:
        """Map an input-square point back into original image space."""
        return (x - self.pad_left) / self.scale, (y - self.pad_top) / self.scale

    def box_to_input(self, box: BoundingBox) -> BoundingBox:
        x, y = self.to_input(box.x, box.y)
        return BoundingBox(x, y, box.width * self.scale, box.height * self.scale)

    def box_to_original(self, box: BoundingBox) -> BoundingBox:
        x, y = self.to_original(box.x, box.y)
        return BoundingBox(x, y, box.width / self.scale, box.height / self.scale)


def letterbox_image(
    image: np.ndarray, input_size: int = 640
) -> Tuple[np.ndarray, Letterbox]:
    """Resize and pad an image into the network input square.

    Args:
        image: RGB image (H, W, 3), uint8.
        input_size: Network input side length.

    Returns:
        Tuple of (tensor, letterbox) where tensor is float32 of shape
        (1, input_size, input_size, 3) with values in [0, 1].
    """
    height, width = image.shape[:2]
    letterbox = Letterbox.fit(width, height, input_size)
    new_width, new_height = Letterbox.resized_shape(width, height, letterbox.scale)

    resized = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_LINEAR)

    pad_left = int(letterbox.pad_left)
    pad_top = int(letterbox.pad_top)
    pad_right = input_size - new_width - pad_left
    pad_bottom = input_size - new_height - pad_top
    padded = cv2.copyMakeBorder(
        resized,
        pad_top,
        pad_bottom,
        pad_left,
        pad_right,
        cv2.BORDER_CONSTANT,
        value=(PAD_VALUE, PAD_VALUE, PAD_VALUE),
    )

    tensor = padded.astype(np.float32) / 255.0
    return tensor[np.newaxis, ...], letterbox
