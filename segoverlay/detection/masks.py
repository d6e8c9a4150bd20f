"""Mask prototype handling and per-detection mask decoding."""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import List

import numpy as np

from ..core.utils import sigmoid
from .base import Detection


DEFAULT_PROTO_CHANNELS = 32


class PrototypeLayout(Enum):
    """Axis order of a prototype array after the batch axis is dropped."""

    CHANNELS_FIRST = "chw"
    CHANNELS_LAST = "hwc"

    @classmethod
    def detect(cls, shape, channels: int = DEFAULT_PROTO_CHANNELS) -> "PrototypeLayout":
        """Guess the layout of a 3D prototype shape.

        An axis matching the expected channel count decides the layout, the
        first axis winning when both match. Otherwise the array is
        channels-last when its last axis is smaller than its first.
        """
        if len(shape) != 3:
            raise ValueError(f"Prototype shape must be 3D, got {tuple(shape)}")
        if shape[0] == channels:
            return cls.CHANNELS_FIRST
        if shape[2] == channels or shape[2] < shape[0]:
            return cls.CHANNELS_LAST
        return cls.CHANNELS_FIRST


@dataclass(frozen=True)
class Prototypes:
    """Mask prototypes normalized to (channels, height, width).

    Attributes:
        data: float32 array of shape (C, H, W).
        source_layout: Layout the array arrived in.
    """

    data: np.ndarray
    source_layout: PrototypeLayout = PrototypeLayout.CHANNELS_FIRST

    @classmethod
    def from_array(
        cls, array: np.ndarray, channels: int = DEFAULT_PROTO_CHANNELS
    ) -> "Prototypes":
        """Normalize a raw prototype array.

        Args:
            array: (1, C, H, W), (1, H, W, C) or the same without batch axis.
            channels: Expected prototype channel count.

        Returns:
            Prototypes in channel-first layout.
        """
        data = np.asarray(array, dtype=np.float32)
        if data.ndim == 4:
            if data.shape[0] != 1:
                raise ValueError(f"Expected batch size 1, got prototypes {data.shape}")
            data = data[0]

        layout = PrototypeLayout.detect(data.shape, channels)
        if layout is PrototypeLayout.CHANNELS_LAST:
            data = np.transpose(data, (2, 0, 1))
        return cls(data=np.ascontiguousarray(data), source_layout=layout)

    @property
    def channels(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]


def fit_coefficients(coefficients, channels: int) -> np.ndarray:
    """Truncate or zero-pad coefficients to exactly ``channels`` values.

    Raises:
        ValueError: If the coefficients are not a flat numeric sequence.
    """
    coeffs = np.asarray(coefficients, dtype=np.float32)
    if coeffs.ndim != 1:
        raise ValueError(f"Mask coefficients must be 1D, got shape {coeffs.shape}")
    if coeffs.size >= channels:
        return coeffs[:channels]
    return np.pad(coeffs, (0, channels - coeffs.size))


def decode_mask(coefficients, prototypes: Prototypes) -> np.ndarray:
    """Project coefficients onto the prototypes and squash to [0, 1].

    Args:
        coefficients: One detection's mask coefficients.
        prototypes: Normalized prototypes.

    Returns:
        float32 probability grid of shape (H, W).
    """
    coeffs = fit_coefficients(coefficients, prototypes.channels)
    logits = np.einsum("c,chw->hw", coeffs, prototypes.data)
    return sigmoid(logits)


def decode_masks(detections: List[Detection], prototypes: Prototypes) -> List[Detection]:
    """Fill the ``mask`` field of every detection that carries coefficients.

    A detection whose coefficients cannot be decoded is reported and left
    without a mask; the rest of the batch is still decoded.

    Args:
        detections: Detections surviving NMS.
        prototypes: Normalized prototypes.

    Returns:
        The same list, for chaining.
    """
    for i, det in enumerate(detections):
        if det.mask_coefficients is None:
            continue
        try:
            if np.size(det.mask_coefficients) == 0:
                continue
            det.mask = decode_mask(det.mask_coefficients, prototypes)
        except (ValueError, TypeError) as e:
            print(f"Error decoding mask for detection {i}: {e}", file=sys.stderr)
            det.mask = None
    return detections
