"""Configuration dataclasses for segoverlay."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .rendering.palette import DEFAULT_COLORS, DEFAULT_LABELS


class Mode(Enum):
    """What the pipeline produces."""

    DETECTION = "detection"
    SEGMENTATION = "segmentation"


@dataclass
class ModelConfig:
    """Configuration for the model collaborator."""

    path: str = "model.torchscript"
    input_size: int = 640
    device: str = "cpu"
    num_classes: int = 1
    channels_last_input: bool = False


@dataclass
class DetectionConfig:
    """Configuration for decoding and suppression."""

    confidence_threshold: float = 0.5
    iou_threshold: float = 0.45
    mode: Mode = Mode.DETECTION
    class_aware_nms: bool = False


@dataclass
class RenderConfig:
    """Configuration for the overlay renderer."""

    show_boxes: bool = True
    show_masks: bool = True
    labels: List[str] = field(default_factory=lambda: list(DEFAULT_LABELS))
    colors: List[str] = field(default_factory=lambda: list(DEFAULT_COLORS))
    mask_threshold: float = 0.6
    mask_alpha: float = 180
    line_width: int = 3


@dataclass
class OutputConfig:
    """Configuration for output files."""

    path: str = "results"
    write_json: bool = False


@dataclass
class ProcessingConfig:
    """Combined configuration for processing."""

    input_paths: List[str]
    model: ModelConfig
    detection: DetectionConfig
    render: RenderConfig
    output: OutputConfig

    @classmethod
    def from_args(
        cls,
        input_paths: List[str],
        output_path: str,
        model_path: str,
        # Model config
        input_size: int = 640,
        device: str = "cpu",
        num_classes: int = 1,
        channels_last_input: bool = False,
        # Detection config
        confidence_threshold: float = 0.5,
        iou_threshold: float = 0.45,
        mode: str = "detection",
        class_aware_nms: bool = False,
        # Render config
        show_boxes: bool = True,
        show_masks: bool = True,
        labels: Optional[List[str]] = None,
        # Output config
        write_json: bool = False,
    ) -> "ProcessingConfig":
        """Create ProcessingConfig from CLI arguments."""
        return cls(
            input_paths=list(input_paths),
            model=ModelConfig(
                path=model_path,
                input_size=input_size,
                device=device,
                num_classes=num_classes,
                channels_last_input=channels_last_input,
            ),
            detection=DetectionConfig(
                confidence_threshold=confidence_threshold,
                iou_threshold=iou_threshold,
                mode=Mode(mode),
                class_aware_nms=class_aware_nms,
            ),
            render=RenderConfig(
                show_boxes=show_boxes,
                show_masks=show_masks,
                labels=labels or list(DEFAULT_LABELS),
            ),
            output=OutputConfig(path=output_path, write_json=write_json),
        )
