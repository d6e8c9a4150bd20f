"""Single-image inference, postprocessing and rendering pipeline."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import DetectionConfig, Mode, ProcessingConfig, RenderConfig
from .core.geometry import Letterbox, letterbox_image
from .core.scope import TensorScope
from .detection.base import Detection, SegmentationModel
from .detection.decoder import BOX_PARAMS, decode_detections
from .detection.masks import DEFAULT_PROTO_CHANNELS, Prototypes, decode_masks
from .detection.nms import DEFAULT_IOU_THRESHOLD, non_max_suppression
from .rendering.palette import DEFAULT_COLORS, DEFAULT_LABELS
from .rendering.renderer import MASK_ALPHA_SCALE, MASK_DISPLAY_THRESHOLD, draw_detections


class PipelineState(Enum):
    """Pipeline lifecycle. Only ``start`` and ``finish`` move between states."""

    IDLE = "idle"
    RUNNING = "running"


class PipelineError(RuntimeError):
    """A pipeline run failed during preprocessing, inference or drawing."""


class PipelineBusyError(RuntimeError):
    """A run was requested while another one is in flight."""


@dataclass(frozen=True)
class RunOptions:
    """Per-run parameters.

    Attributes:
        confidence_threshold: Minimum class score to keep an anchor.
        mode: Detection only, or detection plus segmentation masks.
        show_boxes: Draw ellipse markers and label tags.
        show_masks: Draw masks (segmentation mode only).
    """

    confidence_threshold: float = 0.5
    mode: Mode = Mode.DETECTION
    show_boxes: bool = True
    show_masks: bool = True

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"Confidence threshold must be between 0 and 1, got {self.confidence_threshold}"
            )

    @property
    def decode_masks(self) -> bool:
        return self.mode is Mode.SEGMENTATION and self.show_masks

    @classmethod
    def from_config(cls, detection: DetectionConfig, render: RenderConfig) -> "RunOptions":
        return cls(
            confidence_threshold=detection.confidence_threshold,
            mode=detection.mode,
            show_boxes=render.show_boxes,
            show_masks=render.show_masks,
        )


@dataclass
class PipelineResult:
    """Output of one pipeline run.

    Attributes:
        detections: Surviving detections, highest score first.
        canvas: Copy of the input image with overlays painted on.
        letterbox: Transform used for this image.
        timings: Stage durations in milliseconds.
    """

    detections: List[Detection]
    canvas: np.ndarray
    letterbox: Letterbox
    timings: Dict[str, float] = field(default_factory=dict)


class SegmentationPipeline:
    """Run preprocessing, inference, postprocessing and drawing for one image.

    Runs never overlap: a run requested while another is in flight is
    rejected with :class:`PipelineBusyError` instead of being queued.
    """

    def __init__(
        self,
        model: SegmentationModel,
        labels: Sequence[str] = DEFAULT_LABELS,
        colors: Sequence[str] = DEFAULT_COLORS,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        num_classes: int = 1,
        class_aware_nms: bool = False,
        mask_threshold: float = MASK_DISPLAY_THRESHOLD,
        mask_alpha: float = MASK_ALPHA_SCALE,
        line_width: int = 3,
    ):
        """Initialize the pipeline.

        Args:
            model: Loaded model collaborator.
            labels: Class names indexed by class id.
            colors: Hex color palette.
            iou_threshold: NMS overlap threshold.
            num_classes: Number of class score rows in the model output.
            class_aware_nms: Suppress only within a class.
            mask_threshold: Minimum mask probability to paint.
            mask_alpha: Probability to alpha multiplier.
            line_width: Ellipse stroke width.
        """
        self.model = model
        self.labels = list(labels)
        self.colors = list(colors)
        self.iou_threshold = iou_threshold
        self.num_classes = num_classes
        self.class_aware_nms = class_aware_nms
        self.mask_threshold = mask_threshold
        self.mask_alpha = mask_alpha
        self.line_width = line_width
        self._state = PipelineState.IDLE

    @classmethod
    def from_config(
        cls, model: SegmentationModel, config: ProcessingConfig
    ) -> "SegmentationPipeline":
        """Create a pipeline from ProcessingConfig.

        Args:
            model: Loaded model collaborator.
            config: Processing configuration.

        Returns:
            Configured SegmentationPipeline instance.
        """
        return cls(
            model,
            labels=config.render.labels,
            colors=config.render.colors,
            iou_threshold=config.detection.iou_threshold,
            num_classes=config.model.num_classes,
            class_aware_nms=config.detection.class_aware_nms,
            mask_threshold=config.render.mask_threshold,
            mask_alpha=config.render.mask_alpha,
            line_width=config.render.line_width,
        )

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is PipelineState.RUNNING

    def start(self) -> None:
        """Move from IDLE to RUNNING.

        Raises:
            PipelineBusyError: If a run is already in flight.
        """
        if self._state is PipelineState.RUNNING:
            raise PipelineBusyError("A pipeline run is already in progress")
        self._state = PipelineState.RUNNING

    def finish(self) -> None:
        """Move back to IDLE."""
        self._state = PipelineState.IDLE

    def run(self, image: np.ndarray, options: Optional[RunOptions] = None) -> PipelineResult:
        """Detect, segment and draw on one image.

        Args:
            image: RGB uint8 image (H, W, 3).
            options: Per-run parameters; defaults to RunOptions().

        Returns:
            PipelineResult with detections, rendered canvas and timings.

        Raises:
            PipelineBusyError: If another run is in flight.
            PipelineError: If any stage fails. The pipeline is IDLE afterwards.
        """
        options = options or RunOptions()
        self.start()
        try:
            return self._process(image, options)
        except Exception as e:
            raise PipelineError(f"Error while processing image: {e}") from e
        finally:
            self.finish()

    def _process(self, image: np.ndarray, options: RunOptions) -> PipelineResult:
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected an RGB image (H, W, 3), got shape {image.shape}")
        height, width = image.shape[:2]
        timings = {}

        with TensorScope() as scope:
            total_start = time.perf_counter()

            start = time.perf_counter()
            tensor, letterbox = letterbox_image(image, self.model.input_size)
            scope.track(tensor)
            timings["preprocess"] = _elapsed_ms(start)

            start = time.perf_counter()
            outputs = scope.track(self.model.execute(tensor))
            del tensor
            timings["inference"] = _elapsed_ms(start)

            start = time.perf_counter()
            detections = self.postprocess(outputs, width, height, letterbox, options)
            # The scope holds the only remaining references from here on
            del outputs
            timings["postprocess"] = _elapsed_ms(start)

            start = time.perf_counter()
            canvas = np.ascontiguousarray(image, dtype=np.uint8).copy()
            draw_detections(
                canvas,
                detections,
                letterbox,
                labels=self.labels,
                colors=self.colors,
                draw_masks=options.decode_masks,
                draw_boxes=options.show_boxes,
                line_width=self.line_width,
                mask_threshold=self.mask_threshold,
                mask_alpha=self.mask_alpha,
            )
            timings["draw"] = _elapsed_ms(start)
            timings["total"] = _elapsed_ms(total_start)

        return PipelineResult(
            detections=detections, canvas=canvas, letterbox=letterbox, timings=timings
        )

    def postprocess(
        self,
        outputs: Sequence[np.ndarray],
        width: int,
        height: int,
        letterbox: Letterbox,
        options: RunOptions,
    ) -> List[Detection]:
        """Decode, suppress and (in segmentation mode) attach masks.

        Args:
            outputs: Model outputs; predictions first, prototypes second.
            width: Original image width.
            height: Original image height.
            letterbox: Transform used to build the network input.
            options: Per-run parameters.

        Returns:
            Surviving detections, highest score first.
        """
        if len(outputs) == 0:
            raise ValueError("Model produced no outputs")
        predictions = outputs[0]
        prototypes = outputs[1] if len(outputs) > 1 else None

        candidates = decode_detections(
            predictions,
            width,
            height,
            letterbox,
            confidence_threshold=options.confidence_threshold,
            num_classes=self.num_classes,
        )
        print(f"Filtered detections before NMS: {len(candidates)}")

        detections = non_max_suppression(
            candidates, self.iou_threshold, class_aware=self.class_aware_nms
        )

        if options.decode_masks and prototypes is not None and detections:
            channels = np.shape(predictions)[-2] - BOX_PARAMS - self.num_classes
            decode_masks(
                detections,
                Prototypes.from_array(
                    prototypes, channels=channels if channels > 0 else DEFAULT_PROTO_CHANNELS
                ),
            )

        return detections


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
