"""Command-line interface for segoverlay."""

import argparse
from pathlib import Path

from . import __version__
from .config import Mode, ProcessingConfig
from .core.io import is_image_file
from .rendering.palette import load_labels

EPILOG = """\
Examples:
  segoverlay photo.jpg -o photo_overlay.png --model yolo11n-seg.torchscript
  segoverlay photo.jpg -o out.png --model yolo11n-seg.torchscript --mode segmentation
  segoverlay a.jpg b.jpg -o results/ --model model.torchscript --threshold 0.35 --json

Modes:
  detection     Ellipses and labels only (default)
  segmentation  Also decode and paint instance masks

The model is a TorchScript export of a YOLO-style network whose first output
has shape (1, 4 + classes + mask coefficients, anchors).
"""


def _unit_interval(value: str) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise argparse.ArgumentTypeError(f"{value} is not between 0.0 and 1.0")
    return number


def parse_args(args=None) -> ProcessingConfig:
    """Parse command-line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv).

    Returns:
        ProcessingConfig with parsed options.
    """
    parser = argparse.ArgumentParser(
        prog="segoverlay",
        description="Detect and segment objects in images and paint the results.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "inputs",
        type=str,
        nargs="+",
        metavar="INPUT",
        help="Input image files (.jpg, .png, ...)",
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        help="Output image for a single input, otherwise an output directory",
    )

    parser.add_argument(
        "--model",
        type=str,
        required=True,
        help="Path to the TorchScript model file",
    )

    parser.add_argument(
        "--mode",
        type=str,
        default=Mode.DETECTION.value,
        choices=[mode.value for mode in Mode],
        help="detection or segmentation (default: detection)",
    )

    parser.add_argument(
        "--threshold",
        type=_unit_interval,
        default=0.5,
        help="Confidence threshold; 0.0-1.0 (default: 0.5)",
    )

    parser.add_argument(
        "--iou",
        type=_unit_interval,
        default=0.45,
        help="IoU threshold for non-maximum suppression; 0.0-1.0 (default: 0.45)",
    )

    parser.add_argument(
        "--class-aware-nms",
        action="store_true",
        help="Only suppress overlapping boxes of the same class",
    )

    parser.add_argument(
        "--input-size",
        type=int,
        default=640,
        help="Side of the square network input in pixels (default: 640)",
    )

    parser.add_argument(
        "--num-classes",
        type=int,
        default=1,
        help="Number of class score rows in the model output (default: 1)",
    )

    parser.add_argument(
        "--channels-last",
        action="store_true",
        help="Feed the model NHWC input instead of NCHW",
    )

    parser.add_argument(
        "--labels",
        type=str,
        default="",
        help="Text file with one class label per line (default: 'object')",
    )

    parser.add_argument(
        "--no-boxes",
        action="store_true",
        help="Do not draw ellipses and label tags",
    )

    parser.add_argument(
        "--no-masks",
        action="store_true",
        help="Do not paint masks in segmentation mode",
    )

    parser.add_argument(
        "--device",
        type=str,
        default="cpu",
        help="Torch device to run the model on (default: cpu)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Also write detections as JSON next to each output image",
    )

    parsed = parser.parse_args(args)

    # Validate inputs exist
    for input_path in parsed.inputs:
        if not Path(input_path).exists():
            parser.error(f"Input file not found: {input_path}")
        if not is_image_file(input_path):
            parser.error(f"Unsupported image type: {input_path}")
    if parsed.input_size <= 0:
        parser.error("--input-size must be positive")
    if parsed.num_classes < 0:
        parser.error("--num-classes must not be negative")

    labels = None
    if parsed.labels:
        try:
            labels = load_labels(parsed.labels)
        except (OSError, ValueError) as e:
            parser.error(f"Cannot read labels: {e}")

    return ProcessingConfig.from_args(
        input_paths=parsed.inputs,
        output_path=parsed.output,
        model_path=parsed.model,
        input_size=parsed.input_size,
        device=parsed.device,
        num_classes=parsed.num_classes,
        channels_last_input=parsed.channels_last,
        confidence_threshold=parsed.threshold,
        iou_threshold=parsed.iou,
        mode=parsed.mode,
        class_aware_nms=parsed.class_aware_nms,
        show_boxes=not parsed.no_boxes,
        show_masks=not parsed.no_masks,
        labels=labels,
        write_json=parsed.json,
    )
