"""Headless batch processing runner."""

import json
import sys
from pathlib import Path
from typing import List

from tqdm import tqdm

from ..config import ProcessingConfig
from ..core.io import load_image, save_image
from ..detection.base import ModelLoadError, detections_to_jsonable
from ..pipeline import PipelineError, PipelineResult, RunOptions, SegmentationPipeline


OUTPUT_SUFFIX = "_overlay.png"


def create_model(config: ProcessingConfig):
    """Load the model named in the config.

    Args:
        config: Processing configuration.

    Returns:
        Loaded model collaborator.

    Raises:
        ModelLoadError: If the model cannot be loaded.
    """
    from ..detection.model import load_model

    return load_model(
        config.model.path,
        input_size=config.model.input_size,
        device=config.model.device,
        channels_last_input=config.model.channels_last_input,
    )


def resolve_output_paths(config: ProcessingConfig) -> List[Path]:
    """Work out where each rendered image goes.

    A single input with an output path that has a suffix is written to that
    path. Otherwise the output path is a directory and each input becomes
    ``<stem>_overlay.png`` inside it. Repeated stems get a counter,
    ``<stem>_1_overlay.png`` and so on, so no input overwrites another.
    """
    output = Path(config.output.path)
    inputs = [Path(p) for p in config.input_paths]
    if len(inputs) == 1 and output.suffix:
        return [output]

    used = set()
    paths = []
    for path in inputs:
        stem, count = path.stem, 0
        while stem in used:
            count += 1
            stem = f"{path.stem}_{count}"
        used.add(stem)
        paths.append(output / f"{stem}{OUTPUT_SUFFIX}")
    return paths


def print_timings(result: PipelineResult) -> None:
    timings = result.timings
    print(
        f"Found {len(result.detections)} objects | "
        f"preprocess {timings.get('preprocess', 0.0):.1f}ms, "
        f"inference {timings.get('inference', 0.0):.1f}ms, "
        f"postprocess {timings.get('postprocess', 0.0):.1f}ms, "
        f"draw {timings.get('draw', 0.0):.1f}ms, "
        f"total {timings.get('total', 0.0):.1f}ms"
    )


def process_image(
    pipeline: SegmentationPipeline,
    input_path: str,
    output_path: Path,
    options: RunOptions,
    write_json: bool = False,
) -> PipelineResult:
    """Run the pipeline on one file and write the results.

    Args:
        pipeline: Segmentation pipeline.
        input_path: Image file to read.
        output_path: Rendered image destination.
        options: Per-run parameters.
        write_json: Also write ``<output>.json`` with the detections.

    Returns:
        The pipeline result.
    """
    image = load_image(input_path)
    result = pipeline.run(image, options)
    save_image(str(output_path), result.canvas)

    if write_json:
        json_path = output_path.with_suffix(".json")
        records = detections_to_jsonable(result.detections, pipeline.labels)
        json_path.write_text(json.dumps(records, indent=2), encoding="utf-8")

    return result


def run_headless(config: ProcessingConfig) -> int:
    """Run headless batch processing.

    Args:
        config: Processing configuration.

    Returns:
        Exit status: 0 if every image was processed, 1 otherwise.

    Raises:
        SystemExit: If the model cannot be loaded.
    """
    try:
        model = create_model(config)
    except ModelLoadError as e:
        print(f"Error loading model: {e}", file=sys.stderr)
        sys.exit(1)

    pipeline = SegmentationPipeline.from_config(model, config)
    options = RunOptions.from_config(config.detection, config.render)
    print(f"Mode: {options.mode.value}, confidence threshold: {options.confidence_threshold:.2f}")

    outputs = resolve_output_paths(config)
    failures = 0
    pairs = list(zip(config.input_paths, outputs))
    for input_path, output_path in tqdm(pairs, desc="Processing", disable=len(pairs) < 2):
        try:
            result = process_image(
                pipeline, input_path, output_path, options, write_json=config.output.write_json
            )
        except (PipelineError, IOError) as e:
            failures += 1
            print(f"Error processing {input_path}: {e}", file=sys.stderr)
            continue
        print_timings(result)
        print(f"Output saved to: {output_path}")

    return 1 if failures else 0
