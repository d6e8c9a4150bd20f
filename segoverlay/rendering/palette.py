"""Class labels and color palette."""

from pathlib import Path
from typing import List, Sequence, Tuple

from ..core.utils import hex_to_rgb


DEFAULT_LABELS = ["object"]

DEFAULT_COLORS = [
    "#ff3838",
    "#ff9d97",
    "#ff701f",
    "#ffb21d",
    "#cfd231",
    "#48f90a",
    "#92cc17",
    "#3ddb86",
    "#1a9334",
    "#00d4bb",
    "#2c99a8",
    "#00c2ff",
    "#344593",
    "#6473ff",
    "#0018ec",
    "#8438ff",
    "#520085",
    "#cb38ff",
    "#ff95c8",
    "#ff37c7",
]


def load_labels(path: str) -> List[str]:
    """Read class labels from a text file, one per line.

    Blank lines are skipped.
    """
    text = Path(path).read_text(encoding="utf-8")
    labels = [line.strip() for line in text.splitlines() if line.strip()]
    if not labels:
        raise ValueError(f"No labels found in {path}")
    return labels


def color_for_class(class_id: int, colors: Sequence[str]) -> Tuple[int, int, int]:
    """Pick a palette color, wrapping around the palette."""
    if not colors:
        colors = DEFAULT_COLORS
    return hex_to_rgb(colors[class_id % len(colors)])


def label_for_class(class_id: int, labels: Sequence[str]) -> str:
    if 0 <= class_id < len(labels):
        return labels[class_id]
    return str(class_id)
