"""Image I/O utilities."""

from pathlib import Path

import numpy as np
from PIL import Image


IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".webp"}


def is_image_file(filename: str) -> bool:
    """Check if filename has an image extension.

    Args:
        filename: Path to file.

    Returns:
        True if file has a supported image extension.
    """
    return Path(filename).suffix.lower() in IMAGE_EXTENSIONS


def load_image(path: str) -> np.ndarray:
    """Decode an image file into an RGB raster.

    Args:
        path: Path to image file.

    Returns:
        RGB uint8 array of shape (H, W, 3).

    Raises:
        IOError: If the file cannot be decoded.
    """
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGB"))
    except (OSError, ValueError) as e:
        raise IOError(f"Cannot read image file: {path}") from e


def save_image(path: str, image: np.ndarray) -> None:
    """Write an RGB raster to disk, creating parent directories.

    Args:
        path: Output path; the format follows the suffix.
        image: RGB uint8 array.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(image.astype(np.uint8)).save(out)
