"""TorchScript backend for the segmentation model collaborator."""

import time
from pathlib import Path
from typing import List

import numpy as np
import torch

from .base import ModelLoadError


def _flatten_outputs(outputs) -> List[torch.Tensor]:
    if torch.is_tensor(outputs):
        return [outputs]
    if isinstance(outputs, dict):
        outputs = list(outputs.values())
    if isinstance(outputs, (list, tuple)):
        flat = []
        for item in outputs:
            flat.extend(_flatten_outputs(item))
        return flat
    return []


class TorchScriptModel:
    """YOLO-style segmentation network exported with TorchScript.

    Attributes:
        module: Loaded ``torch.jit.ScriptModule``.
        input_size: Side of the square network input.
        device: Torch device the module runs on.
        channels_last_input: Feed NHWC tensors as-is instead of NCHW.
    """

    def __init__(
        self,
        module: torch.nn.Module,
        input_size: int = 640,
        device: str = "cpu",
        channels_last_input: bool = False,
    ):
        self.module = module
        self.input_size = input_size
        self.device = torch.device(device)
        self.channels_last_input = channels_last_input

    def execute(self, tensor: np.ndarray) -> List[np.ndarray]:
        """Run one forward pass.

        Args:
            tensor: float32 array of shape (1, input_size, input_size, 3).

        Returns:
            Output arrays in the order the module returns them.
        """
        expected = (1, self.input_size, self.input_size, 3)
        if tuple(tensor.shape) != expected:
            raise ValueError(f"Expected input shape {expected}, got {tuple(tensor.shape)}")

        inputs = torch.from_numpy(np.ascontiguousarray(tensor, dtype=np.float32))
        if not self.channels_last_input:
            inputs = inputs.permute(0, 3, 1, 2).contiguous()
        inputs = inputs.to(self.device)

        with torch.no_grad():
            raw_outputs = self.module(inputs)

        outputs = _flatten_outputs(raw_outputs)
        if not outputs:
            raise RuntimeError(f"Model returned no tensors (got {type(raw_outputs).__name__})")
        return [out.detach().float().cpu().numpy() for out in outputs]

    def warmup(self) -> None:
        """Run a zero tensor through the network once."""
        dummy = np.zeros((1, self.input_size, self.input_size, 3), dtype=np.float32)
        self.execute(dummy)


def load_model(
    path: str,
    input_size: int = 640,
    device: str = "cpu",
    channels_last_input: bool = False,
) -> TorchScriptModel:
    """Load a TorchScript model and warm it up.

    Args:
        path: Path to the exported ``.torchscript``/``.pt`` file.
        input_size: Side of the square network input.
        device: Device to run the model on ('cuda' or 'cpu').
        channels_last_input: Whether the model expects NHWC input.

    Returns:
        Ready-to-use TorchScriptModel.

    Raises:
        ModelLoadError: If the file is missing, unloadable, or the warm-up
            pass fails.
    """
    if not Path(path).exists():
        raise ModelLoadError(f"Model file not found: {path}")

    print(f"Loading segmentation model from {path}...")
    start = time.perf_counter()
    try:
        module = torch.jit.load(str(path), map_location=device)
        module.eval()
        model = TorchScriptModel(
            module,
            input_size=input_size,
            device=device,
            channels_last_input=channels_last_input,
        )
        model.warmup()
    except Exception as e:
        raise ModelLoadError(f"Failed to load model {path}: {e}") from e

    elapsed_ms = (time.perf_counter() - start) * 1000
    print(f"Model ready (loaded in {elapsed_ms:.0f}ms)")
    return model
