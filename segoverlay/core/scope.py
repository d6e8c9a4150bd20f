"""Scoped ownership of intermediate tensor buffers."""

from typing import Any, List, TypeVar

T = TypeVar("T")


class TensorScope:
    """Hold intermediate buffers for exactly one computation.

    Buffers registered with :meth:`track` are released when the scope
    exits, whether the computation finished or raised.

    Example:
        with TensorScope() as scope:
            tensor = scope.track(make_tensor())
            ...
    """

    def __init__(self):
        self._buffers: List[Any] = []
        self._released = False

    @property
    def released(self) -> bool:
        """True once the scope has been closed."""
        return self._released

    def __len__(self) -> int:
        return len(self._buffers)

    def track(self, buffer: T) -> T:
        """Register a buffer (or a list/tuple of buffers) with this scope.

        Args:
            buffer: Array, tensor or sequence of them.

        Returns:
            The same buffer, for inline use.

        Raises:
            RuntimeError: If the scope was already released.
        """
        if self._released:
            raise RuntimeError("Cannot track buffers on a released scope")
        self._buffers.append(buffer)
        return buffer

    def release(self) -> None:
        """Drop the scope's references to every tracked buffer.

        A buffer is freed only once the caller holds no other reference to it.
        """
        self._buffers.clear()
        self._released = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

