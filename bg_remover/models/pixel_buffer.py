from __future__ import annotations
from dataclasses import dataclass
from numbers import Integral
import numpy as np

from .errors import InvalidDimensions, InvalidPixelData

CHANNELS = 4  # R, G, B, A


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Row-major RGBA pixels, 8 bits per channel.

    `data` is the flat channel sequence (r, g, b, a, r, g, b, a, ...) with
    len(data) == width * height * 4. The buffer keeps its own read-only copy,
    so neither the caller nor the processing code can change it afterwards.
    """
    width: int
    height: int
    data: np.ndarray  # Shape (width * height * 4,), dtype uint8.

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral) or value < 0:
                raise InvalidDimensions(f"{name} must be a non-negative integer, got {value!r}")
            object.__setattr__(self, name, int(value))

        channels = _as_channels(self.data)
        expected = self.width * self.height * CHANNELS
        if channels.size != expected:
            raise InvalidDimensions(
                f"{self.width}x{self.height} RGBA needs {expected} channel values, got {channels.size}"
            )
        channels.flags.writeable = False
        object.__setattr__(self, "data", channels)

    # ── Constructors ─────────────────────────────────────────────────
    @classmethod
    def from_array(cls, rgba: np.ndarray) -> "PixelBuffer":
        """Wrap an (H, W, 4) RGBA array."""
        rgba = np.asarray(rgba)
        if rgba.ndim != 3 or rgba.shape[2] != CHANNELS:
            raise InvalidDimensions(f"Expected an (H, W, 4) array, got shape {rgba.shape}")
        height, width = rgba.shape[:2]
        return cls(width=width, height=height, data=rgba)

    @classmethod
    def filled(cls, width: int, height: int, rgba=(0, 0, 0, 255)) -> "PixelBuffer":
        """Solid-colour buffer, handy for fixtures and placeholders."""
        row = np.asarray(rgba, dtype=np.uint8)
        return cls(width=width, height=height, data=np.tile(row, width * height))

    # ── Views ────────────────────────────────────────────────────────
    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def as_array(self) -> np.ndarray:
        """Read-only (H, W, 4) view of the channel data."""
        return self.data.reshape(self.height, self.width, CHANNELS)

    def to_bytes(self) -> bytes:
        return self.data.tobytes()

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (self.width, self.height) == (other.width, other.height) and np.array_equal(self.data, other.data)

    __hash__ = None

    def __repr__(self):
        return f"PixelBuffer(width={self.width}, height={self.height})"


def _as_channels(data) -> np.ndarray:
    """Copy *data* into a fresh flat uint8 array, rejecting values that don't fit a byte."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(data, dtype=np.uint8).copy()

    arr = np.asarray(data)
    if arr.dtype != np.uint8 and arr.size:
        if arr.dtype.kind not in "iu":
            raise InvalidPixelData(f"Channel values must be integers, got dtype {arr.dtype}")
        if arr.min() < 0 or arr.max() > 255:
            raise InvalidPixelData("Channel values must lie in 0-255")
    return np.array(arr, dtype=np.uint8).reshape(-1)
