from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

from .pixel_buffer import PixelBuffer


@dataclass
class Image:
    """
    Simple data object: decoded RGBA pixels (+ optional source path for bookkeeping).
    No codec logic outside the repositories.
    """
    pixels: PixelBuffer
    path: Path | None = None # Source of the image, or where it will be written.

    @property
    def name(self) -> str | None:
        return self.path.name if self.path else None
