from __future__ import annotations
from dataclasses import dataclass

from .color import Color
from .image import Image


@dataclass
class SourceCache:
    """
    Decode-once, recompute-on-parameter-change state for one interactive session.

    `source` and its estimated `background` survive threshold changes and are
    dropped only when a new image is selected (or on reset).
    """
    threshold: float
    source: Image | None = None
    background: Color | None = None
    result: Image | None = None

    def invalidate(self) -> None:
        self.source = None
        self.background = None
        self.result = None

    @property
    def is_empty(self) -> bool:
        return self.source is None
