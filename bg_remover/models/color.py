from __future__ import annotations
import math
from numbers import Integral
from typing import NamedTuple, Sequence

from .errors import InvalidPixelData


class Color(NamedTuple):
    """
    Value-object for an RGB triple, each channel 0-255.
    Carries no alpha: transparency plays no part in colour matching.
    """
    red: int
    green: int
    blue: int

    @classmethod
    def of(cls, value: Sequence[int]) -> "Color":
        """Build a Color from any 3-item sequence, validating the channels."""
        if isinstance(value, cls):
            return value
        channels = tuple(value)
        if len(channels) != 3:
            raise InvalidPixelData(f"Colour needs 3 channels, got {len(channels)}: {value!r}")
        for ch in channels:
            if isinstance(ch, bool) or not isinstance(ch, Integral) or not 0 <= ch <= 255:
                raise InvalidPixelData(f"Colour channel out of range 0-255: {value!r}")
        return cls(*(int(ch) for ch in channels))

    def as_hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self)


def color_distance(c1: Sequence[int], c2: Sequence[int]) -> float:
    """Euclidean distance between two RGB colours (0 .. ~441.67)."""
    return math.sqrt(sum((int(a) - int(b)) ** 2 for a, b in zip(c1[:3], c2[:3])))
