# services/background_remover.py
import logging
import math
from numbers import Real
from typing import Sequence
import numpy as np

from ..models.color import Color
from ..models.errors import InvalidThreshold
from ..models.pixel_buffer import PixelBuffer, CHANNELS
from ..repositories.pixel_repository import PixelRepository

logger = logging.getLogger(__name__)


class BackgroundRemover:
    """
    Colour-key alpha masking.

    • Every pixel closer than `threshold` to the background colour gets alpha 0.
    • Everything else is copied byte for byte, original alpha included.
    • Always returns a **new** PixelBuffer; the input is never touched.
    """

    def __init__(self) -> None:
        self.pixel_repository = PixelRepository()

    @staticmethod
    def validate_threshold(threshold) -> float:
        if isinstance(threshold, bool) or not isinstance(threshold, Real):
            raise InvalidThreshold(f"Threshold must be a number, got {threshold!r}")
        value = float(threshold)
        if not math.isfinite(value) or value < 0:
            raise InvalidThreshold(f"Threshold must be finite and >= 0, got {threshold!r}")
        return value

    def background_mask(self, buffer: PixelBuffer, background: Color, threshold: float) -> np.ndarray:
        """
        Boolean (width * height,) mask of background pixels.

        The comparison is strict: a pixel exactly `threshold` away is kept.
        An exact colour match always counts as background, so threshold 0
        removes exact matches only.
        """
        distances = self.pixel_repository.distances_from(buffer, background)
        return (distances < threshold) | (distances == 0)

    def apply(self, buffer: PixelBuffer, background: Sequence[int], threshold: float) -> PixelBuffer:
        threshold = self.validate_threshold(threshold)
        background = Color.of(background)

        mask = self.background_mask(buffer, background, threshold)
        out = buffer.data.copy()
        out.reshape(-1, CHANNELS)[mask, 3] = 0

        logger.debug(
            f"Cleared alpha on {int(mask.sum())}/{buffer.pixel_count} pixels "
            f"(bg={background.as_hex()}, threshold={threshold})"
        )
        return PixelBuffer(width=buffer.width, height=buffer.height, data=out)
