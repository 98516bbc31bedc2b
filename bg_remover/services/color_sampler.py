# services/color_sampler.py
import logging

from ..models.color import Color
from ..models.pixel_buffer import PixelBuffer
from ..repositories.pixel_repository import PixelRepository

logger = logging.getLogger(__name__)


class ColorSampler:
    """
    Background colour estimate from the four corner pixels.

    Works well when the backdrop is flat and the subject does not touch the
    border. Anything with an ``estimate(buffer) -> Color`` method can stand in
    for it inside BackgroundService.
    """

    def __init__(self) -> None:
        self.pixel_repository = PixelRepository()

    @staticmethod
    def _round_half_up(total: int, count: int) -> int:
        # floor(total / count + 0.5) in integer arithmetic
        return (2 * total + count) // (2 * count)

    def estimate(self, buffer: PixelBuffer) -> Color:
        """
        Args:
            buffer (PixelBuffer): at least 1x1; a 1x1 buffer yields its only pixel.

        Returns:
            (Color): per-channel mean of the corners, ties rounded half-up.
        """
        corners = self.pixel_repository.corner_pixels(buffer)
        color = Color(*(self._round_half_up(sum(channel), len(corners)) for channel in zip(*corners)))
        logger.debug(f"Estimated background {color.as_hex()} from corners {corners}")
        return color
