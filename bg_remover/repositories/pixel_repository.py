# repositories/pixel_repository.py
from typing import List
import numpy as np

from ..models.color import Color
from ..models.errors import InvalidDimensions
from ..models.pixel_buffer import PixelBuffer, CHANNELS


class PixelRepository:
    """
    Pixel access on PixelBuffer entities.

    • Row-major addressing: channel index of (x, y) is (y * width + x) * 4.
    • Whole-buffer colour distances, computed in one vectorised pass.
    """

    @staticmethod
    def pixel_index(x: int, y: int, width: int) -> int:
        return (y * width + x) * CHANNELS

    def get_pixel(self, buffer: PixelBuffer, x: int, y: int) -> Color:
        """RGB of the pixel at (x, y); alpha is dropped."""
        if not (0 <= x < buffer.width and 0 <= y < buffer.height):
            raise InvalidDimensions(f"({x}, {y}) lies outside a {buffer.width}x{buffer.height} buffer")
        i = self.pixel_index(x, y, buffer.width)
        r, g, b = buffer.data[i:i + 3]
        return Color(int(r), int(g), int(b))

    def corner_pixels(self, buffer: PixelBuffer) -> List[Color]:
        """Top-left, top-right, bottom-left, bottom-right."""
        if buffer.width < 1 or buffer.height < 1:
            raise InvalidDimensions(f"Cannot sample corners of a {buffer.width}x{buffer.height} buffer")
        right, bottom = buffer.width - 1, buffer.height - 1
        return [
            self.get_pixel(buffer, 0, 0),
            self.get_pixel(buffer, right, 0),
            self.get_pixel(buffer, 0, bottom),
            self.get_pixel(buffer, right, bottom),
        ]

    @staticmethod
    def distances_from(buffer: PixelBuffer, color: Color) -> np.ndarray:
        """
        Euclidean RGB distance of every pixel to *color*.

        Returns
        -------
        np.ndarray  (width * height,)  float64, in row-major pixel order
        """
        rgb = buffer.data.reshape(-1, CHANNELS)[:, :3].astype(np.int32)
        diff = rgb - np.asarray(color, dtype=np.int32)
        return np.sqrt(np.einsum("ij,ij->i", diff, diff))
