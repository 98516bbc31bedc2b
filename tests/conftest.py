import numpy as np
import pytest
from PIL import Image as PILImage

from bg_remover.models.pixel_buffer import PixelBuffer


@pytest.fixture(autouse=True)
def _default_env(monkeypatch):
    for var in ("DEFAULT_THRESHOLD", "OUTPUT_SUFFIX", "VALID_IMAGE_EXTENSIONS"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_buffer():
    """Build a PixelBuffer from rows of RGB or RGBA tuples (RGB gets alpha 255)."""
    def _make(rows):
        rgba = [[tuple(px) + (255,) if len(px) == 3 else tuple(px) for px in row] for row in rows]
        return PixelBuffer.from_array(np.array(rgba, dtype=np.uint8))
    return _make


@pytest.fixture
def framed_buffer(make_buffer):
    """3x3: black frame around a reddish centre."""
    black, red = (0, 0, 0), (200, 10, 10)
    return make_buffer([
        [black, black, black],
        [black, red, black],
        [black, black, black],
    ])


@pytest.fixture
def write_png(tmp_path):
    """Save an (H, W, C) uint8 array as PNG, return the path."""
    def _write(arr, name="image.png"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(np.asarray(arr, dtype=np.uint8)).save(path)
        return path
    return _write
