from pathlib import Path
from typing import Callable, Union, Iterable, List, Iterator
from io import BytesIO
import logging
import os
import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv
from ..models.image import Image
from ..models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_EXTS = ".png,.jpg,.jpeg,.bmp,.webp,.tif,.tiff"


class ImageRepository:
    """
    Handles file I/O and encoding for Image entities.

    Decoding goes through OpenCV, encoding through Pillow; everything in
    between is an RGBA8 PixelBuffer.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS", DEFAULT_EXTS)
        self.VALID_EXTS = {ext.strip().lower() for ext in exts.split(",") if ext.strip()}

    @staticmethod
    def create_image(pixels: PixelBuffer, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """
        OpenCV hands back gray, BGR or BGRA at 8 or 16 bits.
        Normalise all of them to RGBA uint8 (opaque when there was no alpha).
        """
        if arr.dtype == np.uint16:
            arr = (arr.astype(np.uint32) * 255 + 32767) // 65535
            arr = arr.astype(np.uint8)
        elif arr.dtype != np.uint8:
            raise ValueError(f"Unsupported sample type: {arr.dtype}")

        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        channels = arr.shape[2]
        if channels == 1:
            return cv2.cvtColor(arr[:, :, 0], cv2.COLOR_GRAY2RGBA)
        if channels == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        if channels == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        raise ValueError(f"Unsupported channel count: {channels}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> Image:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        # imread can't cope with non-ASCII paths on some platforms; decode from bytes instead
        arr = cv2.imdecode(np.fromfile(str(path), dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        return Image(pixels=PixelBuffer.from_array(cls._to_rgba(arr)), path=path)

    @classmethod
    def decode(cls, data: bytes, name: Union[str, Path] = None) -> Image:
        """Decode an in-memory encoded image (upload body, etc.)."""
        arr = None
        if data:
            arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise ValueError(f"Could not decode image data{f' for {name}' if name else ''}")
        return cls.create_image(PixelBuffer.from_array(cls._to_rgba(arr)), name)

    @staticmethod
    def to_pil(pixels: PixelBuffer) -> PILImage.Image:
        return PILImage.fromarray(np.ascontiguousarray(pixels.as_array()))

    @classmethod
    def encode_png(cls, pixels: PixelBuffer) -> bytes:
        buffer = BytesIO()
        cls.to_pil(pixels).save(buffer, format="PNG")
        return buffer.getvalue()

    @classmethod
    def save(cls, image: Image) -> None:
        if image.path is None:
            raise ValueError("Image has no path to save to")
        image.path.parent.mkdir(parents=True, exist_ok=True)
        cls.to_pil(image.pixels).save(image.path, format="PNG")

    def _candidates(self, folder: Path, recursive: bool, exts: Iterable[str] | None) -> List[Path]:
        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        found = folder.rglob("*") if recursive else folder.iterdir()
        return sorted(p for p in found if p.is_file() and p.suffix.lower() in allowed)

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
        on_error: Callable[[Path, Exception], None] | None = None,
    ) -> Iterator[Image]:
        """
        Decode the images under *folder* one at a time, in path order.

        A file that can't be decoded is skipped and handed to *on_error*
        (if given) so the caller can account for it.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        for p in self._candidates(folder, recursive, exts):
            try:
                img = self.load(p)
            except (OSError, ValueError) as err:
                logger.warning(f"Skipping {p.name}: {err}")
                if on_error is not None:
                    on_error(p, err)
                continue
            yield img
