from pathlib import Path
from typing import Callable, Iterable, Union, Iterator
import os
from dotenv import load_dotenv
from ..models.image import Image
from ..models.pixel_buffer import PixelBuffer
from ..repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()


class ImageService:
    """I/O helpers and output naming.  No colour-keying logic."""
    def __init__(self):
        self.OUTPUT_SUFFIX = os.getenv("OUTPUT_SUFFIX", "_no_bg")
        self.image_repository = ImageRepository()

    def create_image(self, pixels: PixelBuffer, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def load_bytes(self, data: bytes, filename: str | None = None) -> Image:
        """Decode an uploaded file; *filename* is kept for output naming only."""
        return self.image_repository.decode(data, filename)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
        on_error: Callable[[Path, Exception], None] | None = None,
    ) -> Iterator[Image]:
        """
        Yield images lazily instead of returning a gigantic list.
        Unreadable files are reported through *on_error*.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts,
                                              on_error=on_error)

    def save(self, image: Image) -> None:
        """
        Business-level method to write the image (always PNG, to keep alpha).
        """
        self.image_repository.save(image)

    def output_name(self, source: Image | None) -> str:
        """`photo.jpg` -> `photo_no_bg.png`; unnamed sources become `image_no_bg.png`."""
        stem = source.path.stem if source is not None and source.path else "image"
        return f"{stem}{self.OUTPUT_SUFFIX}.png"

    def output_path(
        self,
        source: Image,
        output_dir: Union[str, Path, None] = None,
        root: Union[str, Path, None] = None,
    ) -> Path:
        """
        Where the processed copy of *source* goes (next to it by default).

        With *root* (the folder a batch was scanned from), the source's
        sub-folder under *root* is kept below *output_dir*, so
        `root/a/logo.png` and `root/b/logo.png` get distinct outputs.
        """
        if output_dir is None:
            return (source.path.parent if source.path else Path(".")) / self.output_name(source)
        output_dir = Path(output_dir)
        if root is not None and source.path is not None and source.path.is_relative_to(root):
            output_dir = output_dir / source.path.parent.relative_to(root)
        return output_dir / self.output_name(source)

    def encode_png(self, image: Image) -> bytes:
        return self.image_repository.encode_png(image.pixels)

    def get_image_dimensions(self, img: Image):
        """(height, width), matching numpy's shape order."""
        return img.pixels.height, img.pixels.width
