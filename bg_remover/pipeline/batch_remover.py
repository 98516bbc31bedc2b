# pipeline/batch_remover.py
from pathlib import Path
import logging
import os
from typing import Callable, Iterable, Iterator, List

from dotenv import load_dotenv

from ..models.image import Image
from ..services.background_service import BackgroundService, DEFAULT_THRESHOLD
from ..services.image_service import ImageService

# ------------------------------------------------------------------
# env‑vars
load_dotenv()
OUTPUT_DIR = os.getenv("OUTPUT_DIR_PATH", "data/transparent")

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
def iter_remove_backgrounds(
    gallery: Iterable[Image],
    *,
    threshold: float                     = DEFAULT_THRESHOLD,
    background_service: BackgroundService = None,
    image_service: ImageService          = None,
    output_dir: str | Path | None        = OUTPUT_DIR,
    root: str | Path | None              = None,
    save: bool                           = False,
    on_error: Callable[[Image, Exception], None] | None = None,
) -> Iterator[Image]:
    """
    For every Image in *gallery*, as it arrives:
        • estimate the background from its corners
        • clear alpha on pixels within *threshold* of it
        • point the result at <output_dir>/<sub-folder under root>/<stem><suffix>.png
          (and write it if *save*)
    Yields the processed Images; the originals are left untouched.
    A file that fails is logged, passed to *on_error* and skipped.
    """
    if background_service is None:
        background_service = BackgroundService(image_service=image_service)
    image_service = image_service or background_service.image_service
    background_service.remover.validate_threshold(threshold)

    for img in gallery:
        try:
            result = background_service.remove_background(img, threshold)
            result.path = image_service.output_path(img, output_dir, root=root)
            if save:
                image_service.save(result)
                logger.info(f"Saved {result.path}")
        except (OSError, ValueError) as err:
            logger.error(f"Failed on {img.name or 'image'}: {err}")
            if on_error is not None:
                on_error(img, err)
            continue
        yield result


def remove_backgrounds(gallery: Iterable[Image], **kwargs) -> List[Image]:
    """List-returning wrapper around iter_remove_backgrounds."""
    return list(iter_remove_backgrounds(gallery, **kwargs))
