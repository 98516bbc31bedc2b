from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Union

from dotenv import load_dotenv

from ..models.color import Color
from ..models.image import Image
from ..models.source_cache import SourceCache
from .background_remover import BackgroundRemover
from .color_sampler import ColorSampler
from .image_service import ImageService

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = float(os.getenv("DEFAULT_THRESHOLD", "20"))


class BackgroundService:
    """
    Business-level helper for background removal.

    • `remove_background` is the stateless one-shot: estimate, mask, new Image.
    • `select` / `set_threshold` / `reset` drive one interactive session: the
      decoded source and its background estimate are cached, so moving the
      threshold only re-runs the mask.
    """

    def __init__(
            self,
            sampler: ColorSampler | None = None,
            remover: BackgroundRemover | None = None,
            image_service: ImageService | None = None,
            default_threshold: float = DEFAULT_THRESHOLD,
    ):
        self.sampler = sampler or ColorSampler()
        self.remover = remover or BackgroundRemover()
        self.image_service = image_service or ImageService()
        self.default_threshold = self.remover.validate_threshold(default_threshold)
        self.cache = SourceCache(threshold=self.default_threshold)

    # --------------------------------------------------------------
    def remove_background(
            self,
            img: Image,
            threshold: float | None = None,
            background: Color | None = None,
    ) -> Image:
        """
        Returns a **new** Image (path renamed with the output suffix) whose
        background pixels are transparent. *img* is left as it was.
        """
        if threshold is None:
            threshold = self.default_threshold
        if background is None:
            background = self.sampler.estimate(img.pixels)
        pixels = self.remover.apply(img.pixels, background, threshold)
        new_path = self.image_service.output_path(img) if img.path else None
        return self.image_service.create_image(pixels, new_path)

    # ── Session: decode once, recompute on threshold change ──────────
    def select(self, img: Image, threshold: float | None = None) -> Image:
        """
        New source image: drop whatever was cached and process it once.
        The threshold falls back to the default unless one is given.
        """
        threshold = self.remover.validate_threshold(
            self.default_threshold if threshold is None else threshold
        )
        self.cache.invalidate()
        self.cache.source = img
        self.cache.background = self.sampler.estimate(img.pixels)
        self.cache.threshold = threshold
        logger.info(
            f"Selected {img.name or 'upload'} ({img.pixels.width}x{img.pixels.height}), "
            f"background {self.cache.background.as_hex()}"
        )
        return self._process()

    def load(self, path: Union[str, Path], threshold: float | None = None) -> Image:
        return self.select(self.image_service.load(path), threshold)

    def set_threshold(self, threshold: float) -> Image | None:
        """
        Re-run the mask over the cached source. Returns None when nothing is
        selected yet (the threshold is still remembered for the next run).
        """
        threshold = self.remover.validate_threshold(threshold)
        self.cache.threshold = threshold
        if self.cache.is_empty:
            return None
        logger.info(f"Threshold changed to {threshold}")
        return self._process()

    def reset(self) -> None:
        self.cache.invalidate()
        self.cache.threshold = self.default_threshold

    def _process(self) -> Image:
        self.cache.result = self.remove_background(
            self.cache.source,
            threshold=self.cache.threshold,
            background=self.cache.background,
        )
        return self.cache.result

    # ── Read-only views ──────────────────────────────────────────────
    @property
    def has_image(self) -> bool:
        return not self.cache.is_empty

    @property
    def source(self) -> Image | None:
        return self.cache.source

    @property
    def result(self) -> Image | None:
        return self.cache.result

    @property
    def background(self) -> Color | None:
        return self.cache.background

    @property
    def threshold(self) -> float:
        return self.cache.threshold
