import argparse
import logging
import sys
from pathlib import Path
from typing import Iterator, List

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.image import Image
from ..pipeline.batch_remover import iter_remove_backgrounds, OUTPUT_DIR
from ..services.background_remover import BackgroundRemover
from ..services.background_service import DEFAULT_THRESHOLD
from ..services.image_service import ImageService

logger = logging.getLogger("bg_remover.cli")


def _threshold(value: str) -> float:
    try:
        return BackgroundRemover.validate_threshold(float(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid threshold: {value!r} (needs a finite number >= 0)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bg-remove",
        description="Make the flat background of images transparent (corner colour key).",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="image files or folders")
    parser.add_argument("-t", "--threshold", type=_threshold, default=DEFAULT_THRESHOLD,
                        help=f"max RGB distance still treated as background (default {DEFAULT_THRESHOLD:g})")
    parser.add_argument("-o", "--output-dir", type=Path, default=None,
                        help=f"where to write PNGs (default: next to each input for files, {OUTPUT_DIR} for folders)")
    parser.add_argument("-r", "--recursive", action="store_true", help="descend into sub-folders")
    parser.add_argument("-s", "--suffix", default=None, help="output name suffix (default from OUTPUT_SUFFIX)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _gallery(path: Path, image_service: ImageService, recursive: bool, failures: List[Path]) -> Iterator[Image]:
    """
    Stream the images under *path*. Anything that can't be read, whether a
    bad file inside a folder or a bad top-level argument, lands in *failures*.
    """
    if path.is_dir():
        yield from image_service.stream_gallery(
            path, recursive=recursive, on_error=lambda p, err: failures.append(p),
        )
        return
    try:
        img = image_service.load(path)
    except (OSError, ValueError) as err:
        logger.error(f"Skipping {path}: {err}")
        failures.append(path)
        return
    yield img


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    image_service = ImageService()
    if args.suffix is not None:
        image_service.OUTPUT_SUFFIX = args.suffix

    failures: List[Path] = []
    written = 0
    for path in args.paths:
        output_dir = args.output_dir
        if output_dir is None and path.is_dir():
            output_dir = Path(OUTPUT_DIR)
        for _ in iter_remove_backgrounds(
            _gallery(path, image_service, args.recursive, failures),
            threshold=args.threshold,
            image_service=image_service,
            output_dir=output_dir,
            root=path if path.is_dir() else None,
            save=True,
            on_error=lambda img, err: failures.append(img.path),
        ):
            written += 1

    logger.info(f"Done: {written} written, {len(failures)} failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
