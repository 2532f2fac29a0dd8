import argparse
import logging
import re
from pathlib import Path
from pixelgrid.config import (
    EXAMPLES_DIR, PATTERNS_DIR, PATTERN_COLS, PATTERN_ROWS, PATTERN_THRESHOLD, PATTERN_MAX_CELLS,
    SPLIT_MAX_CELLS,
)
from pixelgrid.errors import PixelGridError
from pixelgrid.io_utils import list_images
from pixelgrid.logger import configure_logging, log_error
from pixelgrid.pipeline import GridJob
from pixelgrid.tiling.crop import archive_name
from pixelgrid.tiling.grid import GridSpec

logger = logging.getLogger("pixelgrid.scripts.export_patterns")


def parse_split(value: str):
    m = re.fullmatch(r"(\d+)x(\d+)", value.strip().lower())
    if m is None:
        raise argparse.ArgumentTypeError(f"expected ROWSxCOLS, got {value!r}")
    return int(m.group(1)), int(m.group(2))


def main():
    parser = argparse.ArgumentParser(description="Export pattern JSON (and optional tile zips) for a folder of images.")
    parser.add_argument("--examples", type=str, default=str(EXAMPLES_DIR), help="Folder with input images")
    parser.add_argument("--out", type=str, default=str(PATTERNS_DIR), help="Output folder")
    parser.add_argument("--cols", type=int, default=PATTERN_COLS)
    parser.add_argument("--rows", type=int, default=PATTERN_ROWS)
    parser.add_argument("--threshold", type=int, default=PATTERN_THRESHOLD)
    parser.add_argument("--mode", type=str, default="binary", choices=["binary", "label"])
    parser.add_argument("--split", type=parse_split, default=None,
                        help="Also split each image into ROWSxCOLS tiles and write a zip")
    parser.add_argument("--log-level", type=str, default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    spec = GridSpec(cols=args.cols, rows=args.rows, threshold=args.threshold).validate(PATTERN_MAX_CELLS)

    failed = 0
    images = list_images(args.examples)
    for img_path in images:
        job = GridJob()
        try:
            job.load(img_path)
            job.configure(spec)
            pattern = job.analyze(mode=args.mode)
            (out_dir / f"{img_path.stem}.pattern.json").write_text(pattern.to_json(), encoding="utf-8")
            logger.info("%s -> %dx%d pattern", img_path.name, pattern.cols, pattern.rows)

            if args.split:
                rows, cols = args.split
                job.configure(GridSpec(cols=cols, rows=rows), max_cells=SPLIT_MAX_CELLS)
                tiles = job.split()
                job.package(out_dir / archive_name(job.basename))
                logger.info("  split into %d tiles", len(tiles))
        except (PixelGridError, ValueError) as e:
            failed += 1
            log_error(e, context=f"export_patterns:{img_path.name}")
            continue

    logger.info("Done: %d image(s), %d failed", len(images), failed)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
