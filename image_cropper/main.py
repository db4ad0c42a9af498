import argparse
import os
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from image_cropper.crop.crop_operations import run_crop_dialog
from image_cropper.crop.errors import CropError, UserCancelled
from image_cropper.logger import CATS_ENV, LEVEL_ENV, get_logger, setup_logger
from image_cropper.settings_manager import SettingsManager, parse_aspect_ratio
from image_cropper.styles import apply_app_font

EXIT_SAVED = 0
EXIT_CANCELLED = 1
EXIT_FAILED = 2

_BASE_DIR = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parent))

# --- CLI logging options -----------------------------------------------------
# Our own logging options are parsed before Qt sees argv, reflected into
# IMAGE_CROPPER_LOG_LEVEL / IMAGE_CROPPER_LOG_CATS, and removed from argv.


def _apply_cli_logging_options(argv: list[str]) -> list[str]:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    args, remaining = parser.parse_known_args(argv[1:])
    if args.log_level:
        os.environ[LEVEL_ENV] = args.log_level
    if args.log_cats:
        os.environ[CATS_ENV] = args.log_cats
    setup_logger()
    return [argv[0], *remaining]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-cropper",
        description="Interactively crop an image and save it as a compressed JPEG.",
    )
    parser.add_argument("input", help="Image file to crop")
    parser.add_argument("--name", help="Output file stem (default: input file stem)")
    parser.add_argument("--aspect", help='Aspect ratio such as "1:1", "16:9", "1.5" or "free"')
    parser.add_argument("--max-size", type=int, help="Longest output side in pixels")
    parser.add_argument("--quality", type=float, help="JPEG quality between 0 and 1")
    parser.add_argument("--circular", action="store_true", default=None, help="Preview a circular crop (1:1 only)")
    parser.add_argument("--output-dir", help="Directory for the output file (default: next to the input)")
    parser.add_argument("--settings", help="Settings JSON path")
    # Accepted here too so they show up in --help; already consumed above
    parser.add_argument("--log-level", help="Set log level (debug, info, warning, error)")
    parser.add_argument("--log-cats", help="Comma-separated log categories, e.g. session,export")
    return parser


def option_overrides(args: argparse.Namespace) -> dict:
    """Map CLI flags onto CropOptions keyword overrides; unset flags are left out."""
    overrides: dict = {}
    if args.aspect is not None:
        overrides["aspect_ratio"] = parse_aspect_ratio(args.aspect)
    if args.max_size is not None:
        overrides["max_output_size"] = args.max_size
    if args.quality is not None:
        overrides["compression_quality"] = args.quality
    if args.circular is not None:
        overrides["circular_preview"] = args.circular
    return overrides


def main(argv: list[str] | None = None) -> int:
    """Application entrypoint (packaging-friendly)."""
    argv = list(sys.argv if argv is None else argv)
    argv = _apply_cli_logging_options(argv)
    logger = get_logger("main")

    parser = build_parser()
    args, qt_args = parser.parse_known_args(argv[1:])

    settings_path = args.settings or (_BASE_DIR / "settings.json").as_posix()
    settings = SettingsManager(settings_path)
    try:
        options = settings.crop_options(**option_overrides(args))
    except ValueError as e:
        parser.error(str(e))

    source = Path(args.input)
    output_dir = Path(args.output_dir) if args.output_dir else source.resolve().parent

    app = QApplication.instance() or QApplication([argv[0], *qt_args])
    apply_app_font(app)

    try:
        result = run_crop_dialog(None, str(source), args.name, options, presets=settings.crop_presets())
    except UserCancelled:
        logger.info("Crop cancelled: %s", source)
        return EXIT_CANCELLED
    except CropError as e:
        logger.error("Crop failed: %s", e)
        return EXIT_FAILED

    try:
        target = result.output_file.save(output_dir)
    except OSError as e:
        logger.error("Failed to write crop to %s: %s", output_dir, e)
        return EXIT_FAILED
    print(target)
    return EXIT_SAVED


if __name__ == "__main__":
    sys.exit(main())
