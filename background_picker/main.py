"""Command line entry point.

Two modes share one configuration and one cache:

- ``--pregenerate`` fills the cache for the whole tree, prints a summary and
  exits 0 only if every image ended with a stored thumbnail;
- otherwise thumbnails are streamed to the console surface as they complete,
  grouped under the folder tree built from the same scan.

Configuration problems stop the program with exit code 2 before scanning.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from background_picker.config import PickerConfig, build_config
from background_picker.errors import ConfigurationError
from background_picker.folder_tree import build_folder_tree
from background_picker.logger import get_logger, setup_logger
from background_picker.scanner import scan_images
from background_picker.settings_manager import SettingsManager
from background_picker.surfaces import ConsoleSurface, stream_to_surface
from background_picker.thumbnail_engine.cache_store import ThumbnailCacheStore
from background_picker.thumbnail_engine.orchestrator import ThumbnailOrchestrator
from background_picker.thumbnail_engine.pregenerate import pregenerate

EXIT_CONFIG_ERROR = 2

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="background-picker",
        description="Browse a folder of images through the shared thumbnail cache.",
    )
    parser.add_argument("directory", nargs="?", help="Folder to scan for images")
    parser.add_argument("-d", "--directory", dest="directory_opt", metavar="DIR", help="Folder to scan for images")
    parser.add_argument(
        "-t",
        "--thumbnail-size",
        help="Size class (normal, large, x-large, xx-large) or a pixel bound up to 1024",
    )
    parser.add_argument("-w", "--workers", type=int, help="Number of render workers")
    parser.add_argument("--cache-dir", help="Thumbnail cache root (default: $XDG_CACHE_HOME/thumbnails)")
    parser.add_argument("--pregenerate", action="store_true", help="Generate all thumbnails, then exit")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories (comma separated)")
    parser.add_argument("--settings", help="Path to the settings JSON file")
    return parser


def _apply_logging_options(args: argparse.Namespace) -> None:
    # Reflected into the environment so loggers set up later pick them up too.
    if args.log_level:
        os.environ["BACKGROUND_PICKER_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["BACKGROUND_PICKER_LOG_CATS"] = args.log_cats
    setup_logger(logging.DEBUG if args.debug else None)


def _run_pregenerate(config: PickerConfig, orchestrator: ThumbnailOrchestrator) -> int:
    summary = pregenerate(orchestrator, scan_images(config.scan_root), config.size_class)
    print(summary.describe())
    return summary.exit_code


def _run_interactive(config: PickerConfig, orchestrator: ThumbnailOrchestrator) -> int:
    images = list(scan_images(config.scan_root))
    tree = build_folder_tree(config.scan_root, images)
    for folder in tree:
        logger.info("%s", tree.label(folder))
    if not images:
        logger.info("No images found in %s", config.scan_root)
        return 0
    surface = ConsoleSurface(tree, orchestrator.store.artifact_path)
    stream_to_surface(orchestrator, images, config.size_class, surface)
    return 0


def run(argv: list[str] | None = None) -> int:
    """Parse ``argv`` (without the program name), run one mode, return the exit code."""
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    _apply_logging_options(args)

    settings = SettingsManager(args.settings)
    try:
        config = build_config(
            settings,
            directory=args.directory_opt or args.directory,
            thumbnail_size=args.thumbnail_size,
            workers=args.workers,
            cache_dir=args.cache_dir,
            pregenerate=args.pregenerate,
            debug=args.debug,
        )
    except ConfigurationError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    logger.debug(
        "config: root=%s size=%s workers=%s cache=%s",
        config.scan_root,
        config.size_class.value,
        config.workers,
        config.cache_root,
    )
    store = ThumbnailCacheStore(config.cache_root)
    with ThumbnailOrchestrator(store, workers=config.workers) as orchestrator:
        if config.pregenerate:
            return _run_pregenerate(config, orchestrator)
        return _run_interactive(config, orchestrator)


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
