import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from . import config
from .config import load_config
from .core import MediaImporterApp
from .exceptions import InvalidConfiguration
from .metadata.extract import MetadataExtractor


def setup_logging(dest_root: Optional[Path], verbose: bool):
    """Sets up logging to the console and, when known, a file in the destination."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if dest_root is not None:
        # Create dest root if it doesn't exist so we can log there
        dest_root.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(dest_root / config.LOG_FILE_NAME, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Media Importer: de-duplicate and sort media into date folders")

    p.add_argument("-c", "--config", type=Path, default=Path(config.DEFAULT_CONFIG_FILE),
                   help="Config file, .toml or .yaml (default: config.toml)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--keep-going", action="store_true",
                   help="Collect per-file copy errors and report them at the end instead of aborting")
    p.add_argument("--report-csv", type=Path, default=None, help="Write one CSV row per decided file")
    p.add_argument("--dump-metadata", type=Path, nargs="+", metavar="FILE",
                   help="Print all metadata tags of the given files and exit")

    return p.parse_args(argv)


def dump_metadata(paths) -> int:
    extractor = MetadataExtractor()
    status = 0
    for path in paths:
        print(f"Metadata of {path}")
        try:
            tags = extractor.dump(path)
        except Exception as e:
            logging.error(f"Failed to read metadata of {path}: {e}")
            status = 1
            continue
        for key, value in tags.items():
            print(f"  {key}: {value}")
        print(f"  => capture time: {extractor.capture_timestamp(path)}")
    return status


def main(argv=None):
    args = parse_args(argv)

    if args.dump_metadata:
        setup_logging(None, args.verbose)
        sys.exit(dump_metadata(args.dump_metadata))

    # 1. Config
    try:
        cfg = load_config(args.config)
        cfg.extension_set()
    except InvalidConfiguration as e:
        setup_logging(None, args.verbose)
        logging.error(f"Invalid configuration: {e}")
        sys.exit(1)

    overrides = {}
    if args.keep_going:
        overrides["keep_going"] = True
    if args.report_csv:
        overrides["report_csv"] = args.report_csv
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    # 2. Setup
    setup_logging(cfg.target_dir, args.verbose)
    logging.info("=== Media Importer Started ===")
    logging.info(f"Existing: {', '.join(cfg.existing_paths) or '(none)'}")
    logging.info(f"Search:   {', '.join(cfg.search_paths)}")
    logging.info(f"Target:   {cfg.target_dir}")

    # 3. Execution
    app = MediaImporterApp(cfg)
    try:
        stats = app.run()
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during import.")
        sys.exit(1)

    stats.log_summary()
    if stats.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
