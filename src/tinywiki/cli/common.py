"""Arguments and setup shared by the tinywiki command-line tools."""

import argparse
import logging
from pathlib import Path

from tinywiki.config import Settings, apply_settings, load_settings


def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    """Add --config and the index/content file flags."""
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: $TINYWIKI_CONFIG if set)",
    )
    parser.add_argument(
        "-i", "--index",
        type=Path,
        default=None,
        help="The index file to use (multistream-index.txt.bz2)",
    )
    parser.add_argument(
        "-d", "--content",
        type=Path,
        default=None,
        help="The content file to use (multistream.xml.bz2)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )


def settings_from_args(args: argparse.Namespace) -> Settings:
    """
    Build Settings from the settings file and command-line overrides.

    Raises:
        ConfigError: If the file or any flag value is invalid
    """
    settings = load_settings(args.config)
    overrides = {
        "index": args.index,
        "content": args.content,
        "log_level": args.log_level,
        "host": getattr(args, "host", None),
        "port": getattr(args, "port", None),
        "static_dir": getattr(args, "static", None),
        "suggestions": getattr(args, "suggest", None),
    }
    return apply_settings(settings, overrides, source="command line")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level_number,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
