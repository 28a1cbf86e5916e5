#!/usr/bin/env python3
"""
tinywiki - Serve articles from a multistream encyclopedia dump over HTTP.

Loads the multistream index into memory, then answers
GET /wiki/<title> with the article's raw wikitext. Other paths are served
from a static directory.

Usage:
    tinywiki [-i INDEX] [-d CONTENT] [--port PORT] [options]

Example:
    tinywiki -i data/enwiki-latest-pages-articles-multistream-index.txt.bz2 \\
             -d data/enwiki-latest-pages-articles-multistream.xml.bz2 \\
             --port 8080 --suggest
"""

import argparse
import logging
import sys
from pathlib import Path

from tinywiki.cli.common import add_source_arguments, configure_logging, settings_from_args
from tinywiki.errors import ConfigError, IndexLoadError
from tinywiki.server import serve
from tinywiki.store import WikiStore


logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Serve articles from a multistream encyclopedia dump",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_source_arguments(parser)
    parser.add_argument("--host", default=None, help="Address to bind (default: all interfaces)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 8080)")
    parser.add_argument("--static", type=Path, default=None, help="Static file directory (default: static)")
    parser.add_argument(
        "--suggest",
        action="store_true",
        default=None,
        help="Build a title trie and enable /suggest?q=PREFIX",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point for the tinywiki server."""
    args = parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings)

    try:
        store = WikiStore.open(settings, progress=sys.stderr.isatty())
    except IndexLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: cannot open content file: {e}", file=sys.stderr)
        return 1

    with store:
        serve(store, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
