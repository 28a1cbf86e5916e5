#!/usr/bin/env python3
"""
tinywiki-extract - Print the raw wikitext of articles from a multistream dump.

Titles are matched case-sensitively, exactly as they appear in the index.
Each article is written to stdout; with several titles, articles are
separated by a header line.

Usage:
    tinywiki-extract [-i INDEX] [-d CONTENT] TITLE [TITLE ...]

Example:
    tinywiki-extract -i enwiki-latest-pages-articles-multistream-index.txt.bz2 \\
                     -d enwiki-latest-pages-articles-multistream.xml.bz2 \\
                     "Ada Lovelace" > ada.wiki
"""

import argparse
import logging
import sys

from tinywiki.cli.common import add_source_arguments, configure_logging, settings_from_args
from tinywiki.errors import ArticleNotFoundError, ConfigError, ExtractionError, IndexLoadError
from tinywiki.store import WikiStore


logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the wikitext of articles from a multistream dump",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_source_arguments(parser)
    parser.add_argument("titles", nargs="+", help="Article titles to extract")
    parser.add_argument("--progress", action="store_true", help="Show index loading progress")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point for tinywiki-extract."""
    args = parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings)

    try:
        store = WikiStore.open(settings, progress=args.progress)
    except IndexLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: cannot open content file: {e}", file=sys.stderr)
        return 1

    failures = 0
    with store:
        for title in args.titles:
            try:
                text = store.article(title)
            except (ArticleNotFoundError, ExtractionError) as e:
                logger.error(f"{title}: {e}")
                failures += 1
                continue

            if len(args.titles) > 1:
                sys.stdout.write(f"==> {title} <==\n")
            sys.stdout.write(text)
            if not text.endswith("\n"):
                sys.stdout.write("\n")

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
