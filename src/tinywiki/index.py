"""
index.py — Load the multistream index into an in-memory lookup table.

The index that ships beside a multistream dump
(e.g. enwiki-latest-pages-articles-multistream-index.txt.bz2) is bz2-compressed
text with one line per article:

    OFFSET:PAGE_ID:TITLE

OFFSET is the byte position of the bz2 stream holding the page, PAGE_ID is
the page's <id> inside that stream, and TITLE is everything after the second
colon (titles such as "Help:Contents" contain colons themselves).

The table is built once and is read-only afterwards, so request threads can
share it without locking.
"""

import bz2
import itertools
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

import marisa_trie

from tinywiki.errors import IndexLoadError
from tinywiki.progress_display import ProgressDisplay


logger = logging.getLogger(__name__)

OFFSET_PATTERN = re.compile(r"[0-9]+")

# Index lines between progress panel updates
PROGRESS_EVERY = 10000


class IndexEntry(NamedTuple):
    """Location of one article: the stream offset and the page id inside it."""

    offset: int
    page_id: str


class LookupTable(Mapping):
    """
    Read-only mapping of exact title -> IndexEntry.

    Titles are case-sensitive and matched exactly as they appear in the
    index. When built with suggestions=True, a MARISA trie over all titles
    backs prefix suggestions.
    """

    def __init__(self, entries: Dict[str, IndexEntry], suggestions: bool = False):
        self._entries = entries
        self._trie: Optional[marisa_trie.Trie] = None
        if suggestions:
            self._trie = marisa_trie.Trie(entries.keys())

    def __getitem__(self, title: str) -> IndexEntry:
        return self._entries[title]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, title) -> bool:
        return title in self._entries

    @property
    def has_suggestions(self) -> bool:
        return self._trie is not None

    def suggest(self, prefix: str, limit: int = 10) -> List[str]:
        """
        Return up to `limit` titles starting with `prefix`, sorted.

        The trie is walked only until `limit` keys are found, so for very
        short prefixes the result is a sample of the matching titles rather
        than the alphabetically first ones.

        Raises:
            RuntimeError: If the table was built without suggestions
        """
        if self._trie is None:
            raise RuntimeError("title suggestions were not enabled when the index was loaded")
        if limit <= 0:
            return []
        return sorted(itertools.islice(self._trie.iterkeys(prefix), limit))


def parse_index_line(line: str) -> Tuple[str, IndexEntry]:
    """
    Parse one `offset:id:title` line.

    Returns:
        (title, IndexEntry) tuple

    Raises:
        ValueError: If the line has fewer than three fields or the offset is
            not a non-negative base-10 integer
    """
    fields = line.split(":", 2)
    if len(fields) < 3:
        raise ValueError(f"expected 'offset:id:title', got {line!r}")

    offset_field, page_id, title = fields
    if not OFFSET_PATTERN.fullmatch(offset_field):
        raise ValueError(f"invalid offset {offset_field!r}")

    return title, IndexEntry(int(offset_field), page_id.strip())


def load_index(
    source: Union[str, Path, BinaryIO],
    *,
    suggestions: bool = False,
    progress: bool = False,
) -> LookupTable:
    """
    Decompress and parse an index container into a LookupTable.

    Malformed lines, including lines that are not valid UTF-8, are logged
    and skipped; a later line for an already seen title replaces the
    earlier entry.

    Args:
        source: Path to the .bz2 index, or a readable binary file object
        suggestions: Also build the title trie used by LookupTable.suggest()
        progress: Show a live progress panel while loading

    Raises:
        IndexLoadError: If the index cannot be opened or decompressed
    """
    name = source if isinstance(source, (str, Path)) else getattr(source, "name", "<stream>")
    logger.info(f"Loading index from {name}")

    entries: Dict[str, IndexEntry] = {}
    skipped = 0
    line_num = 0

    try:
        with ProgressDisplay("Loading index", enabled=progress, update_interval=1) as display:
            with bz2.open(source, "rb") as f:
                for line_num, raw in enumerate(f, 1):
                    raw = raw.rstrip(b"\r\n")
                    if not raw:
                        continue

                    # UnicodeDecodeError is a ValueError; bad bytes skip one line
                    try:
                        title, entry = parse_index_line(raw.decode("utf-8"))
                    except ValueError as e:
                        skipped += 1
                        logger.warning(f"Index line {line_num}: {e}")
                        continue

                    entries[title] = entry
                    if line_num % PROGRESS_EVERY == 0:
                        display.update(Lines=line_num, Titles=len(entries), Skipped=skipped)

            display.update(Lines=line_num, Titles=len(entries), Skipped=skipped)
    except (OSError, EOFError) as e:
        raise IndexLoadError(f"cannot read index {name} (after line {line_num}): {e}") from e

    logger.info(f"  -> Loaded {len(entries):,} titles ({skipped:,} lines skipped)")

    if suggestions:
        logger.info("  Building title trie for suggestions...")

    return LookupTable(entries, suggestions=suggestions)
