"""
store.py — Title-level article lookup over an index and a content container.

WikiStore is what the HTTP server and the command-line tools talk to: it
resolves a title through the LookupTable and hands the (offset, page id)
pair to the extractor. It holds no per-request state, so one instance
serves any number of concurrent requests.
"""

import logging
from typing import List

from tinywiki.config import Settings
from tinywiki.errors import TitleNotFoundError
from tinywiki.extractor import extract_article
from tinywiki.index import IndexEntry, LookupTable, load_index
from tinywiki.segment import ContentContainer


logger = logging.getLogger(__name__)


class WikiStore:
    """Article lookup by title."""

    def __init__(self, table: LookupTable, container: ContentContainer):
        self.table = table
        self.container = container

    @classmethod
    def open(cls, settings: Settings, progress: bool = False) -> "WikiStore":
        """
        Load the index and open the content container named in `settings`.

        Raises:
            IndexLoadError: If the index cannot be read
            OSError: If the content container cannot be opened
        """
        table = load_index(settings.index_path, suggestions=settings.suggestions, progress=progress)
        container = ContentContainer(settings.content_path)
        logger.info(f"Opened content container {container.path} ({container.size:,} bytes)")
        return cls(table, container)

    def locate(self, title: str) -> IndexEntry:
        """
        Find the index entry for `title`.

        The exact title is tried first. URL-style titles ("Ada_Lovelace")
        fall back to the spaced form ("Ada Lovelace").

        Raises:
            TitleNotFoundError: If neither form is in the index
        """
        entry = self.table.get(title)
        if entry is None and "_" in title:
            entry = self.table.get(title.replace("_", " "))
        if entry is None:
            raise TitleNotFoundError(title)
        return entry

    def article(self, title: str) -> str:
        """
        Return the raw wikitext for `title`.

        Raises:
            ArticleNotFoundError: If the title is unknown or its page is
                missing from the indexed segment
            ExtractionError: If the segment is corrupt
        """
        entry = self.locate(title)
        logger.info(f"Title {title!r}: offset {entry.offset}, id {entry.page_id}")
        return extract_article(self.container, entry.offset, entry.page_id)

    def suggest(self, prefix: str, limit: int = 10) -> List[str]:
        return self.table.suggest(prefix, limit)

    def close(self):
        self.container.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
