"""
tinywiki - Read single articles out of a bz2 multistream encyclopedia dump.

Core API:
    load_index(path) -> LookupTable
    extract_article(container, offset, page_id) -> str
"""

from tinywiki.errors import (
    ArticleNotFoundError,
    ConfigError,
    CorruptSegmentError,
    ExtractionError,
    IndexLoadError,
    MalformedMarkupError,
    TinyWikiError,
    TitleNotFoundError,
)
from tinywiki.extractor import extract_article
from tinywiki.index import IndexEntry, LookupTable, load_index
from tinywiki.segment import ContentContainer
from tinywiki.store import WikiStore

__version__ = "0.1.0"

__all__ = [
    "ArticleNotFoundError",
    "ConfigError",
    "ContentContainer",
    "CorruptSegmentError",
    "ExtractionError",
    "IndexEntry",
    "IndexLoadError",
    "LookupTable",
    "MalformedMarkupError",
    "TinyWikiError",
    "TitleNotFoundError",
    "WikiStore",
    "extract_article",
    "load_index",
]
