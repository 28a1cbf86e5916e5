"""
Exception hierarchy for tinywiki.

Two families matter to callers:

- ArticleNotFoundError: a normal negative result. The title is unknown, or
  the segment at the indexed offset does not hold the requested page id.
- ExtractionError: the one request failed because its segment is corrupt
  (bad compressed data or unparseable markup). Other requests are unaffected.

IndexLoadError is fatal at startup; the service cannot run without an index.
"""


class TinyWikiError(Exception):
    """Base class for all tinywiki errors."""

    pass


class ConfigError(TinyWikiError, ValueError):
    """Raised when a settings file or value is invalid."""

    pass


class IndexLoadError(TinyWikiError):
    """Raised when the index container cannot be opened or decompressed."""

    pass


class ArticleNotFoundError(TinyWikiError, LookupError):
    """Raised when the requested page id is not in the segment at offset."""

    def __init__(self, page_id: str, offset: int | None = None, message: str | None = None):
        self.page_id = page_id
        self.offset = offset
        if message is None:
            message = f"page id {page_id!r} not found in segment at offset {offset}"
        super().__init__(message)


class TitleNotFoundError(ArticleNotFoundError):
    """Raised when a title is not present in the index."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(page_id="", offset=None, message=f"title not in index: {title!r}")


class ExtractionError(TinyWikiError):
    """Per-request failure: the segment could not be decoded."""

    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        super().__init__(message)


class CorruptSegmentError(ExtractionError):
    """Raised when the bytes at an offset are not valid compressed data."""

    pass


class MalformedMarkupError(ExtractionError):
    """Raised when the decompressed markup cannot be tokenized."""

    def __init__(self, message: str, offset: int | None = None,
                 line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        super().__init__(message, offset)
