"""
extractor.py — Pull one page's wikitext out of a decompressed segment.

A segment holds about a hundred consecutive <page> elements:

    <page>
      <title>...</title>
      <ns>0</ns>
      <id>PAGE_ID</id>
      <revision>
        <id>REVISION_ID</id>
        <contributor><username>...</username><id>USER_ID</id></contributor>
        <text bytes="..." xml:space="preserve">WIKITEXT</text>
      </revision>
    </page>

The segment is tokenized with expat into start/end/character-data tokens and
fed to PageScanner, a small state machine that remembers whether the current
page's own <id> (a direct child of <page>) matched the target. Only the
target page's <text> is buffered, and the scan stops as soon as that element
closes, so the rest of the segment is never decompressed or parsed.

Usage:
    with ContentContainer(dump_path) as container:
        wikitext = extract_article(container, entry.offset, entry.page_id)
"""

import logging
import re
from collections import deque
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Union
from xml.parsers import expat

from tinywiki.errors import ArticleNotFoundError, MalformedMarkupError
from tinywiki.segment import DEFAULT_CHUNK_SIZE, ContentContainer


logger = logging.getLogger(__name__)

# Segments are sibling <page> elements without a common root, which expat
# rejects as "junk after document element". A synthetic root makes them one
# document. It is named after the dump's own root so that the </mediawiki>
# at the end of the last segment closes it.
SEGMENT_ROOT = b"<mediawiki>"
XML_DECLARATION = re.compile(rb"^\s*<\?xml[^>]*\?>")
XML_DECLARATION_START = b"<?xml"

TOKEN_CHUNK_SIZE = 64 * 1024


class StartElement(NamedTuple):
    name: str


class EndElement(NamedTuple):
    name: str


class CharData(NamedTuple):
    text: str


Token = Union[StartElement, EndElement, CharData]


def local_name(name: str) -> str:
    """Drop any namespace prefix: 'mw:page' -> 'page'."""
    return name.rpartition(":")[2]


def read_head(stream, chunk_size: int = TOKEN_CHUNK_SIZE) -> bytes:
    """
    Read the start of `stream` with any leading XML declaration removed.

    Only the first segment of a dump carries a declaration. Reading goes on
    until the declaration is complete or the input can no longer begin one,
    so any chunk size works.
    """
    head = b""
    while True:
        chunk = stream.read(chunk_size)
        head += chunk
        start = head.lstrip()
        undecided = (
            XML_DECLARATION_START.startswith(start) or start.startswith(XML_DECLARATION_START)
        ) and b"?>" not in start
        if not chunk or not undecided:
            return XML_DECLARATION.sub(b"", head, count=1)


def iter_tokens(stream, chunk_size: int = TOKEN_CHUNK_SIZE, offset: Optional[int] = None) -> Iterator[Token]:
    """
    Tokenize markup read from `stream` (any object with read(size) -> bytes).

    Tokens are produced lazily, one chunk of input at a time. When expat
    fails, every token it produced before the error is yielded first and
    MalformedMarkupError is raised afterwards, so a consumer that stops early
    never sees errors in markup it did not need.

    Args:
        stream: Binary stream of decompressed markup
        chunk_size: Bytes read from the stream per parser feed
        offset: Segment offset, used in error messages only

    Raises:
        MalformedMarkupError: If the markup cannot be parsed
    """
    pending: deque = deque()

    parser = expat.ParserCreate()
    parser.buffer_text = True
    parser.StartElementHandler = lambda name, attrs: pending.append(StartElement(local_name(name)))
    parser.EndElementHandler = lambda name: pending.append(EndElement(local_name(name)))
    parser.CharacterDataHandler = lambda data: pending.append(CharData(data))

    parser.Parse(SEGMENT_ROOT, False)
    pending.clear()

    chunk = read_head(stream, chunk_size)
    while True:
        try:
            parser.Parse(chunk, False)
        except expat.ExpatError as e:
            while pending:
                yield pending.popleft()
            raise MalformedMarkupError(
                f"malformed markup in segment at offset {offset}: {e}",
                offset,
                line=e.lineno,
                column=e.offset,
            ) from e

        while pending:
            yield pending.popleft()

        chunk = stream.read(chunk_size)
        if not chunk:
            return


class ScanState(Enum):
    OUTSIDE = "outside"
    IN_PAGE = "in_page"
    IN_ID = "in_id"
    IN_TEXT = "in_text"
    FOUND_ID = "found_id"
    IN_MATCH_TEXT = "in_match_text"


# States whose character data is kept
BUFFERING_STATES = frozenset({ScanState.IN_ID, ScanState.IN_MATCH_TEXT})


class PageScanner:
    """
    Per-extraction state machine locating the page whose id is `page_id`.

    Feed it tokens in document order; feed() returns the page's text once the
    matching <text> element closes and None until then.

    An <id> only counts as the page's own id when it closes at the depth of
    the enclosing <page>; revision and contributor ids are buffered but
    discarded without comparison. The depth is checked on close only.
    """

    def __init__(self, page_id: str):
        self.page_id = page_id
        self.depth = 0
        self.page_depth = 0
        self.state = ScanState.OUTSIDE
        self.buffer: List[str] = []

    def feed(self, token: Token) -> Optional[str]:
        if isinstance(token, CharData):
            self.char_data(token.text)
            return None
        if isinstance(token, StartElement):
            self.start_element(token.name)
            return None
        if isinstance(token, EndElement):
            return self.end_element(token.name)
        raise TypeError(f"unexpected token: {token!r}")

    def start_element(self, name: str) -> None:
        self.depth += 1

        if name == "page":
            self.page_depth = self.depth
            self.state = ScanState.IN_PAGE
        elif name == "id" and self.state is not ScanState.FOUND_ID:
            self.state = ScanState.IN_ID
        elif name == "text":
            if self.state is ScanState.FOUND_ID:
                self.state = ScanState.IN_MATCH_TEXT
            else:
                self.state = ScanState.IN_TEXT

    def end_element(self, name: str) -> Optional[str]:
        self.depth -= 1

        if name == "page":
            self.state = ScanState.OUTSIDE
            self.buffer.clear()
        elif name == "id" and self.state is not ScanState.FOUND_ID:
            self.state = ScanState.IN_PAGE
            if self.depth == self.page_depth:
                if "".join(self.buffer).strip() == self.page_id:
                    self.state = ScanState.FOUND_ID
            self.buffer.clear()
        elif name == "text":
            if self.state is ScanState.IN_MATCH_TEXT:
                return "".join(self.buffer)
            self.state = ScanState.IN_PAGE
        return None

    def char_data(self, text: str) -> None:
        if self.state in BUFFERING_STATES:
            self.buffer.append(text)


def extract_article(
    container: ContentContainer,
    offset: int,
    page_id: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """
    Return the raw wikitext of page `page_id` from the segment at `offset`.

    Args:
        container: Open content container
        offset: Byte offset of the bz2 stream holding the page
        page_id: The page's <id>, as listed in the index
        chunk_size: Compressed bytes read per decompression step

    Raises:
        ArticleNotFoundError: If the segment ends without the page
        MalformedMarkupError: If the segment's markup cannot be parsed
        CorruptSegmentError: If the bytes at offset are not valid bz2 data
    """
    scanner = PageScanner(page_id)

    with container.open_segment(offset, chunk_size) as segment:
        for token in iter_tokens(segment, offset=offset):
            text = scanner.feed(token)
            if text is not None:
                logger.debug(
                    f"Extracted page {page_id} at offset {offset}: {len(text):,} chars "
                    f"({segment.total_decompressed:,} bytes decompressed)"
                )
                return text

        if segment.truncated:
            logger.debug(f"Segment at offset {offset} ended before its end-of-stream marker")

    logger.debug(f"Page {page_id} not found at offset {offset}")
    raise ArticleNotFoundError(page_id, offset)
