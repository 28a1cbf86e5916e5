"""Tests for the page state machine and article extraction."""
import io
from concurrent.futures import ThreadPoolExecutor

import pytest

from tinywiki.errors import (
    ArticleNotFoundError,
    CorruptSegmentError,
    ExtractionError,
    MalformedMarkupError,
)
from tinywiki.extractor import (
    CharData,
    EndElement,
    PageScanner,
    ScanState,
    StartElement,
    extract_article,
    iter_tokens,
    local_name,
    read_head,
)
from tinywiki.segment import ContentContainer

from dumpfiles import MEDIAWIKI_FOOTER, MEDIAWIKI_HEADER, page_xml, write_multistream


def single_segment(temp_dir, markup, name="segment.xml.bz2"):
    path = temp_dir / name
    offsets = write_multistream(path, [markup])
    return path, offsets[0]


# =============================================================================
# Tokenizer
# =============================================================================

def test_local_name():
    assert local_name("page") == "page"
    assert local_name("mw:page") == "page"


def test_iter_tokens_basic():
    stream = io.BytesIO(b"<page><id> 7 </id></page>")
    tokens = list(iter_tokens(stream))
    assert tokens == [
        StartElement("page"),
        StartElement("id"),
        CharData(" 7 "),
        EndElement("id"),
        EndElement("page"),
    ]


def test_iter_tokens_accepts_sibling_roots_and_declaration():
    stream = io.BytesIO(b'<?xml version="1.0" encoding="utf-8"?>\n<page/><page/>')
    names = [t.name for t in iter_tokens(stream) if isinstance(t, StartElement)]
    assert names == ["page", "page"]


@pytest.mark.parametrize("chunk_size", [1, 4, 7, 64])
def test_iter_tokens_declaration_split_across_chunks(chunk_size):
    stream = io.BytesIO(b'<?xml version="1.0"?>\n<page><id>3</id></page>')
    tokens = list(iter_tokens(stream, chunk_size=chunk_size))
    assert tokens == [
        StartElement("page"),
        StartElement("id"),
        CharData("3"),
        EndElement("id"),
        EndElement("page"),
    ]


def test_read_head_leaves_plain_markup_alone():
    stream = io.BytesIO(b"<page/><page/>")
    assert read_head(stream, chunk_size=2) == b"<p"
    assert stream.read() == b"age/><page/>"


def test_iter_tokens_unescapes_entities():
    stream = io.BytesIO(b"<text>a &lt; b &amp;&amp; c</text>")
    text = "".join(t.text for t in iter_tokens(stream) if isinstance(t, CharData))
    assert text == "a < b && c"


def test_iter_tokens_handles_multibyte_split_across_chunks():
    data = "<text>Ελληνικά ✓</text>".encode("utf-8")
    tokens = list(iter_tokens(io.BytesIO(data), chunk_size=3))
    text = "".join(t.text for t in tokens if isinstance(t, CharData))
    assert text == "Ελληνικά ✓"


def test_iter_tokens_yields_tokens_before_error():
    stream = io.BytesIO(b"<page><id>1</id></page><page><id>2</page>")
    seen = []
    with pytest.raises(MalformedMarkupError) as excinfo:
        for token in iter_tokens(stream, offset=99):
            seen.append(token)

    assert seen[:5] == [
        StartElement("page"),
        StartElement("id"),
        CharData("1"),
        EndElement("id"),
        EndElement("page"),
    ]
    assert excinfo.value.offset == 99
    assert excinfo.value.line == 1


# =============================================================================
# PageScanner
# =============================================================================

def feed_all(scanner, tokens):
    for token in tokens:
        result = scanner.feed(token)
        if result is not None:
            return result
    return None


def test_scanner_states_through_matching_page():
    scanner = PageScanner("9")

    scanner.feed(StartElement("page"))
    assert scanner.state is ScanState.IN_PAGE
    assert scanner.page_depth == 1

    scanner.feed(StartElement("id"))
    assert scanner.state is ScanState.IN_ID
    scanner.feed(CharData("9"))
    scanner.feed(EndElement("id"))
    assert scanner.state is ScanState.FOUND_ID

    # Revision id inside a matched page does not leave FOUND_ID
    scanner.feed(StartElement("revision"))
    scanner.feed(StartElement("id"))
    scanner.feed(CharData("1234"))
    scanner.feed(EndElement("id"))
    assert scanner.state is ScanState.FOUND_ID

    scanner.feed(StartElement("text"))
    assert scanner.state is ScanState.IN_MATCH_TEXT
    scanner.feed(CharData("beta "))
    scanner.feed(CharData("text"))
    assert scanner.feed(EndElement("text")) == "beta text"


def test_scanner_ignores_text_of_other_pages():
    scanner = PageScanner("9")
    result = feed_all(scanner, [
        StartElement("page"),
        StartElement("id"), CharData("7"), EndElement("id"),
        StartElement("text"),
    ])
    assert result is None
    assert scanner.state is ScanState.IN_TEXT

    scanner.feed(CharData("alpha text"))
    assert scanner.buffer == []
    assert scanner.feed(EndElement("text")) is None
    assert scanner.state is ScanState.IN_PAGE

    scanner.feed(EndElement("page"))
    assert scanner.state is ScanState.OUTSIDE


def test_scanner_buffer_empty_after_rejected_id():
    scanner = PageScanner("9")
    feed_all(scanner, [
        StartElement("page"),
        StartElement("id"), CharData("7"),
    ])
    assert scanner.buffer == ["7"]

    scanner.feed(EndElement("id"))
    assert scanner.buffer == []
    assert scanner.state is ScanState.IN_PAGE

    feed_all(scanner, [
        EndElement("page"),
        StartElement("page"),
        StartElement("id"), CharData("9"),
    ])
    assert scanner.buffer == ["9"]


def test_scanner_nested_id_never_compared():
    """An id below the page's direct children is discarded on close."""
    scanner = PageScanner("42")
    feed_all(scanner, [
        StartElement("page"),
        StartElement("revision"),
        StartElement("contributor"),
        StartElement("id"), CharData("42"), EndElement("id"),
    ])
    assert scanner.state is ScanState.IN_PAGE
    assert scanner.buffer == []

    result = feed_all(scanner, [
        EndElement("contributor"),
        StartElement("text"), CharData("not me"), EndElement("text"),
        EndElement("revision"),
        EndElement("page"),
    ])
    assert result is None


def test_scanner_strips_id_whitespace():
    scanner = PageScanner("9")
    result = feed_all(scanner, [
        StartElement("page"),
        StartElement("id"), CharData("\n   9\n  "), EndElement("id"),
        StartElement("text"), CharData("found"), EndElement("text"),
    ])
    assert result == "found"


def test_scanner_empty_text_element():
    scanner = PageScanner("9")
    result = feed_all(scanner, [
        StartElement("page"),
        StartElement("id"), CharData("9"), EndElement("id"),
        StartElement("text"), EndElement("text"),
    ])
    assert result == ""


def test_scanner_rejects_unknown_token():
    with pytest.raises(TypeError):
        PageScanner("1").feed(("start", "page"))


# =============================================================================
# extract_article
# =============================================================================

@pytest.fixture
def alpha_beta_segment(temp_dir):
    markup = (
        page_xml("Alpha", "7", "alpha text", revision_id="9", user_id="42")
        + page_xml("Beta", "9", "beta text", revision_id="1001", user_id="43")
    )
    return single_segment(temp_dir, markup)


def test_extract_each_article_from_shared_segment(alpha_beta_segment):
    path, offset = alpha_beta_segment

    with ContentContainer(path) as container:
        assert extract_article(container, offset, "9") == "beta text"
        assert extract_article(container, offset, "7") == "alpha text"


def test_extract_missing_id_is_not_found(alpha_beta_segment):
    path, offset = alpha_beta_segment

    with ContentContainer(path) as container:
        with pytest.raises(ArticleNotFoundError) as excinfo:
            extract_article(container, offset, "404")

    assert excinfo.value.page_id == "404"
    assert excinfo.value.offset == offset
    assert isinstance(excinfo.value, LookupError)


def test_extract_never_matches_revision_or_contributor_id(alpha_beta_segment):
    """Page 7 has revision id 9 and contributor id 42."""
    path, offset = alpha_beta_segment

    with ContentContainer(path) as container:
        with pytest.raises(ArticleNotFoundError):
            extract_article(container, offset, "42")
        with pytest.raises(ArticleNotFoundError):
            extract_article(container, offset, "1001")


def test_extract_stops_before_invalid_trailing_markup(temp_dir):
    markup = (
        page_xml("Alpha", "7", "alpha text")
        + page_xml("Beta", "9", "beta text")
        + "  <page>\n    <id>10</id>\n    <text>unterminated <<<</revision>\n"
    )
    path, offset = single_segment(temp_dir, markup)

    with ContentContainer(path) as container:
        assert extract_article(container, offset, "9") == "beta text"
        with pytest.raises(MalformedMarkupError):
            extract_article(container, offset, "10")


def test_extract_stops_before_invalid_trailing_markup_in_later_chunk(temp_dir):
    filler = "x" * 300000
    markup = (
        page_xml("Beta", "9", "beta text")
        + page_xml("Filler", "11", filler)
        + "<page><id>12</id></nope>\n"
    )
    path, offset = single_segment(temp_dir, markup)

    with ContentContainer(path) as container:
        assert extract_article(container, offset, "9", chunk_size=64) == "beta text"


def test_malformed_markup_before_match_is_extraction_error(temp_dir):
    markup = "<page><id>7</id><text>oops</txet></page>\n" + page_xml("Beta", "9", "beta text")
    path, offset = single_segment(temp_dir, markup)

    with ContentContainer(path) as container:
        with pytest.raises(MalformedMarkupError) as excinfo:
            extract_article(container, offset, "9")

    assert isinstance(excinfo.value, ExtractionError)
    assert excinfo.value.offset == offset


def test_corrupt_segment_is_extraction_error(alpha_beta_segment):
    path, offset = alpha_beta_segment

    with ContentContainer(path) as container:
        with pytest.raises(CorruptSegmentError) as excinfo:
            extract_article(container, offset + 3, "9")

    assert isinstance(excinfo.value, ExtractionError)


def test_offset_past_end_is_not_found(alpha_beta_segment):
    path, _ = alpha_beta_segment

    with ContentContainer(path) as container:
        with pytest.raises(ArticleNotFoundError):
            extract_article(container, container.size + 1, "9")


def test_extract_from_first_and_last_segments(temp_dir):
    """The first stream opens <mediawiki>, the last one closes it."""
    segments = [
        '<?xml version="1.0" encoding="utf-8"?>\n' + MEDIAWIKI_HEADER + page_xml("First", "1", "first text"),
        page_xml("Middle", "2", "middle text"),
        page_xml("Last", "3", "last text") + MEDIAWIKI_FOOTER,
    ]
    path = temp_dir / "dump.xml.bz2"
    offsets = write_multistream(path, segments)

    with ContentContainer(path) as container:
        assert extract_article(container, offsets[0], "1") == "first text"
        assert extract_article(container, offsets[1], "2") == "middle text"
        assert extract_article(container, offsets[2], "3") == "last text"
        with pytest.raises(ArticleNotFoundError):
            extract_article(container, offsets[2], "4")


def test_extract_only_reads_its_own_segment(temp_dir):
    """A page in the next stream is not reachable from this offset."""
    path = temp_dir / "dump.xml.bz2"
    offsets = write_multistream(path, [
        page_xml("Here", "1", "here"),
        page_xml("There", "2", "there"),
    ])

    with ContentContainer(path) as container:
        with pytest.raises(ArticleNotFoundError):
            extract_article(container, offsets[0], "2")


def test_extract_preserves_markup_verbatim(sample_dump):
    with ContentContainer(sample_dump.content_path) as container:
        for title, (page_id, text) in sample_dump.articles.items():
            offset = sample_dump.offsets[1] if page_id in ("7", "9") else sample_dump.offsets[2]
            assert extract_article(container, offset, page_id) == text, title


def test_concurrent_extractions_return_their_own_article(temp_dir):
    segments = []
    expected = []
    for s in range(6):
        pages = []
        for p in range(5):
            page_id = str(s * 100 + p)
            text = f"segment {s} page {p} " + "lorem ipsum " * (p + 1) * 200
            pages.append(page_xml(f"T{page_id}", page_id, text, revision_id=str(s * 100 + p + 1)))
            expected.append((s, page_id, text))
        segments.append("".join(pages))

    path = temp_dir / "dump.xml.bz2"
    offsets = write_multistream(path, segments)

    with ContentContainer(path) as container:
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [
                (text, pool.submit(extract_article, container, offsets[s], page_id, 512))
                for s, page_id, text in expected * 3
            ]
            for text, future in futures:
                assert future.result() == text
