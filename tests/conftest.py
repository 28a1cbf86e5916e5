"""Pytest configuration and shared fixtures."""
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pytest

from dumpfiles import MEDIAWIKI_FOOTER, MEDIAWIKI_HEADER, page_xml, write_index, write_multistream


@dataclass
class Dump:
    content_path: Path
    index_path: Path
    offsets: List[int]
    # title -> (page_id, text)
    articles: Dict[str, tuple] = field(default_factory=dict)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_dump(temp_dir):
    """A three-segment dump with its index.

    Like the real dumps, the first stream holds only the <mediawiki> header
    and <siteinfo>, and the last one closes </mediawiki>.

    Segment 1 holds pages 7 and 9. Page 7's revision id is "9" and its
    contributor id is "42", so only the depth check keeps them from
    matching those targets.
    """
    articles_1 = [
        ("Alpha", "7", "alpha text", "9", "42"),
        ("Beta", "9", "beta text", "1001", "43"),
    ]
    articles_2 = [
        ("Gamma: The Sequel", "12", "'''Gamma''' is a [[Greek alphabet|letter]].\n\n== History ==\n", "1002", "44"),
        ("Delta", "13", "a < b && c > d", "1003", "45"),
        ("Ελληνικά", "14", "Η ελληνική γλώσσα — ✓", "1004", "46"),
    ]

    segments = [
        MEDIAWIKI_HEADER,
        "".join(page_xml(t, i, x, r, u) for t, i, x, r, u in articles_1),
        "".join(page_xml(t, i, x, r, u) for t, i, x, r, u in articles_2) + MEDIAWIKI_FOOTER,
    ]
    content_path = temp_dir / "test-multistream.xml.bz2"
    offsets = write_multistream(content_path, segments)

    lines = []
    articles = {}
    for offset, group in ((offsets[1], articles_1), (offsets[2], articles_2)):
        for title, page_id, text, _, _ in group:
            lines.append(f"{offset}:{page_id}:{title}")
            articles[title] = (page_id, text)
    index_path = write_index(temp_dir / "test-multistream-index.txt.bz2", lines)

    return Dump(content_path, index_path, offsets, articles)
