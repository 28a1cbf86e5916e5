"""
segment.py — Random access into a bz2 multistream content container.

A multistream dump is many independent bz2 streams concatenated together.
Starting a fresh decompressor at the first byte of any stream yields that
stream's markup from the beginning, so an article can be read by seeking to
its indexed offset and decompressing one stream.

The container file is opened once and shared by every request. It never
moves a shared file cursor: each read is an os.pread() at an explicit
position, and each SegmentReader tracks its own position.
"""

import bz2
import errno
import os
from pathlib import Path
from typing import Union

from tinywiki.errors import CorruptSegmentError


DEFAULT_CHUNK_SIZE = 256 * 1024


class ContentContainer:
    """
    Read-only handle on a multistream .xml.bz2 file supporting positioned reads.

    Usage:
        with ContentContainer("enwiki-...-multistream.xml.bz2") as container:
            with container.open_segment(offset) as segment:
                data = segment.read()
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fd = os.open(self.path, os.O_RDONLY | getattr(os, "O_BINARY", 0))
        self._closed = False
        self.size = os.fstat(self._fd).st_size

    @property
    def closed(self) -> bool:
        return self._closed

    def pread(self, size: int, position: int) -> bytes:
        """Read up to `size` bytes at `position` without touching any shared cursor."""
        if self._closed:
            raise OSError(errno.EBADF, "content container is closed", str(self.path))
        return os.pread(self._fd, size, position)

    def open_segment(self, offset: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> "SegmentReader":
        """
        Start a fresh decompression stream at `offset`.

        The offset must be the first byte of a bz2 stream; this is not
        checked. Offsets at or past end of file give an empty stream.

        Raises:
            ValueError: If offset is negative
            OSError: If the container is closed
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if self._closed:
            raise OSError(errno.EBADF, "content container is closed", str(self.path))
        return SegmentReader(self, offset, chunk_size)

    def close(self):
        if not self._closed:
            self._closed = True
            os.close(self._fd)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{self.size:,} bytes"
        return f"<ContentContainer {self.path} ({state})>"


class SegmentReader:
    """
    File-like reader over the decompressed bytes of one bz2 stream.

    Reading stops at the end of the stream that starts at `offset`; the bytes
    of the following stream are never decompressed. A stream cut short by end
    of file simply ends early.
    """

    def __init__(self, container: ContentContainer, offset: int, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.container = container
        self.offset = offset
        self.chunk_size = chunk_size
        self.position = offset
        self.decompressor = bz2.BZ2Decompressor()
        self.buffer = bytearray()
        self.total_compressed = 0
        self.total_decompressed = 0
        self.exhausted = False

    @property
    def truncated(self) -> bool:
        """True if input ran out before the stream's end-of-stream marker."""
        return self.exhausted and not self.decompressor.eof

    def read(self, size: int = -1) -> bytes:
        """Read decompressed data; returns b"" once the segment is exhausted."""
        if size is None or size < 0:
            while not self.exhausted:
                self._decompress_chunk()
            result = bytes(self.buffer)
            self.buffer.clear()
            return result

        while len(self.buffer) < size and not self.exhausted:
            self._decompress_chunk()

        result = bytes(self.buffer[:size])
        del self.buffer[:size]
        return result

    def _decompress_chunk(self):
        """Decompress one chunk of compressed input."""
        if self.decompressor.eof:
            self.exhausted = True
            return

        compressed = self.container.pread(self.chunk_size, self.position)
        if not compressed:
            self.exhausted = True
            return

        self.position += len(compressed)
        self.total_compressed += len(compressed)
        try:
            decompressed = self.decompressor.decompress(compressed)
        except OSError as e:
            raise CorruptSegmentError(
                f"invalid compressed data in segment at offset {self.offset}: {e}",
                self.offset,
            ) from e

        self.buffer += decompressed
        self.total_decompressed += len(decompressed)

        if self.decompressor.eof:
            self.exhausted = True

    def close(self):
        self.buffer.clear()
        self.exhausted = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
