"""Incremental line scanner over a byte stream."""
import logging
from typing import BinaryIO, Iterable, Iterator

logger = logging.getLogger(__name__)


class LineReadError(Exception):
    """Raised when the underlying stream fails before end of stream."""


class LineScanner:
    """
    Reassemble terminated lines from a stream of byte chunks.

    Lines are split on LF and keep their terminator, so CRLF lines end in
    "\\r\\n" and bare LF lines in "\\n". A trailing fragment with no
    terminator is yielded as the last line. Line length is not bounded.
    """

    def __init__(self, chunks: Iterable[bytes], encoding: str = 'utf-8'):
        self._chunks = chunks
        self.encoding = encoding

    @classmethod
    def from_stream(cls, stream: BinaryIO, chunk_size: int = 8192) -> 'LineScanner':
        """Scan a file-like object by reading it chunk_size bytes at a time."""
        return cls(iter(lambda: stream.read(chunk_size), b''))

    def __iter__(self) -> Iterator[str]:
        buffer = b''
        chunks = iter(self._chunks)

        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except Exception as e:
                raise LineReadError(str(e)) from e

            if not chunk:
                continue

            # only the new bytes can hold a terminator
            search_from = len(buffer)
            buffer += chunk
            start = 0
            while True:
                end = buffer.find(b'\n', max(start, search_from))
                if end == -1:
                    break
                yield self._decode(buffer[start:end + 1])
                start = end + 1
            buffer = buffer[start:]

        if buffer:
            logger.debug(f"Stream ended with {len(buffer)} unterminated bytes")
            yield self._decode(buffer)

    def _decode(self, raw: bytes) -> str:
        return raw.decode(self.encoding, errors='replace')
