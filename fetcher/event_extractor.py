"""VEVENT block extraction from scanned ICS lines."""
import logging
from typing import Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

BEGIN_MARKER = 'BEGIN:VEVENT'
END_MARKER = 'END:VEVENT'


def is_marker(line: str, marker: str) -> bool:
    """Check a raw line against a marker, ignoring a CRLF or LF terminator."""
    return line.rstrip('\r\n') == marker


class EventExtractor:
    """
    Accumulate lines between BEGIN:VEVENT and END:VEVENT into event units.

    Lines outside an event (calendar headers, VTIMEZONE blocks and the like)
    are discarded. Nested BEGIN:VEVENT lines inside an event are kept as
    ordinary content.
    """

    def __init__(self):
        self._lines: List[str] = []
        self.in_event = False

    def feed(self, line: str) -> Optional[str]:
        """
        Consume one line.

        Args:
            line: Raw line including its terminator

        Returns:
            The completed event unit when the line closes an event, else None
        """
        if not self.in_event:
            if is_marker(line, BEGIN_MARKER):
                self.in_event = True
                self._lines = [line]
            return None

        self._lines.append(line)
        if is_marker(line, END_MARKER):
            unit = ''.join(self._lines)
            self._lines = []
            self.in_event = False
            return unit
        return None

    def flush(self) -> Optional[str]:
        """Return any unterminated event as a partial unit and reset."""
        if not self.in_event:
            return None

        unit = ''.join(self._lines)
        logger.warning(
            f"Flushing unterminated event ({len(self._lines)} lines)"
        )
        self._lines = []
        self.in_event = False
        return unit


def extract_events(lines: Iterable[str]) -> Iterator[str]:
    """Yield event units from lines, flushing a trailing partial event."""
    extractor = EventExtractor()
    for line in lines:
        unit = extractor.feed(line)
        if unit is not None:
            yield unit

    partial = extractor.flush()
    if partial is not None:
        yield partial
