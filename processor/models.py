"""Data models for feed aggregation."""
import os
from dataclasses import dataclass, field
from typing import List, Optional


COLOMBIAN_HOLIDAYS_URL = "https://www.officeholidays.com/ics/ics_country.php?tbl_country=Colombia"
CANADIAN_HOLIDAYS_URL = "https://www.officeholidays.com/ics/ics_country.php?tbl_country=Canada"

DEFAULT_HEADER = (
    "BEGIN:VCALENDAR\r\n"
    "VERSION:2.0\r\n"
    "PRODID:-//holiday-feeds//Combined Holidays//EN\r\n"
)
DEFAULT_FOOTER = "END:VCALENDAR\r\n"


def _default_sources() -> List[str]:
    return [COLOMBIAN_HOLIDAYS_URL, CANADIAN_HOLIDAYS_URL]


@dataclass
class AggregatorConfig:
    """Settings for one aggregation run."""
    source_urls: List[str] = field(default_factory=_default_sources)
    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER
    timeout_seconds: int = 30
    chunk_size: int = 8192
    channel_size: int = 1

    @classmethod
    def from_env(cls) -> 'AggregatorConfig':
        """
        Build a config from environment variables.

        SOURCE_URLS is a comma-separated list. Unset variables fall back to
        the dataclass defaults.
        """
        raw_urls = os.environ.get('SOURCE_URLS')
        if raw_urls:
            source_urls = [url.strip() for url in raw_urls.split(',') if url.strip()]
        else:
            source_urls = _default_sources()

        return cls(
            source_urls=source_urls,
            header=os.environ.get('CALENDAR_HEADER', DEFAULT_HEADER),
            footer=os.environ.get('CALENDAR_FOOTER', DEFAULT_FOOTER),
            timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
            chunk_size=int(os.environ.get('CHUNK_SIZE', '8192')),
            channel_size=int(os.environ.get('CHANNEL_SIZE', '1'))
        )


@dataclass
class CalendarSummary:
    """Overview of a parsed calendar."""
    total_events: int
    first: Optional[str]
    middle: Optional[str]
    last: Optional[str]
