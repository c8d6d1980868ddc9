"""Fetcher that streams VEVENT blocks from one remote ICS feed."""
import logging
from typing import Iterable, Iterator, Optional

import requests

from fetcher.channel import EventChannel
from fetcher.event_extractor import extract_events
from fetcher.line_scanner import LineReadError, LineScanner

logger = logging.getLogger(__name__)

FETCH_ERROR_PREFIX = "Error fetching URL: "
READ_ERROR_PREFIX = "Error reading response body: "

HEADERS = {
    "User-Agent": "Holiday-Feed-Aggregator/1.0",
    "Accept": "text/calendar, text/plain, */*;q=0.8",
}


def is_sentinel(unit: str) -> bool:
    """Check whether a unit is an error sentinel rather than a VEVENT block."""
    return unit.startswith(FETCH_ERROR_PREFIX) or unit.startswith(READ_ERROR_PREFIX)


class ICSFetcher:
    """Fetcher for a single ICS feed URL."""

    def __init__(
        self,
        timeout: int = 30,
        chunk_size: int = 8192,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Connect and per-read timeout in seconds (default: 30)
            chunk_size: Bytes requested per body read (default: 8192)
            session: Optional requests session to share connections
        """
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def fetch(self, url: str, channel: EventChannel) -> int:
        """
        Fetch one feed and send each of its event units to the channel.

        Connection and HTTP status failures send a single fetch-error
        sentinel. A failure while reading the body sends a single read-error
        sentinel and stops scanning this source. Nothing is retried.

        Args:
            url: Feed URL
            channel: Shared channel to send units to

        Returns:
            Number of event units delivered, sentinels excluded
        """
        logger.info(f"Fetching ICS feed: {url}")

        try:
            response = self.session.get(
                url,
                headers=HEADERS,
                stream=True,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            channel.send(FETCH_ERROR_PREFIX + url)
            return 0

        with response:
            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                logger.warning(f"Failed to fetch {url}: {e}")
                channel.send(FETCH_ERROR_PREFIX + url)
                return 0

            return self._scan(url, response, channel)

    def _scan(self, url: str, response: requests.Response, channel: EventChannel) -> int:
        scanner = LineScanner(response.iter_content(chunk_size=self.chunk_size))
        delivered = 0

        try:
            for unit in extract_events(self._until_cancelled(scanner, channel)):
                if not channel.send(unit):
                    break
                delivered += 1
        except LineReadError as e:
            logger.warning(
                f"Failed reading body of {url} after {delivered} events: {e}"
            )
            channel.send(READ_ERROR_PREFIX + url)
            return delivered

        if channel.cancel.is_set():
            logger.info(f"Fetch of {url} cancelled after {delivered} events")
        else:
            logger.info(f"Fetched {delivered} events from {url}")
        return delivered

    @staticmethod
    def _until_cancelled(lines: Iterable[str], channel: EventChannel) -> Iterator[str]:
        for line in lines:
            if channel.cancel.is_set():
                return
            yield line
