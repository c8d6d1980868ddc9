"""Unit tests for ICSFetcher."""
from unittest.mock import MagicMock

import pytest
import responses
from requests.exceptions import ChunkedEncodingError, ConnectionError, Timeout

from fetcher.channel import EventChannel
from fetcher.ics_fetcher import (
    FETCH_ERROR_PREFIX,
    READ_ERROR_PREFIX,
    ICSFetcher,
    is_sentinel,
)


FEED_URL = "https://www.officeholidays.com/ics/ics_country.php?tbl_country=Colombia"

MOCK_FEED = (
    "BEGIN:VCALENDAR\r\n"
    "VERSION:2.0\r\n"
    "BEGIN:VEVENT\r\n"
    "SUMMARY:Colombian New Year\r\n"
    "DTSTART;VALUE=DATE:20230101\r\n"
    "END:VEVENT\r\n"
    "BEGIN:VEVENT\r\n"
    "SUMMARY:Colombian Independence Day\r\n"
    "DTSTART;VALUE=DATE:20230720\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


@pytest.fixture
def channel():
    """Create a channel large enough to hold everything one fetch sends."""
    return EventChannel(maxsize=100)


def drain(channel):
    """Close the channel and return everything that was sent to it."""
    channel.close()
    return list(channel)


def mock_response(chunks):
    """Create a streaming response whose body yields chunks, or fails mid-way."""
    def iter_content(chunk_size=1):
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    response = MagicMock()
    response.iter_content.side_effect = iter_content
    return response


class TestICSFetcher:
    """Test cases for ICSFetcher class."""

    @responses.activate
    def test_fetch_success(self, channel):
        """Test that every event in the feed is sent to the channel."""
        responses.add(
            responses.GET,
            FEED_URL,
            body=MOCK_FEED,
            status=200,
            content_type="text/calendar"
        )

        fetcher = ICSFetcher(timeout=30, chunk_size=16)
        delivered = fetcher.fetch(FEED_URL, channel)

        units = drain(channel)
        assert delivered == 2
        assert len(units) == 2
        assert units[0].startswith("BEGIN:VEVENT\r\nSUMMARY:Colombian New Year\r\n")
        assert units[1].endswith("END:VEVENT\r\n")
        assert not any(is_sentinel(unit) for unit in units)

    @responses.activate
    def test_fetch_lf_feed(self, channel):
        """Test that bare LF feeds are recognized the same way."""
        responses.add(
            responses.GET,
            FEED_URL,
            body=MOCK_FEED.replace("\r\n", "\n"),
            status=200
        )

        delivered = ICSFetcher().fetch(FEED_URL, channel)

        units = drain(channel)
        assert delivered == 2
        assert units[1] == (
            "BEGIN:VEVENT\n"
            "SUMMARY:Colombian Independence Day\n"
            "DTSTART;VALUE=DATE:20230720\n"
            "END:VEVENT\n"
        )

    @responses.activate
    def test_fetch_connection_error(self, channel):
        """Test that a refused connection sends one fetch-error sentinel."""
        responses.add(
            responses.GET,
            FEED_URL,
            body=ConnectionError("Connection refused")
        )

        delivered = ICSFetcher().fetch(FEED_URL, channel)

        assert delivered == 0
        assert drain(channel) == [FETCH_ERROR_PREFIX + FEED_URL]

    @responses.activate
    def test_fetch_timeout(self, channel):
        """Test that a timeout is treated as a fetch failure."""
        responses.add(
            responses.GET,
            FEED_URL,
            body=Timeout("Request timed out")
        )

        ICSFetcher(timeout=1).fetch(FEED_URL, channel)

        assert drain(channel) == [FETCH_ERROR_PREFIX + FEED_URL]

    @responses.activate
    def test_fetch_http_error_status(self, channel):
        """Test that an error status is treated as a fetch failure."""
        responses.add(
            responses.GET,
            FEED_URL,
            body="Server Error",
            status=500
        )

        delivered = ICSFetcher().fetch(FEED_URL, channel)

        assert delivered == 0
        assert drain(channel) == [FETCH_ERROR_PREFIX + FEED_URL]
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_truncated_feed(self, channel):
        """Test that a body ending right after BEGIN:VEVENT yields one partial unit."""
        responses.add(
            responses.GET,
            FEED_URL,
            body="BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n",
            status=200
        )

        delivered = ICSFetcher().fetch(FEED_URL, channel)

        assert delivered == 1
        assert drain(channel) == ["BEGIN:VEVENT\r\n"]

    def test_fetch_read_error_mid_stream(self, channel):
        """Test that a body read failure sends one read-error sentinel and stops."""
        response = mock_response([
            b"BEGIN:VEVENT\r\nSUMMARY:Colombian New Year\r\nEND:VEVENT\r\n",
            b"BEGIN:VEVENT\r\nSUMMARY:Colom",
            ChunkedEncodingError("Connection broken: IncompleteRead"),
            b"END:VEVENT\r\n"
        ])
        session = MagicMock()
        session.get.return_value = response

        delivered = ICSFetcher(session=session).fetch(FEED_URL, channel)

        units = drain(channel)
        assert delivered == 1
        assert units == [
            "BEGIN:VEVENT\r\nSUMMARY:Colombian New Year\r\nEND:VEVENT\r\n",
            READ_ERROR_PREFIX + FEED_URL
        ]

    def test_response_released_on_success(self, channel):
        """Test that the response is closed after a complete scan."""
        response = mock_response([MOCK_FEED.encode('utf-8')])
        session = MagicMock()
        session.get.return_value = response

        ICSFetcher(session=session).fetch(FEED_URL, channel)

        assert response.__exit__.called
        session.get.assert_called_once()
        assert session.get.call_args.kwargs['stream'] is True

    def test_response_released_on_read_error(self, channel):
        """Test that the response is closed when the body fails."""
        response = mock_response([ChunkedEncodingError("Connection broken")])
        session = MagicMock()
        session.get.return_value = response

        ICSFetcher(session=session).fetch(FEED_URL, channel)

        assert response.__exit__.called

    def test_cancelled_fetch_stops_sending(self):
        """Test that nothing is sent once the channel is cancelled."""
        channel = EventChannel(maxsize=100)
        channel.cancel.set()
        response = mock_response([MOCK_FEED.encode('utf-8')])
        session = MagicMock()
        session.get.return_value = response

        delivered = ICSFetcher(session=session).fetch(FEED_URL, channel)

        assert delivered == 0
        assert response.__exit__.called


class TestIsSentinel:
    """Test cases for sentinel detection."""

    def test_sentinels(self):
        """Test that both error kinds are recognized."""
        assert is_sentinel(FETCH_ERROR_PREFIX + FEED_URL)
        assert is_sentinel(READ_ERROR_PREFIX + FEED_URL)

    def test_event_block_is_not_sentinel(self):
        """Test that VEVENT blocks are not mistaken for errors."""
        assert not is_sentinel("BEGIN:VEVENT\r\nEND:VEVENT\r\n")
