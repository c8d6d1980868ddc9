"""Write the merged event stream out as one calendar body."""
import logging
from typing import Callable, Iterable, Iterator, Optional

from fetcher.aggregator import FeedAggregator
from fetcher.channel import EventChannel
from fetcher.ics_fetcher import ICSFetcher, is_sentinel
from processor.models import AggregatorConfig

logger = logging.getLogger(__name__)


def stream_calendar(units: Iterable[str], header: str = '', footer: str = '') -> Iterator[str]:
    """Yield the header, then each unit as it arrives, then the footer."""
    if header:
        yield header
    for unit in units:
        yield unit
    if footer:
        yield footer


def write_calendar(
    units: Iterable[str],
    write: Callable[[str], object],
    header: str = '',
    footer: str = ''
) -> int:
    """
    Drain units into a write callable, wrapped in header and footer.

    Returns:
        Number of units written, error sentinels included
    """
    written = 0
    errors = 0
    if header:
        write(header)
    for unit in units:
        write(unit)
        written += 1
        if is_sentinel(unit):
            errors += 1
    if footer:
        write(footer)

    logger.info(f"Wrote {written} units ({errors} errors)")
    return written


def aggregate_feed(
    config: AggregatorConfig,
    fetcher: Optional[ICSFetcher] = None
) -> Iterator[str]:
    """
    Stream the combined feed for every configured source.

    Aggregation runs in the background and chunks are yielded as soon as
    they arrive. Closing the generator early cancels all in-flight fetchers.
    """
    fetcher = fetcher or ICSFetcher(
        timeout=config.timeout_seconds,
        chunk_size=config.chunk_size
    )
    channel = EventChannel(maxsize=config.channel_size)
    thread = FeedAggregator(fetcher).start(config.source_urls, channel)

    drained = False
    try:
        yield from stream_calendar(channel, config.header, config.footer)
        drained = True
    finally:
        if not drained:
            logger.info("Consumer stopped early, cancelling fetchers")
            channel.cancel.set()
        thread.join()
