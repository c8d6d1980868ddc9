"""Fan-in aggregation of several ICS feeds onto one channel."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional

from fetcher.channel import EventChannel
from fetcher.ics_fetcher import ICSFetcher

logger = logging.getLogger(__name__)


class FeedAggregator:
    """
    Run one fetcher per source concurrently, all writing to a shared channel.

    Units from different sources interleave in arrival order. That order is
    nondeterministic across sources and only per-source order is preserved.
    The channel is closed exactly once, after every fetcher has returned.
    """

    def __init__(self, fetcher: Optional[ICSFetcher] = None):
        self.fetcher = fetcher or ICSFetcher()

    def aggregate(self, sources: List[str], channel: EventChannel) -> int:
        """
        Fetch all sources and close the channel when the last one finishes.

        Blocks until every fetcher has completed, whether normally, through
        an error sentinel, or through cancellation.

        Args:
            sources: Feed URLs, one fetcher each
            channel: Shared output channel, closed on return

        Returns:
            Total number of event units delivered across sources
        """
        logger.info(f"Aggregating {len(sources)} feeds")

        if not sources:
            channel.close()
            return 0

        try:
            with ThreadPoolExecutor(
                max_workers=len(sources),
                thread_name_prefix='ics-fetcher'
            ) as executor:
                futures = [
                    executor.submit(self.fetcher.fetch, url, channel)
                    for url in sources
                ]
                wait(futures)
        finally:
            channel.close()

        # re-raises anything a fetcher did not contain, e.g. ChannelClosedError
        total = sum(future.result() for future in futures)
        logger.info(f"Aggregation finished with {total} events from {len(sources)} feeds")
        return total

    def start(self, sources: List[str], channel: EventChannel) -> threading.Thread:
        """Run aggregate() on a background thread so the caller can consume."""
        thread = threading.Thread(
            target=self._run,
            args=(sources, channel),
            name='feed-aggregator',
            daemon=True
        )
        thread.start()
        return thread

    def _run(self, sources: List[str], channel: EventChannel) -> None:
        try:
            self.aggregate(sources, channel)
        except Exception:
            logger.exception("Feed aggregation failed")
            raise
