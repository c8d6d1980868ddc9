"""Multi-producer, single-consumer channel for event units."""
import logging
import queue
import threading
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised on a send to, or a second close of, a closed channel."""


class EventChannel:
    """
    Bounded queue shared by all source fetchers and read by one consumer.

    Senders block while the queue is full. With a cancel event attached,
    blocked senders give up once it is set so that an abandoned consumer
    never strands a producer thread.
    """

    POLL_INTERVAL = 0.05  # seconds

    def __init__(self, maxsize: int = 1, cancel: Optional[threading.Event] = None):
        self._queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False
        self.cancel = cancel or threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, unit: str) -> bool:
        """
        Put one unit on the channel.

        Returns:
            True if delivered, False if the channel was cancelled first

        Raises:
            ChannelClosedError: If the channel has already been closed
        """
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        return self._put(unit)

    def close(self) -> None:
        """
        Mark the end of the stream. Must be called exactly once.

        Raises:
            ChannelClosedError: If the channel has already been closed
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError("close of closed channel")
            self._closed = True
        self._put(_CLOSED)

    def __iter__(self) -> Iterator[str]:
        while True:
            try:
                item = self._queue.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                # a cancelled close may never deliver its marker
                if self._closed and self.cancel.is_set():
                    return
                continue
            if item is _CLOSED:
                return
            yield item

    def _put(self, item) -> bool:
        while not self.cancel.is_set():
            try:
                self._queue.put(item, timeout=self.POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        logger.debug("Channel cancelled, dropping item")
        return False
