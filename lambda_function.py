"""AWS Lambda handler serving the combined holiday calendar feed."""
import json
import logging
import os
import time
from typing import Dict, Any

from fetcher.aggregator import FeedAggregator
from fetcher.channel import EventChannel
from fetcher.ics_fetcher import ICSFetcher
from fetcher.stream_writer import write_calendar
from processor.models import AggregatorConfig


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Handle a GET request for the combined calendar.

    Feeds that fail to load show up as error lines inside the calendar body,
    so the response is still 200 when only some sources are down.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response with a text/calendar body
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    config = AggregatorConfig.from_env()
    logger.info(
        "Lambda execution started",
        extra={
            'sources': len(config.source_urls),
            'timeout_seconds': config.timeout_seconds
        }
    )

    try:
        fetcher = ICSFetcher(
            timeout=config.timeout_seconds,
            chunk_size=config.chunk_size
        )
        aggregator = FeedAggregator(fetcher)
        channel = EventChannel(maxsize=config.channel_size)

        logger.info(f"Aggregating {len(config.source_urls)} calendar feeds")
        thread = aggregator.start(config.source_urls, channel)

        chunks = []
        units_written = write_calendar(
            channel,
            chunks.append,
            header=config.header,
            footer=config.footer
        )
        thread.join()

        duration = time.time() - start_time
        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'units_written': units_written
            }
        )

        return {
            'statusCode': 200,
            'headers': {'Content-Type': 'text/calendar; charset=utf-8'},
            'body': ''.join(chunks)
        }

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Failed to aggregate calendar feeds',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }
