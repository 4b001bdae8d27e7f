"""AWS Lambda handler for the daily city events refresh."""
import json
import logging
import time
from typing import Any, Dict

from config import SCHEDULED_CITIES, Settings, build_source, build_store
from log_config import setup_logging
from pipeline import EventPipeline
from processor.errors import ConfigurationError


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Refresh stored events for the scheduled cities.

    Triggered daily by an EventBridge rule (cron(0 2 * * ? *)). The event
    may carry a 'cities' list to override the scheduled set.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and per-city statistics
    """
    settings = Settings.from_env()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    cities = (event or {}).get('cities') or SCHEDULED_CITIES

    start_time = time.time()
    logger.info(
        "Running scheduled scraping",
        extra={
            'table_name': settings.table_name,
            'cities': cities,
            'timeout_seconds': settings.timeout_seconds
        }
    )

    try:
        store = build_store(settings)
        store.open()
    except ConfigurationError as e:
        logger.error(
            f"Store configuration error: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        duration = time.time() - start_time
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Store is not configured',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    try:
        pipeline = EventPipeline(source=build_source(settings), store=store)
        summary = pipeline.refresh_cities(
            cities,
            delay_seconds=settings.city_delay_seconds
        )
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Scheduled scraping failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Refresh failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }
    finally:
        store.close()

    duration = time.time() - start_time
    failed = [city for city, stats in summary.items() if 'error' in stats]

    logger.info(
        "Scheduled scraping completed",
        extra={
            'duration_seconds': round(duration, 2),
            'cities_failed': failed
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Refresh completed',
            'statistics': summary,
            'cities_failed': failed,
            'duration_seconds': round(duration, 2)
        })
    }
