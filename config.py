"""Environment-driven settings."""
import os
from dataclasses import dataclass
from typing import Optional

from processor.errors import ConfigurationError

SERVICE_NAME = 'EventScout Scraper'

CITIES = ['Mumbai', 'Delhi', 'Bangalore', 'Chennai', 'Hyderabad', 'Kolkata', 'Pune']
SCHEDULED_CITIES = ['Mumbai', 'Delhi', 'Bangalore', 'Chennai', 'Hyderabad']


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    store_backend: str = 'dynamodb'
    table_name: str = 'city-events'
    aws_region: str = 'us-east-1'
    serp_api_key: Optional[str] = None
    timeout_seconds: int = 10
    log_level: str = 'INFO'
    city_delay_seconds: float = 3.0
    enable_scheduler: bool = False
    schedule_hour: int = 2
    port: int = 3000

    @classmethod
    def from_env(cls) -> 'Settings':
        """Read settings from environment variables."""
        try:
            return cls(
                store_backend=os.environ.get('STORE_BACKEND', 'dynamodb').lower(),
                table_name=os.environ.get('TABLE_NAME', 'city-events'),
                aws_region=os.environ.get('AWS_REGION', 'us-east-1'),
                serp_api_key=os.environ.get('SERP_API_KEY') or None,
                timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '10')),
                log_level=os.environ.get('LOG_LEVEL', 'INFO'),
                city_delay_seconds=float(os.environ.get('CITY_DELAY_SECONDS', '3')),
                enable_scheduler=_env_bool('ENABLE_SCHEDULER', False),
                schedule_hour=int(os.environ.get('SCHEDULE_HOUR', '2')),
                port=int(os.environ.get('PORT', '3000')),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e


def build_store(settings: Settings):
    """
    Construct (but do not open) the configured store.

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    if settings.store_backend == 'memory':
        from storage.memory_store import MemoryStore
        return MemoryStore()
    if settings.store_backend == 'dynamodb':
        from storage.dynamodb_store import DynamoDBStore
        return DynamoDBStore(settings.table_name, region_name=settings.aws_region)
    raise ConfigurationError(f"Unknown STORE_BACKEND: {settings.store_backend}")


def build_source(settings: Settings):
    """Construct the ordered source chain: search API, then listing sites."""
    from scraper.base import SourceChain
    from scraper.listing_sites import ListingSiteSource
    from scraper.serp_api import SerpApiSource

    return SourceChain([
        SerpApiSource(settings.serp_api_key, timeout=settings.timeout_seconds),
        ListingSiteSource(timeout=settings.timeout_seconds),
    ])
