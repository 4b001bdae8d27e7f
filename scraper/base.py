"""Event source interface and the ordered fallback chain."""
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

import requests

from processor.errors import SourceFetchError

logger = logging.getLogger(__name__)


class EventSource(ABC):
    """Produces raw, untrusted event dictionaries for a city."""

    name = 'source'

    @abstractmethod
    def fetch(self, city: str, category: str = 'all') -> List[dict]:
        """
        Fetch raw event records.

        Raises:
            SourceFetchError: If the source cannot be reached or parsed
        """
        pass


class SourceChain(EventSource):
    """Tries sources in order; the first non-empty result wins."""

    name = 'chain'

    def __init__(self, sources: Sequence[EventSource]):
        self.sources = list(sources)

    def fetch(self, city: str, category: str = 'all') -> List[dict]:
        for source in self.sources:
            try:
                events = source.fetch(city, category)
            except (SourceFetchError, requests.RequestException) as e:
                logger.warning(
                    f"Source {source.name} failed for {city}: {e}",
                    extra={'source': source.name, 'error_type': type(e).__name__}
                )
                continue
            except Exception as e:
                logger.error(
                    f"Unexpected error from source {source.name} for {city}: {e}",
                    extra={'source': source.name, 'error_type': type(e).__name__},
                    exc_info=True
                )
                continue

            if events:
                logger.info(f"Found {len(events)} events via {source.name}")
                return events

            logger.info(f"No events from {source.name} for {city}, trying next source")

        return []
