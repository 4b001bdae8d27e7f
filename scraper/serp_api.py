"""SerpApi Google Events search client."""
import logging
from typing import List, Optional

import requests

from processor.errors import SourceFetchError
from scraper.base import EventSource

logger = logging.getLogger(__name__)


class SerpApiSource(EventSource):
    """Searches Google Events through SerpApi."""

    name = 'serpapi'
    BASE_URL = "https://serpapi.com/search"

    def __init__(self, api_key: Optional[str], timeout: int = 10):
        """
        Initialize the search client.

        Args:
            api_key: SerpApi key; without one the source yields nothing
            timeout: HTTP request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout

    @staticmethod
    def build_query(city: str, category: str = 'all') -> str:
        if not category or category == 'all':
            return f"events in {city}"
        return f"{category} events in {city}"

    def fetch(self, city: str, category: str = 'all') -> List[dict]:
        """
        Fetch raw Google Events results for a city.

        Returns:
            List of raw result dictionaries, empty if none were found

        Raises:
            SourceFetchError: If the request or response decoding fails
        """
        if not self.api_key:
            logger.warning("SERP_API_KEY not configured, skipping SerpApi search")
            return []

        query = self.build_query(city, category)
        params = {
            'engine': 'google_events',
            'q': query,
            'hl': 'en',
            'api_key': self.api_key,
        }

        logger.info(f"Searching SerpApi for: {query}")
        try:
            response = requests.get(self.BASE_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            logger.error(
                f"SerpApi error: {e}",
                extra={'status_code': e.response.status_code if e.response is not None else None}
            )
            raise SourceFetchError(f"SerpApi request failed: {e}") from e
        except (requests.RequestException, ValueError) as e:
            raise SourceFetchError(f"SerpApi request failed: {e}") from e

        results = data.get('events_results') if isinstance(data, dict) else None
        if not results:
            logger.info("No events found in SerpApi response")
            return []

        return [result for result in results if isinstance(result, dict)]
