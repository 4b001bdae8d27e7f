"""HTML scraper for Eventbrite and Meetup listing pages."""
import logging
from typing import List, Optional

import requests
from bs4 import BeautifulSoup

from scraper.base import EventSource

logger = logging.getLogger(__name__)


class ListingSiteSource(EventSource):
    """Scrapes public listing pages when the search API has nothing."""

    name = 'listing_sites'
    EVENTBRITE_URL = "https://www.eventbrite.com/d/india--{city}/{category}/"
    MEETUP_URL = "https://www.meetup.com/find/"
    USER_AGENT = (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
    )

    def __init__(self, timeout: int = 10):
        """
        Initialize the listing scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 10)
        """
        self.timeout = timeout

    def fetch(self, city: str, category: str = 'all') -> List[dict]:
        """
        Scrape both listing sites and concatenate their events.

        A site that fails contributes no events.
        """
        events = self.scrape_eventbrite(city, category)
        events.extend(self.scrape_meetup(city, category))
        logger.info(f"Scraped {len(events)} events from websites")
        return events

    def scrape_eventbrite(self, city: str, category: str) -> List[dict]:
        url = self.EVENTBRITE_URL.format(city=city.lower(), category=category)
        html_content = self._fetch_html(url)
        if html_content is None:
            return []

        soup = BeautifulSoup(html_content, 'html.parser')
        events = []
        for element in soup.select('.search-event-card-wrapper'):
            try:
                title_elem = (
                    element.select_one('.eds-event-card__formatted-name--is-clamped')
                    or element.find('h2')
                )
                date_elem = element.select_one('.eds-event-card-content__sub-title')
                venue_elem = element.select_one('.card-text--truncated__one')
                link_elem = element.find('a')

                event = self._raw_event(
                    title=self._text(title_elem),
                    when=self._text(date_elem),
                    address=self._text(venue_elem),
                    link=link_elem.get('href') if link_elem else None,
                    category=category,
                )
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Error parsing Eventbrite event: {e}")
                continue

        return events

    def scrape_meetup(self, city: str, category: str) -> List[dict]:
        params = {'location': f"in--{city}", 'keywords': category}
        html_content = self._fetch_html(self.MEETUP_URL, params=params)
        if html_content is None:
            return []

        soup = BeautifulSoup(html_content, 'html.parser')
        events = []
        for element in soup.select('[data-event-label]'):
            try:
                time_elem = element.find('time')
                when = ''
                if time_elem:
                    when = time_elem.get('datetime') or self._text(time_elem)
                link_elem = element.find('a')

                event = self._raw_event(
                    title=self._text(element.find('h3')),
                    when=when,
                    address=self._text(element.select_one('.text-gray-7')),
                    link=link_elem.get('href') if link_elem else None,
                    category=category,
                )
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Error parsing Meetup event: {e}")
                continue

        return events

    def _fetch_html(self, url: str, params: Optional[dict] = None) -> Optional[str]:
        try:
            response = requests.get(
                url,
                params=params,
                headers={'User-Agent': self.USER_AGENT},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.error(f"Error scraping {url}: {e}")
            return None

    @staticmethod
    def _text(element) -> str:
        return element.get_text(strip=True) if element else ''

    @staticmethod
    def _raw_event(title: str, when: str, address: str,
                   link: Optional[str], category: str) -> Optional[dict]:
        """Build a raw record shaped like a search API result."""
        if not title:
            return None

        event = {'title': title, 'link': link or '#', 'category': category}
        if when:
            event['date'] = {'when': when}
        if address:
            event['address'] = address
        return event
