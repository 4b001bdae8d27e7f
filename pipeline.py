"""Fetch, normalize and reconcile events; read them back for display."""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from processor.event_processor import ALL_CATEGORIES, EventProcessor
from processor.models import (
    STATUS_EXPIRED,
    STATUS_TODAY,
    STATUS_UPCOMING,
    Event,
    ReconcileResult,
    SkippedRecord,
)
from scraper.base import EventSource
from storage.base import (
    COL_CATEGORY,
    COL_CITY,
    COL_DATE,
    COL_NAME,
    COL_SCRAPED_AT,
    COL_STATUS,
    COL_URL,
    COL_VENUE,
    Store,
)
from storage.reconciler import ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass
class ScrapeOutcome:
    """Events fetched for a city and what reconciling them did."""
    city: str
    category: str
    events: List[Event] = field(default_factory=list)
    result: ReconcileResult = field(default_factory=ReconcileResult)
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.events:
            return f"No events found for {self.city}"
        if self.result.added > 0 or self.result.updated > 0:
            return (
                f"Successfully saved {self.result.added} new events and updated "
                f"{self.result.updated} existing events for {self.city}"
            )
        return "No new events to save (all events already exist)"


def row_to_event_dict(row, city: str) -> dict:
    """Map a stored row to a display dict with per-field defaults."""
    return {
        'name': row.get(COL_NAME) or 'Unknown',
        'date': row.get(COL_DATE) or 'Unknown',
        'venue': row.get(COL_VENUE) or 'Unknown',
        'city': row.get(COL_CITY) or city,
        'category': row.get(COL_CATEGORY) or 'General',
        'url': row.get(COL_URL) or '',
        'status': row.get(COL_STATUS) or 'unknown',
        'scraped_at': row.get(COL_SCRAPED_AT) or '',
    }


def filter_by_category(events: List[dict], category: Optional[str]) -> List[dict]:
    """Keep events whose category contains the given text, ignoring case."""
    if not category or category == ALL_CATEGORIES:
        return events
    needle = category.lower()
    return [e for e in events if needle in str(e.get('category') or '').lower()]


class EventPipeline:
    """Wires a source, the normalizer and the reconciliation engine."""

    def __init__(
        self,
        source: EventSource,
        store: Store,
        processor: Optional[EventProcessor] = None,
        engine: Optional[ReconciliationEngine] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.source = source
        self.store = store
        self.engine = engine or ReconciliationEngine(store)
        self.processor = processor or EventProcessor(today=self.engine.today)
        self.sleep = sleep

    def fetch_events(self, city: str, category: str = ALL_CATEGORIES):
        """
        Fetch and normalize events without touching the store.

        Returns:
            ProcessedBatch of normalized events and skipped records
        """
        logger.info(f"Fetching events for {city}, category: {category}")
        raw_events = self.source.fetch(city, category)
        return self.processor.process_events(raw_events, city, category)

    def scrape(self, city: str, category: str = ALL_CATEGORIES) -> ScrapeOutcome:
        """Fetch, normalize and reconcile events for one city."""
        batch = self.fetch_events(city, category)
        outcome = ScrapeOutcome(
            city=city, category=category,
            events=batch.events, skipped=list(batch.skipped)
        )
        logger.info(f"Found {len(batch.events)} events for {city}")

        if batch.events:
            outcome.result = self.engine.reconcile(batch.events, city)
        return outcome

    def stored_events(self, city: str) -> List[dict]:
        """
        Read a city's stored events.

        Store failures are logged and yield an empty list.
        """
        try:
            partition = self.store.get_partition(city)
            if partition is None:
                return []
            return [row_to_event_dict(row, city) for row in partition.list_rows()]
        except Exception as e:
            logger.error(f"Error getting events for {city}: {e}")
            return []

    def events_for_city(self, city: str, category: str = ALL_CATEGORIES) -> List[dict]:
        """Stored events for a city, scraping live when none are stored."""
        events = self.stored_events(city)

        if not events:
            logger.info(f"No stored events for {city}, scraping fresh...")
            outcome = self.scrape(city, category)
            events = [event.to_dict() for event in outcome.events]

        return filter_by_category(events, category)

    def dashboard(self, cities: List[str]) -> dict:
        """Aggregate per-city counts and grand totals."""
        stats = []
        for city in cities:
            try:
                events = self._stored_events_strict(city)
                upcoming = [e for e in events
                            if e['status'] in (STATUS_UPCOMING, STATUS_TODAY)]
                expired = [e for e in events if e['status'] == STATUS_EXPIRED]
                stats.append({
                    'city': city,
                    'total_events': len(events),
                    'upcoming_events': len(upcoming),
                    'expired_events': len(expired),
                    'last_updated': self._last_updated(events),
                })
            except Exception as e:
                logger.error(f"Error loading stats for {city}: {e}")
                stats.append({
                    'city': city,
                    'total_events': 0,
                    'upcoming_events': 0,
                    'expired_events': 0,
                    'last_updated': 'Error',
                })

        totals = {
            'total_events': sum(s['total_events'] for s in stats),
            'total_upcoming': sum(s['upcoming_events'] for s in stats),
            'total_expired': sum(s['expired_events'] for s in stats),
        }
        return {'stats': stats, 'totals': totals}

    def _stored_events_strict(self, city: str) -> List[dict]:
        partition = self.store.get_partition(city)
        if partition is None:
            return []
        return [row_to_event_dict(row, city) for row in partition.list_rows()]

    @staticmethod
    def _last_updated(events: List[dict]) -> str:
        # scraped_at is a UTC ISO timestamp, so string order is time order.
        latest = max((e['scraped_at'] for e in events if e['scraped_at']), default='')
        if not latest:
            return 'Never'
        try:
            scraped = datetime.fromisoformat(latest.replace('Z', '+00:00'))
        except ValueError:
            return latest
        return scraped.date().isoformat()

    def refresh_cities(
        self,
        cities: List[str],
        category: str = ALL_CATEGORIES,
        delay_seconds: float = 3.0
    ) -> Dict[str, dict]:
        """
        Scrape and reconcile cities one after another.

        A failing city is logged and recorded; the rest still run.

        Returns:
            Mapping of city to its counts, or to an error entry
        """
        summary: Dict[str, dict] = {}

        for index, city in enumerate(cities):
            try:
                logger.info(f"Scraping events for {city}...")
                outcome = self.scrape(city, category)
                summary[city] = {
                    'events_found': len(outcome.events),
                    **outcome.result.to_dict(),
                }
                if not outcome.events:
                    logger.warning(f"No events found for {city}")
                elif outcome.result.added or outcome.result.updated:
                    logger.info(
                        f"Updated {city}: {outcome.result.added} added, "
                        f"{outcome.result.updated} updated"
                    )
                else:
                    logger.info(f"No changes for {city}")
            except Exception as e:
                logger.error(
                    f"Error scraping {city}: {e}",
                    extra={'city': city, 'error_type': type(e).__name__},
                    exc_info=True
                )
                summary[city] = {'error': str(e), 'error_type': type(e).__name__}

            if index < len(cities) - 1 and delay_seconds > 0:
                self.sleep(delay_seconds)

        return summary
