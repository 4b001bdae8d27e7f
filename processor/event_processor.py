"""Event processor for normalizing raw source records."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional

from processor.errors import RecordNormalizationError
from processor.models import (
    DEFAULT_CATEGORY,
    UNKNOWN_EVENT,
    Event,
    ProcessedBatch,
    SkippedRecord,
)
from processor.sanitizer import clean
from processor.venue import resolve_venue

logger = logging.getLogger(__name__)

ALL_CATEGORIES = 'all'

# Iteration order decides ties: the first category with a hit wins.
CATEGORY_KEYWORDS = {
    'Technology': ['tech', 'technology', 'programming', 'coding', 'software',
                   'ai', 'machine learning', 'data science'],
    'Music': ['music', 'concert', 'festival', 'band', 'dj', 'live music',
              'performance'],
    'Art': ['art', 'exhibition', 'gallery', 'painting', 'sculpture',
            'photography'],
    'Sports': ['sports', 'game', 'match', 'tournament', 'fitness', 'yoga',
               'gym', 'marathon'],
    'Food': ['food', 'restaurant', 'cooking', 'wine', 'beer', 'tasting',
             'culinary'],
    'Business': ['business', 'networking', 'conference', 'workshop',
                 'seminar', 'startup', 'entrepreneur'],
    'Education': ['education', 'workshop', 'course', 'training', 'lecture',
                  'webinar'],
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def infer_category(title: Any, description: Any = '') -> str:
    """
    Infer a category from keywords in the title or description.

    Args:
        title: Raw event title
        description: Raw event description

    Returns:
        Matching category name or 'General'
    """
    title = str(title or '').lower()
    description = str(description or '').lower()

    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in title for keyword in keywords):
            return category
        if any(keyword in description for keyword in keywords):
            return category

    return DEFAULT_CATEGORY


class EventProcessor:
    """Processor for normalizing raw event records into Events."""

    MAX_NAME_LENGTH = 150
    MAX_DESCRIPTION_LENGTH = 200
    MAX_CATEGORY_LENGTH = 50
    MAX_IMAGE_LENGTH = 500

    def __init__(
        self,
        clock: Callable[[], datetime] = _utc_now,
        today: Callable[[], date] = date.today
    ):
        """
        Initialize the processor.

        Args:
            clock: Returns the current aware datetime, used for scraped_at
            today: Returns the local calendar date given to dateless records
        """
        self.clock = clock
        self.today = today

    def process_events(
        self,
        raw_events: List[Any],
        city: str,
        category: Optional[str] = ALL_CATEGORIES
    ) -> ProcessedBatch:
        """
        Normalize a batch of raw records.

        Args:
            raw_events: Raw event dictionaries from a source
            city: City the batch was fetched for
            category: Requested category, or 'all'

        Returns:
            ProcessedBatch with normalized events and skipped records
        """
        batch = ProcessedBatch()

        for raw in raw_events:
            try:
                batch.events.append(self.normalize(raw, city, category))
            except Exception as e:
                label = self._label(raw)
                logger.warning(f"Failed to process event '{label}': {e}")
                batch.skipped.append(
                    SkippedRecord(label=label, stage='normalize', reason=str(e))
                )
                continue

        logger.info(
            f"Processed {len(batch.events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return batch

    def normalize(
        self,
        raw: dict,
        city: str,
        category: Optional[str] = ALL_CATEGORIES
    ) -> Event:
        """
        Map a single raw record to an Event.

        Each field falls back to its own default when missing.

        Raises:
            RecordNormalizationError: If the record is not a mapping
        """
        if not isinstance(raw, dict):
            raise RecordNormalizationError(
                f"Expected a mapping, got {type(raw).__name__}"
            )

        ticket_info = raw.get('ticket_info')
        if not isinstance(ticket_info, dict):
            ticket_info = {}

        now = self.clock()

        return Event(
            name=clean(raw.get('title'), self.MAX_NAME_LENGTH) or UNKNOWN_EVENT,
            date=self._event_date(raw),
            venue=resolve_venue(raw),
            city=city,
            category=self._category(raw, category),
            url=raw.get('link') or ticket_info.get('link') or '#',
            status='Upcoming',
            scraped_at=now.isoformat(),
            description=clean(raw.get('description'),
                              self.MAX_DESCRIPTION_LENGTH),
            price=clean(ticket_info.get('price')) or 'Free',
            image=clean(raw.get('image'), self.MAX_IMAGE_LENGTH),
        )

    def _event_date(self, raw: dict) -> str:
        date_info = raw.get('date')

        if isinstance(date_info, dict):
            if date_info.get('start_date'):
                return str(date_info['start_date'])
            if date_info.get('when'):
                return str(date_info['when'])
        elif isinstance(date_info, str) and date_info.strip():
            return date_info

        return self.today().isoformat()

    def _category(self, raw: dict, category: Optional[str]) -> str:
        if category and category.strip().lower() != ALL_CATEGORIES:
            return clean(category, self.MAX_CATEGORY_LENGTH)

        if raw.get('category'):
            declared = clean(raw['category'], self.MAX_CATEGORY_LENGTH)
            if declared.lower() != ALL_CATEGORIES:
                return declared

        return infer_category(raw.get('title'), raw.get('description'))

    @staticmethod
    def _label(raw: Any) -> str:
        if isinstance(raw, dict):
            return str(raw.get('title') or UNKNOWN_EVENT)
        return repr(raw)[:80]
