"""Reconcile fetched event batches with a city's stored rows."""
import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, List, Optional

from processor.dates import parse_calendar_date, today_iso
from processor.identity import compute_key, compute_key_from_row
from processor.models import (
    STATUS_EXPIRED,
    STATUS_TODAY,
    STATUS_UNKNOWN,
    STATUS_UPCOMING,
    Event,
    ReconcileResult,
    SkippedRecord,
)
from processor.sanitizer import clean
from storage.base import (
    COL_CATEGORY,
    COL_CITY,
    COL_DATE,
    COL_NAME,
    COL_SCRAPED_AT,
    COL_STATUS,
    COL_UNIQUE_ID,
    COL_URL,
    COL_VENUE,
    Partition,
    Store,
)

logger = logging.getLogger(__name__)

FIELD_LIMITS = {
    'name': 150,
    'date': 50,
    'venue': 200,
    'city': 50,
    'category': 50,
    'url': 500,
    'status': 20,
    'scraped_at': 50,
}


def determine_status(date_string: str, today: date) -> str:
    """
    Derive the lifecycle status of an event date relative to today.

    Args:
        date_string: Stored or normalized event date
        today: Current calendar date

    Returns:
        'expired', 'today', 'upcoming', or 'unknown' if unparseable
    """
    event_date = parse_calendar_date(date_string)
    if event_date is None:
        return STATUS_UNKNOWN
    if event_date < today:
        return STATUS_EXPIRED
    if event_date == today:
        return STATUS_TODAY
    return STATUS_UPCOMING


def sanitize_event(event: Event) -> Event:
    """Return a copy with every stored field cleaned and length bounded."""
    cleaned = {
        field_name: clean(getattr(event, field_name), limit)
        for field_name, limit in FIELD_LIMITS.items()
    }
    if not cleaned['status']:
        cleaned['status'] = 'Upcoming'
    return replace(event, **cleaned)


class ReconciliationEngine:
    """Applies insert/update/expire decisions for a batch through a Store."""

    def __init__(self, store: Store, today: Callable[[], date] = date.today):
        """
        Initialize the engine.

        Args:
            store: Opened store to reconcile against
            today: Returns the current calendar date
        """
        self.store = store
        self.today = today
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _city_lock(self, city: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(city, threading.Lock())

    def reconcile(self, events: List[Event], city: str) -> ReconcileResult:
        """
        Merge a batch of normalized events into the city's partition.

        Existing keys are updated in place, new keys appended, then stale
        rows are swept to expired. A failing event is skipped; a failing
        store yields a zero-count result.

        Args:
            events: Normalized events for the city
            city: Partition to reconcile against

        Returns:
            ReconcileResult with counts and skipped records
        """
        with self._city_lock(city):
            try:
                return self._reconcile(events, city)
            except Exception as e:
                logger.error(
                    f"Error reconciling events for {city}: {e}",
                    extra={'city': city, 'error_type': type(e).__name__},
                    exc_info=True
                )
                return ReconcileResult(skipped=[
                    SkippedRecord(label=city, stage='reconcile', reason=str(e))
                ])

    def _reconcile(self, events: List[Event], city: str) -> ReconcileResult:
        partition = self.store.get_or_create_partition(city)
        rows = partition.list_rows()
        logger.info(f"Found {len(rows)} existing events in {city}")

        existing = {}
        for row in rows:
            unique_id = row.get(COL_UNIQUE_ID) or compute_key_from_row(row)
            existing[unique_id] = row

        result = ReconcileResult()
        today = self.today()

        for event in events:
            try:
                cleaned = sanitize_event(event)
                unique_id = compute_key(cleaned)

                if unique_id in existing:
                    self._update_row(existing[unique_id], cleaned, today)
                    result.updated += 1
                else:
                    existing[unique_id] = self._append_row(
                        partition, cleaned, unique_id, today
                    )
                    result.added += 1
            except Exception as e:
                logger.error(f"Error processing event '{event.name}': {e}")
                result.skipped.append(
                    SkippedRecord(label=event.name, stage='write', reason=str(e))
                )
                continue

        result.expired = self.sweep_expired(partition, today, result.skipped)

        logger.info(
            f"{city}: {result.added} added, {result.updated} updated, "
            f"{result.expired} expired",
            extra={'city': city, 'skipped': len(result.skipped)}
        )
        return result

    def _append_row(self, partition: Partition, event: Event,
                    unique_id: str, today: date):
        return partition.append_row({
            COL_NAME: event.name,
            COL_DATE: event.date,
            COL_VENUE: event.venue,
            COL_CITY: event.city,
            COL_CATEGORY: event.category,
            COL_URL: event.url,
            COL_STATUS: determine_status(event.date, today),
            COL_SCRAPED_AT: event.scraped_at,
            COL_UNIQUE_ID: unique_id,
        })

    def _update_row(self, row, event: Event, today: date) -> None:
        row.set(COL_NAME, event.name)
        row.set(COL_DATE, event.date)
        row.set(COL_VENUE, event.venue)
        row.set(COL_CATEGORY, event.category)
        row.set(COL_URL, event.url)
        row.set(COL_STATUS, determine_status(event.date, today))
        row.set(COL_SCRAPED_AT, event.scraped_at)
        row.save()

    def sweep_expired(
        self,
        partition: Partition,
        today: Optional[date] = None,
        skipped: Optional[List[SkippedRecord]] = None
    ) -> int:
        """
        Flip rows dated before today to expired.

        Dates compare as strings against today's ISO date. Rows that are
        already expired, or unknown, are left alone.

        Returns:
            Count of rows newly marked expired
        """
        today_str = today_iso(today or self.today())
        expired_count = 0

        for row in partition.list_rows():
            event_date = row.get(COL_DATE)
            status = row.get(COL_STATUS)
            if not event_date or str(event_date) >= today_str:
                continue
            if status in (STATUS_EXPIRED, STATUS_UNKNOWN):
                continue

            try:
                row.set(COL_STATUS, STATUS_EXPIRED)
                row.save()
                expired_count += 1
            except Exception as e:
                logger.error(f"Error marking '{row.get(COL_NAME)}' expired: {e}")
                if skipped is not None:
                    skipped.append(SkippedRecord(
                        label=str(row.get(COL_NAME)), stage='sweep', reason=str(e)
                    ))

        return expired_count
