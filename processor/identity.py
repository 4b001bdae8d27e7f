"""Deduplication keys for events and stored rows."""
import re

from processor.models import Event

MAX_KEY_LENGTH = 100

_WHITESPACE = re.compile(r'\s+')
_NON_KEY_CHARS = re.compile(r'[^a-zA-Z0-9\-]')


def compute_key(event: Event) -> str:
    """
    Derive the identity key of an event from its name, date and venue.

    Distinct events whose keys share the first 100 characters collide.
    """
    composite = f"{event.name}-{event.date}-{event.venue}"
    key = _WHITESPACE.sub('-', composite)
    key = _NON_KEY_CHARS.sub('', key)
    return key.lower()[:MAX_KEY_LENGTH]


def compute_key_from_row(row) -> str:
    """
    Derive a key for a stored row that has no 'Unique ID' value.

    Punctuation is kept and the key is not truncated, so the result can
    differ from compute_key for the same event.
    """
    composite = (
        f"{row.get('Event Name') or ''}-"
        f"{row.get('Date') or ''}-"
        f"{row.get('Venue') or ''}"
    )
    return _WHITESPACE.sub('-', composite).lower()
