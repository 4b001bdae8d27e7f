"""Venue resolution for raw event records of unpredictable shape."""
import logging
from typing import Any

from processor.models import (
    AddressParts,
    RawVenue,
    UnknownShape,
    VenueObject,
    VenueText,
    WrappedValues,
    UNKNOWN_VENUE,
)
from processor.sanitizer import clean_venue_string

logger = logging.getLogger(__name__)


def _text_or_none(value: Any):
    return value if isinstance(value, str) else None


def classify_venue(raw_event: dict) -> RawVenue:
    """
    Classify the venue/address fields of a raw record into a RawVenue.

    Args:
        raw_event: Raw event dictionary from a source

    Returns:
        The first matching RawVenue variant
    """
    address = raw_event.get('address')
    venue = raw_event.get('venue')

    if isinstance(address, str):
        return VenueText(address)
    if isinstance(venue, str):
        return VenueText(venue)

    if isinstance(address, list):
        return AddressParts(tuple(address))

    if isinstance(venue, dict):
        name = _text_or_none(venue.get('name'))
        venue_address = _text_or_none(venue.get('address'))
        if name is not None or venue_address is not None:
            return VenueObject(name=name, address=venue_address)

    if isinstance(address, dict) and isinstance(address.get('values'), list):
        return WrappedValues(tuple(address['values']))

    return UnknownShape()


def _join_unique(parts) -> str:
    kept = [part for part in parts if isinstance(part, str) and part.strip()]
    return ', '.join(dict.fromkeys(kept))


def venue_text(raw_venue: RawVenue) -> str:
    """Extract the best-effort venue text from a classified venue."""
    match raw_venue:
        case VenueText(text=text):
            return text
        case AddressParts(parts=parts):
            return _join_unique(parts)
        case VenueObject(name=str() as name):
            return name
        case VenueObject(address=str() as address):
            return address
        case WrappedValues(values=values):
            return _join_unique(
                item.get('string_value') for item in values
                if isinstance(item, dict)
            )
        case _:
            return UNKNOWN_VENUE


def resolve_venue(raw_event: dict) -> str:
    """
    Resolve a clean venue string from a raw event record.

    Never raises; any failure yields 'Unknown Venue'.
    """
    try:
        return clean_venue_string(venue_text(classify_venue(raw_event)))
    except Exception as e:
        logger.warning(f"Error extracting venue: {e}")
        return UNKNOWN_VENUE
