"""Coerce untrusted values into clean, length-bounded display strings."""
import logging
import re
from typing import Any

from processor.models import UNKNOWN_VENUE

logger = logging.getLogger(__name__)

INVALID_DATA = 'Invalid Data'
ELLIPSIS = '...'

_LINE_BREAKS = re.compile(r'[\n\t\r]')
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_BRACES = re.compile(r'[{}]')
_WHITESPACE = re.compile(r'\s+')
_COMMAS = re.compile(r',+')
_STRUCTURE_CHARS = re.compile(r'[{}:\[\]"]')
_VALUES_KEY = re.compile(r'values\s*:')

SERIALIZATION_MARKERS = ('string_value', 'list_value')


def _dedupe(items) -> list:
    """Drop repeated items, keeping the first occurrence."""
    return list(dict.fromkeys(items))


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length, ending in an ellipsis when shortened."""
    if len(text) > max_length:
        return text[:max_length - len(ELLIPSIS)] + ELLIPSIS
    return text


def _recover_serialized(text: str) -> str:
    text = text.replace('"string_value":', '')
    text = text.replace('list_value', '')
    text = text.replace('values', '')
    text = _STRUCTURE_CHARS.sub('', text)
    text = _COMMAS.sub(',', text)
    text = _WHITESPACE.sub(' ', text).strip()

    parts = [part.strip() for part in text.split(',')]
    return ', '.join(_dedupe(part for part in parts if part))


def clean(value: Any, max_length: int = 50000) -> str:
    """
    Clean a value for storage and display.

    Args:
        value: Any value; non-strings are stringified
        max_length: Maximum length of the result, ellipsis included

    Returns:
        Cleaned string, '' for empty input
    """
    if value is None or value == '':
        return ''

    text = str(value)
    text = _LINE_BREAKS.sub(' ', text)
    text = _CONTROL_CHARS.sub('', text)
    text = _BRACES.sub('', text)
    text = _WHITESPACE.sub(' ', text).strip()

    if any(marker in text for marker in SERIALIZATION_MARKERS):
        try:
            text = _recover_serialized(text)
        except Exception as e:
            logger.warning(f"Failed to recover serialized value: {e}")
            text = INVALID_DATA

    return truncate(text, max_length)


def clean_venue_string(value: Any) -> str:
    """
    Tidy a resolved venue string.

    Strips serialization leftovers, removes repeated lines, keeps at most
    three comma separated parts and bounds the length at 200.
    """
    if not value or value == UNKNOWN_VENUE:
        return UNKNOWN_VENUE

    text = str(value)
    text = text.replace('"string_value":', '')
    text = _BRACES.sub('', text)
    text = _VALUES_KEY.sub('', text)
    text = text.replace('list_value', '')

    lines = [line for line in text.split('\n') if line.strip()]
    text = ', '.join(_dedupe(lines))

    text = _COMMAS.sub(',', text)
    text = _WHITESPACE.sub(' ', text).strip()
    if text.endswith(','):
        text = text[:-1].rstrip()

    parts = text.split(',')
    if len(parts) > 3:
        text = ', '.join(part.strip() for part in parts[:3])

    text = truncate(text, 200)
    return text or UNKNOWN_VENUE
