"""Data models for event processing."""
from dataclasses import dataclass, field
from typing import Optional


STATUS_UPCOMING = 'upcoming'
STATUS_TODAY = 'today'
STATUS_EXPIRED = 'expired'
STATUS_UNKNOWN = 'unknown'

UNKNOWN_VENUE = 'Unknown Venue'
UNKNOWN_EVENT = 'Unknown Event'
DEFAULT_CATEGORY = 'General'


@dataclass
class Event:
    """Canonical, normalized event."""
    name: str
    date: str
    venue: str
    city: str
    category: str
    url: str
    status: str
    scraped_at: str
    description: str = ''
    price: str = 'Free'
    image: str = ''

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'date': self.date,
            'venue': self.venue,
            'city': self.city,
            'category': self.category,
            'url': self.url,
            'status': self.status,
            'scraped_at': self.scraped_at,
            'description': self.description,
            'price': self.price,
            'image': self.image,
        }


@dataclass
class SkippedRecord:
    """An item dropped from a batch, with the stage and reason."""
    label: str
    stage: str
    reason: str


@dataclass
class ProcessedBatch:
    """Result of normalizing a batch of raw records."""
    events: list[Event] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass
class ReconcileResult:
    """Result of reconciling a batch against a city's stored rows."""
    added: int = 0
    updated: int = 0
    expired: int = 0
    skipped: list[SkippedRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'added': self.added,
            'updated': self.updated,
            'expired': self.expired,
            'skipped': [
                {'label': s.label, 'stage': s.stage, 'reason': s.reason}
                for s in self.skipped
            ],
        }


# Raw venue shapes, classified once at the raw-record boundary.

@dataclass(frozen=True)
class VenueText:
    text: str


@dataclass(frozen=True)
class AddressParts:
    parts: tuple


@dataclass(frozen=True)
class VenueObject:
    name: Optional[str]
    address: Optional[str]


@dataclass(frozen=True)
class WrappedValues:
    values: tuple


@dataclass(frozen=True)
class UnknownShape:
    pass


RawVenue = VenueText | AddressParts | VenueObject | WrappedValues | UnknownShape
