"""Tabular store interface: one partition of rows per city."""
from abc import ABC, abstractmethod
from typing import Any, List, Optional


COL_NAME = 'Event Name'
COL_DATE = 'Date'
COL_VENUE = 'Venue'
COL_CITY = 'City'
COL_CATEGORY = 'Category'
COL_URL = 'URL'
COL_STATUS = 'Status'
COL_SCRAPED_AT = 'Scraped At'
COL_UNIQUE_ID = 'Unique ID'

HEADERS = [
    COL_NAME, COL_DATE, COL_VENUE, COL_CITY, COL_CATEGORY,
    COL_URL, COL_STATUS, COL_SCRAPED_AT, COL_UNIQUE_ID,
]


class Row(ABC):
    """A stored row; set() stages a change, save() persists it."""

    @abstractmethod
    def get(self, column: str) -> Any:
        pass

    @abstractmethod
    def set(self, column: str, value: Any) -> None:
        pass

    @abstractmethod
    def save(self) -> None:
        pass


class Partition(ABC):
    """All rows stored for one city."""

    title: str
    headers: List[str]

    @abstractmethod
    def list_rows(self) -> List[Row]:
        pass

    @abstractmethod
    def append_row(self, fields: dict) -> Row:
        """Write a new row; columns missing from fields are left empty."""
        pass


class Store(ABC):
    """
    Per-city row store with an explicit open/close lifecycle.

    Usable as a context manager: the store is opened on enter and closed
    on exit.
    """

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def get_or_create_partition(self, city: str) -> Partition:
        pass

    @abstractmethod
    def get_partition(self, city: str) -> Optional[Partition]:
        """Return the city's partition, or None if nothing was written."""
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
