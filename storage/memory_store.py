"""In-process store, used for local runs and tests."""
import logging
from typing import Dict, List, Optional

from processor.errors import ConfigurationError, StoreWriteError
from storage.base import HEADERS, Partition, Row, Store

logger = logging.getLogger(__name__)


class MemoryRow(Row):
    """Row backed by a dict; staged changes apply on save()."""

    def __init__(self, values: dict):
        self._values = values
        self._staged: dict = {}

    def get(self, column: str):
        if column in self._staged:
            return self._staged[column]
        return self._values.get(column)

    def set(self, column: str, value) -> None:
        if column not in HEADERS:
            raise StoreWriteError(f"Unknown column: {column}")
        self._staged[column] = value

    def save(self) -> None:
        self._values.update(self._staged)
        self._staged = {}


class MemoryPartition(Partition):
    def __init__(self, title: str):
        self.title = title
        self.headers = list(HEADERS)
        self._rows: List[dict] = []

    def list_rows(self) -> List[MemoryRow]:
        return [MemoryRow(values) for values in self._rows]

    def append_row(self, fields: dict) -> MemoryRow:
        unknown = set(fields) - set(self.headers)
        if unknown:
            raise StoreWriteError(f"Unknown columns: {sorted(unknown)}")
        values = {column: fields.get(column, '') for column in self.headers}
        self._rows.append(values)
        return MemoryRow(values)


class MemoryStore(Store):
    """Store that keeps partitions in a dict keyed by city."""

    def __init__(self):
        self._partitions: Dict[str, MemoryPartition] = {}
        self._opened = False

    def open(self) -> None:
        self._opened = True
        logger.info("Opened in-memory event store")

    def close(self) -> None:
        self._opened = False

    def _require_open(self) -> None:
        if not self._opened:
            raise ConfigurationError("Store has not been opened")

    def get_or_create_partition(self, city: str) -> MemoryPartition:
        self._require_open()
        if city not in self._partitions:
            logger.info(f"Creating new partition: {city}")
            self._partitions[city] = MemoryPartition(city)
        return self._partitions[city]

    def get_partition(self, city: str) -> Optional[MemoryPartition]:
        self._require_open()
        return self._partitions.get(city)
