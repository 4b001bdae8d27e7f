"""DynamoDB-backed event store."""
import logging
import uuid
from typing import Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from processor.errors import ConfigurationError, StoreReadError, StoreWriteError
from storage.base import HEADERS, Partition, Row, Store

logger = logging.getLogger(__name__)

PARTITION_KEY = 'partition'
ROW_KEY = 'row_id'

COLUMN_ATTRIBUTES = {
    'Event Name': 'event_name',
    'Date': 'event_date',
    'Venue': 'venue',
    'City': 'city',
    'Category': 'category',
    'URL': 'url',
    'Status': 'status',
    'Scraped At': 'scraped_at',
    'Unique ID': 'unique_id',
}


class DynamoDBRow(Row):
    """A single stored item; save() writes the whole item back."""

    def __init__(self, table, item: dict):
        self._table = table
        self._item = dict(item)

    def get(self, column: str):
        return self._item.get(COLUMN_ATTRIBUTES.get(column, column))

    def set(self, column: str, value) -> None:
        if column not in COLUMN_ATTRIBUTES:
            raise StoreWriteError(f"Unknown column: {column}")
        self._item[COLUMN_ATTRIBUTES[column]] = value

    def save(self) -> None:
        try:
            self._table.put_item(Item=self._item)
        except ClientError as e:
            raise StoreWriteError(f"Error saving row: {e}") from e


class DynamoDBPartition(Partition):
    """Rows of one city, addressed by the table's hash key."""

    def __init__(self, table, city: str):
        self._table = table
        self.title = city
        self.headers = list(HEADERS)

    def list_rows(self) -> List[DynamoDBRow]:
        """
        Query all items of this partition, following pagination.

        Raises:
            StoreReadError: If the query fails
        """
        condition = Key(PARTITION_KEY).eq(self.title)
        try:
            response = self._table.query(KeyConditionExpression=condition)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self._table.query(
                    KeyConditionExpression=condition,
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            raise StoreReadError(f"Error querying partition {self.title}: {e}") from e

        return [DynamoDBRow(self._table, item) for item in items]

    def append_row(self, fields: dict) -> DynamoDBRow:
        """
        Write a new item for this partition.

        Raises:
            StoreWriteError: If a column is unknown or the write fails
        """
        unknown = set(fields) - set(COLUMN_ATTRIBUTES)
        if unknown:
            raise StoreWriteError(f"Unknown columns: {sorted(unknown)}")

        item = {
            PARTITION_KEY: self.title,
            ROW_KEY: uuid.uuid4().hex,
        }
        for column, value in fields.items():
            item[COLUMN_ATTRIBUTES[column]] = value

        row = DynamoDBRow(self._table, item)
        row.save()
        return row


class DynamoDBStore(Store):
    """Store keeping every city's rows in a single DynamoDB table."""

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Configure the store; nothing is contacted until open().

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region of the table
        """
        self.table_name = table_name
        self.region_name = region_name
        self.dynamodb = None
        self.table = None
        self._partitions: Dict[str, DynamoDBPartition] = {}

    def open(self) -> None:
        """
        Connect to the table and verify it exists.

        Raises:
            ConfigurationError: If the table name is missing or the table
                cannot be reached
        """
        if not self.table_name:
            raise ConfigurationError("Missing DynamoDB table name (TABLE_NAME)")

        try:
            self.dynamodb = boto3.resource('dynamodb', region_name=self.region_name)
            table = self.dynamodb.Table(self.table_name)
            table.load()
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(
                f"Cannot open DynamoDB table {self.table_name}: {e}"
            ) from e

        self.table = table
        logger.info(f"Initialized DynamoDBStore for table: {self.table_name}")

    def close(self) -> None:
        self._partitions.clear()
        self.table = None
        self.dynamodb = None

    def _require_table(self):
        if self.table is None:
            raise ConfigurationError("Store has not been opened")
        return self.table

    def get_or_create_partition(self, city: str) -> DynamoDBPartition:
        table = self._require_table()
        if city not in self._partitions:
            self._partitions[city] = DynamoDBPartition(table, city)
        return self._partitions[city]

    def get_partition(self, city: str) -> Optional[DynamoDBPartition]:
        """Return the city's partition, or None if it holds no rows."""
        partition = self.get_or_create_partition(city)
        try:
            response = self.table.query(
                KeyConditionExpression=Key(PARTITION_KEY).eq(city),
                Limit=1
            )
        except ClientError as e:
            raise StoreReadError(f"Error querying partition {city}: {e}") from e

        if not response.get('Items'):
            return None
        return partition

    @staticmethod
    def create_table(table_name: str, region_name: Optional[str] = None):
        """Create the events table with its partition/row key schema."""
        dynamodb = boto3.resource('dynamodb', region_name=region_name)
        table = dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {'AttributeName': PARTITION_KEY, 'KeyType': 'HASH'},
                {'AttributeName': ROW_KEY, 'KeyType': 'RANGE'},
            ],
            AttributeDefinitions=[
                {'AttributeName': PARTITION_KEY, 'AttributeType': 'S'},
                {'AttributeName': ROW_KEY, 'AttributeType': 'S'},
            ],
            BillingMode='PAY_PER_REQUEST',
        )
        table.wait_until_exists()
        return table
