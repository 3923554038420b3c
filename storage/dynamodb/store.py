"""
DynamoDB store
Bulk writes via BatchWriteItem against AWS or a LocalStack endpoint.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.types import TypeSerializer
from botocore.config import Config
from botocore.exceptions import ClientError

from common.errors import MarshalError

from ..interfaces import TableSpec
from ..marshal import record_to_item

logger = logging.getLogger(__name__)

# BatchWriteItem hard limit
MAX_BATCH_SIZE = 25

_KEY_TYPES = {'S': 'S', 'N': 'N', 'I': 'N'}


def _to_dynamo_value(value: Any) -> Any:
    # The serializer rejects float; Decimal(str()) keeps the shortest repr
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _error_code(exc: ClientError) -> str:
    return exc.response.get('Error', {}).get('Code', '')


class DynamoDBStore:
    """
    BulkStore backed by a DynamoDB client.

    Features:
    - One low-level client shared by all workers (boto3 clients are thread-safe)
    - botocore retries disabled; the pipeline's batch writer owns retry policy
    - PAY_PER_REQUEST tables with waiter-based create/delete
    """

    max_batch_size = MAX_BATCH_SIZE

    def __init__(self, endpoint_url: Optional[str] = None, region: str = 'us-east-1',
                 access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None,
                 create_timeout: int = 30, max_pool_connections: int = 64, client=None):
        """
        Initialize DynamoDB store.

        Args:
            endpoint_url: Custom endpoint (e.g. LocalStack http://localhost:4566)
            region: AWS region
            access_key_id: Optional explicit credentials
            secret_access_key: Optional explicit credentials
            create_timeout: Seconds to wait for a table to become active/deleted
            max_pool_connections: HTTP pool size, should exceed the worker count
            client: Pre-built client (tests inject a stubbed one)
        """
        self.endpoint_url = endpoint_url
        self.region = region
        self.create_timeout = create_timeout
        self._serializer = TypeSerializer()

        if client is None:
            client_config = Config(
                connect_timeout=10,
                read_timeout=30,
                retries={'max_attempts': 0, 'mode': 'standard'},
                max_pool_connections=max_pool_connections,
            )
            client = boto3.client(
                'dynamodb',
                endpoint_url=endpoint_url,
                region_name=region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                config=client_config,
            )
            logger.info(f"DynamoDB client created: {endpoint_url or 'aws'} ({region})")
        self.client = client

    def ping(self) -> None:
        """Cheap round trip used to verify connectivity before a run."""
        self.client.list_tables(Limit=1)

    def serialize_item(self, record: Any) -> Dict[str, Any]:
        item = record_to_item(record)
        try:
            return {key: self._serializer.serialize(_to_dynamo_value(value)) for key, value in item.items()}
        except (TypeError, ValueError, ArithmeticError) as e:
            raise MarshalError(f"failed to marshal item: {e}", record) from e

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        if len(items) > self.max_batch_size:
            raise ValueError(f"BatchWriteItem accepts at most {self.max_batch_size} items, got {len(items)}")

        response = self.client.batch_write_item(
            RequestItems={
                table_name: [{'PutRequest': {'Item': item}} for item in items]
            }
        )

        # Per-item outcomes are not retried; surface them for the operator
        unprocessed = response.get('UnprocessedItems', {}).get(table_name, [])
        if unprocessed:
            logger.warning(f"{len(unprocessed)} of {len(items)} items unprocessed by {table_name}")

    def table_exists(self, table_name: str) -> bool:
        try:
            self.client.describe_table(TableName=table_name)
            return True
        except ClientError as e:
            if _error_code(e) == 'ResourceNotFoundException':
                return False
            raise

    def create_table(self, spec: TableSpec) -> None:
        keys = [spec.partition_key] + ([spec.sort_key] if spec.sort_key else [])
        key_schema = [{'AttributeName': spec.partition_key.name, 'KeyType': 'HASH'}]
        if spec.sort_key:
            key_schema.append({'AttributeName': spec.sort_key.name, 'KeyType': 'RANGE'})

        logger.info(f"Creating table {spec.name}...")
        self.client.create_table(
            TableName=spec.name,
            KeySchema=key_schema,
            AttributeDefinitions=[
                {'AttributeName': key.name, 'AttributeType': _KEY_TYPES[key.type]} for key in keys
            ],
            BillingMode='PAY_PER_REQUEST',
        )

        logger.info("Waiting for table to be active...")
        self.client.get_waiter('table_exists').wait(
            TableName=spec.name,
            WaiterConfig={'Delay': 1, 'MaxAttempts': self.create_timeout},
        )
        logger.info(f"Table {spec.name} created successfully")

    def delete_table(self, table_name: str) -> None:
        try:
            self.client.delete_table(TableName=table_name)
        except ClientError as e:
            if _error_code(e) == 'ResourceNotFoundException':
                return
            raise

        logger.info(f"Deleting table {table_name}...")
        self.client.get_waiter('table_not_exists').wait(
            TableName=table_name,
            WaiterConfig={'Delay': 1, 'MaxAttempts': self.create_timeout},
        )
        logger.info(f"Deleted existing table {table_name}")

    def close(self) -> None:
        self.client.close()
