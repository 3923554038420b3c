"""DynamoDB backend."""
from .store import DynamoDBStore

__all__ = ['DynamoDBStore']
