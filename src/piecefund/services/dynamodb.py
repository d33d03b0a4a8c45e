"""DynamoDB access for reconciliation state.

Every write the reconciler makes is one of three idempotent primitives:

- upsert: full-row replace keyed by the table's primary key
- insert_once: conditional put that refuses to overwrite an existing key
- increment: atomic server-side ADD, never a client read-modify-write

Table names are short (``stripe-orders``) and prefixed per environment.
"""

import os
from typing import Any

import boto3
from botocore.exceptions import ClientError

from piecefund.models.records import CustomerRecord

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
CUSTOMERS_TABLE = "stripe-customers"

_dynamodb_service_instance: "DynamoDBService | None" = None


class PersistenceError(Exception):
    """A DynamoDB read or write failed."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class DuplicateKeyError(PersistenceError):
    """insert_once found the key already present.

    Recoverable: the record was written by an earlier delivery.
    """


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use."""
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the shared instance so the next call builds a fresh one.

    Tests call this to rebind the service inside a new ``mock_aws`` context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def _aws_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class DynamoDBService:
    """Environment-aware wrapper over the boto3 DynamoDB resource."""

    def __init__(self, environment: str | None = None) -> None:
        """Bind to the tables of one environment.

        Args:
            environment: dev/prod; defaults to the ENVIRONMENT variable.
                DYNAMODB_TABLE_PREFIX overrides the derived prefix.
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"piecefund-{self.environment}")
        self._dynamodb = boto3.resource("dynamodb")

    def _table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _table(self, table: str) -> Any:
        return self._dynamodb.Table(self._table_name(table))

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Read one row by primary key; None when absent.

        Raises:
            PersistenceError: If the read fails.
        """
        try:
            response = self._table(table).get_item(Key=key)
        except ClientError as e:
            raise PersistenceError(f"Failed to read {table} {key}: {e}", _aws_code(e)) from e
        return response.get("Item")

    def _put(self, table: str, item: dict[str, Any], condition: str | None = None) -> bool:
        """Put a row, returning False when ``condition`` rejects it."""
        kwargs: dict[str, Any] = {"Item": item}
        if condition:
            kwargs["ConditionExpression"] = condition
        try:
            self._table(table).put_item(**kwargs)
        except ClientError as e:
            if _aws_code(e) == CONDITIONAL_CHECK_FAILED:
                return False
            raise PersistenceError(f"Failed to write {table} row: {e}", _aws_code(e)) from e
        return True

    def _update(
        self,
        table: str,
        key: dict[str, Any],
        expression: str,
        values: dict[str, Any],
        names: dict[str, str],
        condition: str,
    ) -> dict[str, Any] | None:
        """Apply an update expression, returning None when ``condition`` rejects it."""
        try:
            response = self._table(table).update_item(
                Key=key,
                UpdateExpression=expression,
                ExpressionAttributeValues=values,
                ExpressionAttributeNames=names,
                ConditionExpression=condition,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _aws_code(e) == CONDITIONAL_CHECK_FAILED:
                return None
            raise PersistenceError(f"Failed to update {table} {key}: {e}", _aws_code(e)) from e
        return response.get("Attributes")

    def upsert(self, table: str, item: dict[str, Any]) -> None:
        """Insert or fully replace the row with the same primary key.

        No merge: attributes absent from ``item`` disappear from the row.

        Raises:
            PersistenceError: If the write fails.
        """
        self._put(table, item)

    def insert_once(self, table: str, key_name: str, item: dict[str, Any]) -> None:
        """Insert ``item`` unless a row with its ``key_name`` value exists.

        Concurrent deliveries race on the same condition, so exactly one
        insert wins and the others see DuplicateKeyError.

        Raises:
            DuplicateKeyError: If the key is already present.
            PersistenceError: If the write fails for any other reason.
        """
        if not self._put(table, item, condition=f"attribute_not_exists({key_name})"):
            raise DuplicateKeyError(
                f"{table} row {key_name}={item.get(key_name)} already exists",
                CONDITIONAL_CHECK_FAILED,
            )

    def increment(
        self,
        table: str,
        key: dict[str, Any],
        field: str,
        delta: int,
    ) -> dict[str, Any] | None:
        """Atomically add ``delta`` to a numeric attribute.

        The addition runs inside DynamoDB, so concurrent increments never
        lose updates. A missing attribute counts as zero. A missing row is
        left missing.

        Args:
            table: Short table name
            key: Single-attribute primary key
            field: Counter attribute
            delta: Amount to add

        Returns:
            The row after the update, or None if the row does not exist

        Raises:
            PersistenceError: If the update fails.
        """
        (key_name,) = key
        return self._update(
            table,
            key,
            "ADD #field :delta",
            {":delta": delta},
            {"#field": field, "#pk": key_name},
            condition="attribute_exists(#pk)",
        )

    def get_user_id_for_customer(self, customer_id: str) -> str | None:
        """Resolve the application user behind a Stripe customer.

        Returns:
            User ID, or None if the mapping is missing or soft-deleted
        """
        item = self.get_item(CUSTOMERS_TABLE, {"customer_id": customer_id})
        if not item:
            return None
        record = CustomerRecord.model_validate(item)
        if record.deleted_at:
            return None
        return record.user_id
