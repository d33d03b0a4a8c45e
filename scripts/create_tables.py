#!/usr/bin/env python3
"""Create the billing DynamoDB tables for an environment.

Tables created (prefix ``piecefund-{env}`` unless --prefix is given):
- stripe-customers      (customer_id)
- stripe-subscriptions  (customer_id)
- stripe-orders         (checkout_session_id)
- pieces                (id)
- profiles              (id)
- notifications         (notification_id, GSI user_id-index)

Usage:
    python scripts/create_tables.py --env dev
    python scripts/create_tables.py --env dev --seed
    python scripts/create_tables.py --env dev --dry-run
"""

import argparse
import sys
from typing import Any

import boto3
from botocore.exceptions import ClientError

TABLE_KEYS: dict[str, str] = {
    "stripe-customers": "customer_id",
    "stripe-subscriptions": "customer_id",
    "stripe-orders": "checkout_session_id",
    "pieces": "id",
    "profiles": "id",
    "notifications": "notification_id",
}


def table_definition(prefix: str, table: str) -> dict[str, Any]:
    """Build the CreateTable request for one table."""
    key = TABLE_KEYS[table]
    definition: dict[str, Any] = {
        "TableName": f"{prefix}-{table}",
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": key, "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }

    if table == "notifications":
        definition["AttributeDefinitions"].append(
            {"AttributeName": "user_id", "AttributeType": "S"}
        )
        definition["GlobalSecondaryIndexes"] = [
            {
                "IndexName": "user_id-index",
                "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ]

    return definition


def create_tables(client: Any, prefix: str, dry_run: bool = False) -> list[str]:
    """Create every billing table that does not exist yet.

    Returns:
        Names of the tables that were created (or would be, on a dry run)
    """
    created: list[str] = []
    for table in TABLE_KEYS:
        definition = table_definition(prefix, table)
        name = definition["TableName"]

        if dry_run:
            print(f"  [dry-run] would create {name}")
            created.append(name)
            continue

        try:
            client.create_table(**definition)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                print(f"  {name} already exists")
                continue
            raise
        print(f"  created {name}")
        created.append(name)

    return created


def seed_demo_data(resource: Any, prefix: str) -> None:
    """Insert a demo customer mapping, profile and piece for local testing."""
    resource.Table(f"{prefix}-stripe-customers").put_item(
        Item={"customer_id": "cus_demo", "user_id": "user-demo"}
    )
    resource.Table(f"{prefix}-profiles").put_item(
        Item={"id": "user-demo", "total_donated_amount": 0, "onboarding_completed": True}
    )
    resource.Table(f"{prefix}-pieces").put_item(
        Item={"id": "piece-demo", "title": "Demo Piece", "amount_raised": 0}
    )
    print("  seeded cus_demo -> user-demo and piece-demo")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create billing DynamoDB tables")
    parser.add_argument("--env", default="dev", help="Environment name (default: dev)")
    parser.add_argument("--prefix", help="Table prefix (default: piecefund-{env})")
    parser.add_argument("--region", help="AWS region")
    parser.add_argument("--seed", action="store_true", help="Insert demo records")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be created")
    args = parser.parse_args()

    prefix = args.prefix or f"piecefund-{args.env}"
    kwargs = {"region_name": args.region} if args.region else {}

    print(f"Creating tables with prefix {prefix}")
    client = boto3.client("dynamodb", **kwargs)
    create_tables(client, prefix, dry_run=args.dry_run)

    if args.seed and not args.dry_run:
        client.get_waiter("table_exists").wait(TableName=f"{prefix}-pieces")
        seed_demo_data(boto3.resource("dynamodb", **kwargs), prefix)

    return 0


if __name__ == "__main__":
    sys.exit(main())
