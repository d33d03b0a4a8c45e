"""Tests for the table provisioning script."""

import importlib.util
from pathlib import Path
from types import ModuleType

import boto3
import pytest
from moto import mock_aws

from conftest import BILLING_TABLES, TEST_REGION

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "create_tables.py"


@pytest.fixture(scope="module")
def create_tables_module() -> ModuleType:
    """Load scripts/create_tables.py, which is not an installed module."""
    spec = importlib.util.spec_from_file_location("create_tables", SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestTableDefinitions:
    def test_keys_match_service_tables(self, create_tables_module: ModuleType) -> None:
        assert create_tables_module.TABLE_KEYS == BILLING_TABLES

    def test_notifications_have_user_index(self, create_tables_module: ModuleType) -> None:
        definition = create_tables_module.table_definition("piecefund-dev", "notifications")

        assert definition["TableName"] == "piecefund-dev-notifications"
        (index,) = definition["GlobalSecondaryIndexes"]
        assert index["IndexName"] == "user_id-index"


class TestCreateTables:
    def test_creates_every_table(self, create_tables_module: ModuleType) -> None:
        with mock_aws():
            client = boto3.client("dynamodb", region_name=TEST_REGION)

            created = create_tables_module.create_tables(client, "piecefund-dev")

            assert sorted(created) == sorted(f"piecefund-dev-{name}" for name in BILLING_TABLES)
            assert sorted(client.list_tables()["TableNames"]) == sorted(created)

    def test_existing_tables_are_skipped(self, create_tables_module: ModuleType) -> None:
        with mock_aws():
            client = boto3.client("dynamodb", region_name=TEST_REGION)
            create_tables_module.create_tables(client, "piecefund-dev")

            assert create_tables_module.create_tables(client, "piecefund-dev") == []

    def test_dry_run_creates_nothing(self, create_tables_module: ModuleType) -> None:
        with mock_aws():
            client = boto3.client("dynamodb", region_name=TEST_REGION)

            created = create_tables_module.create_tables(client, "piecefund-dev", dry_run=True)

            assert len(created) == len(BILLING_TABLES)
            assert client.list_tables()["TableNames"] == []

    def test_seed_creates_demo_records(self, create_tables_module: ModuleType) -> None:
        with mock_aws():
            client = boto3.client("dynamodb", region_name=TEST_REGION)
            create_tables_module.create_tables(client, "piecefund-dev")
            resource = boto3.resource("dynamodb", region_name=TEST_REGION)

            create_tables_module.seed_demo_data(resource, "piecefund-dev")

            mapping = resource.Table("piecefund-dev-stripe-customers").get_item(
                Key={"customer_id": "cus_demo"}
            )["Item"]
            assert mapping["user_id"] == "user-demo"
