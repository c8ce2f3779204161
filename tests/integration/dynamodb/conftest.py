"""Pytest fixtures for DynamoDB integration tests.

Assumes DynamoDB Local is running (``docker run -p 8000:8000
amazon/dynamodb-local``). Set DYNAMO_ES_TEST_ENDPOINT to use another
endpoint. Tests are skipped when the endpoint cannot be reached.
"""

import os
from collections.abc import Iterator
from uuid import uuid4

import pytest
from botocore.exceptions import BotoCoreError, ClientError

from dynamo_es import DynamoConfiguration, DynamoEventRepository, DynamoViewRepository
from tests.fixtures import AccountSummary

LOCAL_DYNAMODB_ENDPOINT = os.environ.get("DYNAMO_ES_TEST_ENDPOINT", "http://localhost:8000")


def create_table(client, name: str, partition_key: str, sort_key: str | None = None) -> None:
    key_schema = [{"AttributeName": partition_key, "KeyType": "HASH"}]
    attributes = [{"AttributeName": partition_key, "AttributeType": "S"}]
    if sort_key is not None:
        key_schema.append({"AttributeName": sort_key, "KeyType": "RANGE"})
        attributes.append({"AttributeName": sort_key, "AttributeType": "N"})
    client.create_table(
        TableName=name,
        KeySchema=key_schema,
        AttributeDefinitions=attributes,
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=name)


@pytest.fixture
def dynamo_config(request: pytest.FixtureRequest) -> Iterator[DynamoConfiguration]:
    """Create a configuration with freshly created, uniquely named tables."""
    suffix = uuid4().hex[:12]
    config = DynamoConfiguration(
        endpoint_url=LOCAL_DYNAMODB_ENDPOINT,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        events_table=f"Events_{suffix}",
        snapshot_table=f"Snapshots_{suffix}",
        connect_timeout=1,
        read_timeout=5,
        max_attempts=1,
    )
    client = config.client
    try:
        client.list_tables(Limit=1)
    except (BotoCoreError, ClientError) as err:
        pytest.skip(f"DynamoDB Local not reachable at {LOCAL_DYNAMODB_ENDPOINT}: {err}")

    tables = [config.events_table, config.snapshot_table, f"account_summary_{suffix}"]
    create_table(client, config.events_table, "AggregateTypeAndId", "AggregateIdSequence")
    create_table(client, config.snapshot_table, "AggregateTypeAndId")
    create_table(client, tables[2], "QueryInstanceId")
    try:
        yield config
    finally:
        for table in tables:
            client.delete_table(TableName=table)
        client.close()


@pytest.fixture
def events(dynamo_config: DynamoConfiguration) -> DynamoEventRepository:
    return dynamo_config.event_repository()


@pytest.fixture
def views(dynamo_config: DynamoConfiguration) -> DynamoViewRepository[AccountSummary]:
    view_name = dynamo_config.events_table.replace("Events_", "account_summary_")
    return dynamo_config.view_repository(AccountSummary, view_name)
