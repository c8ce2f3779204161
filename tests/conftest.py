"""Central test fixtures."""

from collections.abc import Iterator
from uuid import uuid4

import boto3
import pytest
from botocore.stub import Stubber

from dynamo_es import DynamoEventRepository, DynamoViewRepository
from tests.fixtures import AccountSummary


@pytest.fixture
def aggregate_id() -> str:
    """Generate a unique aggregate ID."""
    return str(uuid4())


@pytest.fixture
def dynamodb_client():
    """Create a DynamoDB client that never reaches AWS when stubbed."""
    return boto3.client(
        "dynamodb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(dynamodb_client) -> Iterator[Stubber]:
    """Activate a botocore Stubber; unexpected requests raise immediately."""
    with Stubber(dynamodb_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def event_repository(dynamodb_client) -> DynamoEventRepository:
    return DynamoEventRepository(dynamodb_client)


@pytest.fixture
def view_repository(dynamodb_client) -> DynamoViewRepository[AccountSummary]:
    return DynamoViewRepository(AccountSummary, "account_summary", dynamodb_client)
