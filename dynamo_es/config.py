"""DynamoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

import boto3
from botocore.config import Config
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .event_repository import DEFAULT_EVENTS_TABLE, DEFAULT_SNAPSHOT_TABLE, DynamoEventRepository
from .repository import V
from .transaction import MAX_TRANSACTION_ITEMS
from .view_repository import DynamoViewRepository


class DynamoConfiguration(BaseSettings):
    """Configuration and factory for DynamoDB resources.

    All settings can be configured via environment variables with the
    DYNAMO_ES_ prefix. For example:
    - DYNAMO_ES_REGION_NAME=eu-west-1
    - DYNAMO_ES_ENDPOINT_URL=http://localhost:8000
    - DYNAMO_ES_EVENTS_TABLE=domain_events

    The configuration also acts as a factory, providing a lazily created
    boto3 client and repositories that share it.

    Attributes:
        region_name: AWS region of the tables.
        endpoint_url: Override endpoint, e.g. DynamoDB Local.
        aws_access_key_id: Optional explicit access key; the default
            credential chain is used when unset.
        aws_secret_access_key: Optional explicit secret key.
        events_table: Table name for event storage.
        snapshot_table: Table name for aggregate snapshots.
        max_transaction_items: Maximum operations per transaction.
        connect_timeout: Socket connect timeout in seconds.
        read_timeout: Socket read timeout in seconds.
        max_attempts: Total attempts botocore makes for retryable failures.

    Example:
        >>> config = DynamoConfiguration(endpoint_url="http://localhost:8000")
        >>>
        >>> events = config.event_repository()
        >>> summaries = config.view_repository(AccountSummary, "account_summary")
        >>>
        >>> await config.on_shutdown()
    """

    # Connection settings
    region_name: str = "us-east-1"
    endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: SecretStr | None = None

    # Table names
    events_table: str = DEFAULT_EVENTS_TABLE
    snapshot_table: str = DEFAULT_SNAPSHOT_TABLE

    max_transaction_items: int = Field(default=MAX_TRANSACTION_ITEMS, ge=1, le=100)

    # Transport (retries stay with botocore, never the repositories)
    connect_timeout: float = Field(default=5.0, gt=0)
    read_timeout: float = Field(default=10.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)

    model_config = SettingsConfigDict(env_prefix="DYNAMO_ES_")

    @cached_property
    def client(self) -> Any:
        """Get the boto3 DynamoDB client.

        The client is lazily created and cached for reuse.
        """
        kwargs: dict[str, Any] = {
            "region_name": self.region_name,
            "config": Config(
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                retries={"max_attempts": self.max_attempts, "mode": "standard"},
            ),
        }
        if self.endpoint_url is not None:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.aws_access_key_id is not None:
            kwargs["aws_access_key_id"] = self.aws_access_key_id
        if self.aws_secret_access_key is not None:
            kwargs["aws_secret_access_key"] = self.aws_secret_access_key.get_secret_value()
        return boto3.client("dynamodb", **kwargs)

    def event_repository(self) -> DynamoEventRepository:
        """Create an event repository using the configured tables."""
        return DynamoEventRepository.from_config(self)

    def view_repository(self, view_type: type[V], view_name: str) -> DynamoViewRepository[V]:
        """Create a view repository for the table ``view_name``."""
        return DynamoViewRepository.from_config(view_type, view_name, self)

    async def on_startup(self) -> None:
        """Called when the application starts.

        No-op for DynamoDB - the client is created lazily.
        """
        pass

    async def on_shutdown(self) -> None:
        """Called when the application shuts down.

        Closes the client's connection pool if it was created.
        """
        if "client" in self.__dict__:
            self.client.close()
            del self.__dict__["client"]
