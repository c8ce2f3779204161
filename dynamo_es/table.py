"""DynamoDB table wrapper with query helpers.

This module provides a DynamoTable class that wraps a boto3 DynamoDB client
for one table and exposes the read patterns the repositories need:
partition queries (optionally bounded on the sort key) and filtered scans,
both following pagination. Every call runs in a worker thread and every
botocore failure is re-raised as a classified persistence error.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .classifier import classify_error
from .codec import Item, number_attribute, string_attribute

LOGGER = logging.getLogger(__name__)


class DynamoTable:
    """A single DynamoDB table accessed through a low-level boto3 client.

    This class is used by repositories to separate concerns:
    - The repository handles record conversion (via the codec)
    - DynamoTable handles DynamoDB requests, pagination and error translation

    Example:
        >>> table = DynamoTable(client, "Events")
        >>> async for item in table.query("AggregateTypeAndId", "BankAccount:acc-1"):
        ...     print(item)
    """

    def __init__(self, client: Any, name: str) -> None:
        """Initialize the table wrapper.

        Args:
            client: A boto3 DynamoDB client.
            name: Name of the table.
        """
        self.client = client
        self.name = name

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        LOGGER.debug("DynamoDB %s on table %s", operation, self.name)
        method = getattr(self.client, operation)
        try:
            response: dict[str, Any] = await asyncio.to_thread(method, **kwargs)
        except (ClientError, BotoCoreError) as err:
            raise classify_error(err) from err
        return response

    async def query_pages(
        self,
        partition_key: str,
        value: str,
        sort_key: str | None = None,
        after: int | None = None,
    ) -> AsyncIterator[list[Item]]:
        """Query one partition, yielding each result page in sort key order.

        Args:
            partition_key: Name of the partition key attribute.
            value: Partition key value to match.
            sort_key: Name of the numeric sort key attribute, required with ``after``.
            after: If set, only return items whose sort key is greater.

        Yields:
            Lists of raw items, one list per response page.
        """
        condition = "#pk = :pk"
        names = {"#pk": partition_key}
        values = {":pk": string_attribute(value)}
        if after is not None:
            if sort_key is None:
                raise ValueError("sort_key is required when filtering on it")
            condition += " AND #sk > :sk"
            names["#sk"] = sort_key
            values[":sk"] = number_attribute(after)

        kwargs: dict[str, Any] = {
            "TableName": self.name,
            "KeyConditionExpression": condition,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ConsistentRead": True,
        }
        while True:
            response = await self._call("query", **kwargs)
            yield response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    async def query(
        self,
        partition_key: str,
        value: str,
        sort_key: str | None = None,
        after: int | None = None,
    ) -> AsyncIterator[Item]:
        """Query one partition, yielding items in sort key order."""
        async for page in self.query_pages(partition_key, value, sort_key, after):
            for item in page:
                yield item

    async def query_all(
        self,
        partition_key: str,
        value: str,
        sort_key: str | None = None,
        after: int | None = None,
    ) -> list[Item]:
        """Query one partition and collect every item."""
        return [item async for item in self.query(partition_key, value, sort_key, after)]

    async def query_first(self, partition_key: str, value: str) -> Item | None:
        """Return the first item of a partition, or None if it is empty."""
        response = await self._call(
            "query",
            TableName=self.name,
            KeyConditionExpression="#pk = :pk",
            ExpressionAttributeNames={"#pk": partition_key},
            ExpressionAttributeValues={":pk": string_attribute(value)},
            ConsistentRead=True,
            Limit=1,
        )
        items: list[Item] = response.get("Items", [])
        return items[0] if items else None

    async def scan(self, attribute: str, value: str) -> AsyncIterator[Item]:
        """Scan the table for items whose string attribute equals ``value``.

        Yields:
            Matching items, in no particular order.
        """
        kwargs: dict[str, Any] = {
            "TableName": self.name,
            "FilterExpression": "#attr = :value",
            "ExpressionAttributeNames": {"#attr": attribute},
            "ExpressionAttributeValues": {":value": string_attribute(value)},
            "ConsistentRead": True,
        }
        while True:
            response = await self._call("scan", **kwargs)
            for item in response.get("Items", []):
                yield item
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key
