"""Atomic multi-item writes built from conditional puts.

A DynamoDB transaction commits every operation or none of them, and
aborts as a whole when any single item's condition fails. The store caps
the number of operations per transaction; the cap is enforced here, before
any request is sent, so callers can size their batches deterministically.
"""

import asyncio
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, Field

from .classifier import classify_error
from .codec import AttributeValue, Item
from .domain import OptimisticLockError, TransactionListTooLongError

LOGGER = logging.getLogger(__name__)

MAX_TRANSACTION_ITEMS = 25


class ConditionalPut(BaseModel):
    """A put operation that only applies if its condition holds.

    Example:
        >>> ConditionalPut(
        ...     table_name="Events",
        ...     item={"AggregateTypeAndId": {"S": "BankAccount:acc-1"}, ...},
        ...     condition_expression="attribute_not_exists(AggregateIdSequence)",
        ... )
    """

    table_name: str
    item: Item
    condition_expression: str | None = None
    expression_attribute_values: dict[str, AttributeValue] = Field(default_factory=dict)
    expression_attribute_names: dict[str, str] = Field(default_factory=dict)

    def to_transact_item(self) -> dict[str, Any]:
        """Render as one entry of a ``TransactWriteItems`` request."""
        put: dict[str, Any] = {"TableName": self.table_name, "Item": self.item}
        if self.condition_expression is not None:
            put["ConditionExpression"] = self.condition_expression
        if self.expression_attribute_values:
            put["ExpressionAttributeValues"] = self.expression_attribute_values
        if self.expression_attribute_names:
            put["ExpressionAttributeNames"] = self.expression_attribute_names
        return {"Put": put}


class TransactionBuilder:
    """Collects conditional puts, in order, for a single atomic commit.

    Example:
        >>> builder = TransactionBuilder()
        >>> builder.put("Events", item, "attribute_not_exists(AggregateIdSequence)")
        >>> await builder.commit(client)
    """

    def __init__(self, max_items: int = MAX_TRANSACTION_ITEMS) -> None:
        self.max_items = max_items
        self._operations: list[ConditionalPut] = []

    def __len__(self) -> int:
        return len(self._operations)

    def add(self, operation: ConditionalPut) -> "TransactionBuilder":
        self._operations.append(operation)
        return self

    def put(
        self,
        table_name: str,
        item: Item,
        condition_expression: str | None = None,
        expression_attribute_values: dict[str, AttributeValue] | None = None,
        expression_attribute_names: dict[str, str] | None = None,
    ) -> "TransactionBuilder":
        """Append a conditional put to the transaction."""
        return self.add(
            ConditionalPut(
                table_name=table_name,
                item=item,
                condition_expression=condition_expression,
                expression_attribute_values=expression_attribute_values or {},
                expression_attribute_names=expression_attribute_names or {},
            )
        )

    def build(self) -> list[dict[str, Any]]:
        """Render the ``TransactItems`` list.

        Raises:
            TransactionListTooLongError: If the transaction holds more
                operations than the limit allows.
        """
        return render_transaction(self._operations, self.max_items)

    async def commit(self, client: Any) -> None:
        await commit_transaction(client, self._operations, self.max_items)


def render_transaction(
    operations: list[ConditionalPut], max_items: int = MAX_TRANSACTION_ITEMS
) -> list[dict[str, Any]]:
    count = len(operations)
    if count > max_items:
        raise TransactionListTooLongError(count, max_items)
    return [operation.to_transact_item() for operation in operations]


async def commit_transaction(
    client: Any,
    operations: list[ConditionalPut],
    max_items: int = MAX_TRANSACTION_ITEMS,
) -> None:
    """Commit conditional puts as one all-or-nothing transaction.

    Args:
        client: A boto3 DynamoDB client.
        operations: The puts to commit, in order.
        max_items: Maximum number of operations per transaction.

    Raises:
        TransactionListTooLongError: If there are more operations than
            ``max_items``. No request is sent.
        OptimisticLockError: If any operation's condition failed. Nothing
            was written.
        DynamoConnectionError: On transport or availability failures.
        UnknownError: On any other failure.
    """
    transact_items = render_transaction(operations, max_items)
    if not transact_items:
        return

    count = len(transact_items)
    LOGGER.debug("Committing transaction with %d operation(s)", count)
    try:
        await asyncio.to_thread(client.transact_write_items, TransactItems=transact_items)
    except (ClientError, BotoCoreError) as err:
        classified = classify_error(err)
        if isinstance(classified, OptimisticLockError):
            LOGGER.warning(
                "Optimistic lock conflict in transaction of %d operation(s) on %s",
                count,
                ", ".join(sorted({op.table_name for op in operations})),
            )
        raise classified from err
