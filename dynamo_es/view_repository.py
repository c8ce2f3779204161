"""DynamoDB implementation of ViewRepository."""

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .codec import QUERY_INSTANCE_ID, VIEW_VERSION, item_to_view, number_attribute, view_to_item
from .domain import DeserializationError, ViewContext
from .repository import V, ViewRepository
from .table import DynamoTable
from .transaction import TransactionBuilder

if TYPE_CHECKING:
    from .config import DynamoConfiguration

LOGGER = logging.getLogger(__name__)

VIEW_CONDITION = (
    f"attribute_not_exists({VIEW_VERSION}) OR ({VIEW_VERSION} = :expected_view_version)"
)


class DynamoViewRepository(ViewRepository[V]):
    """Materialized views stored in a DynamoDB table named after the view.

    Each view instance is one item keyed by ``QueryInstanceId``. Writes are
    gated on ``ViewVersion`` so that two projectors working from the same
    stale copy cannot overwrite each other: the loser gets an
    OptimisticLockError and must reload.

    The view type is any pydantic model; it is serialized with
    ``model_dump(mode="json")`` and restored with ``model_validate``.

    Examples:
        >>> class AccountSummary(BaseModel):
        ...     balance: int = 0
        >>>
        >>> repo = DynamoViewRepository(AccountSummary, "account_summary", client)
        >>> loaded = await repo.load_with_context("acc-1")
        >>> view, context = loaded or (AccountSummary(), ViewContext.new("acc-1"))
        >>> view.balance += 10
        >>> await repo.update_view(view, context)
    """

    def __init__(self, view_type: type[V], view_name: str, client: Any) -> None:
        """Initialize the repository.

        Args:
            view_type: Pydantic model class of the view
            view_name: Name of the table holding this view
            client: boto3 DynamoDB client
        """
        self.view_type = view_type
        self.client = client
        self.table = DynamoTable(client, view_name)

    @classmethod
    def from_config(
        cls, view_type: type[V], view_name: str, config: "DynamoConfiguration"
    ) -> "DynamoViewRepository[V]":
        """Create a repository sharing the configured client."""
        return cls(view_type, view_name, config.client)

    @property
    def view_name(self) -> str:
        return self.table.name

    async def load_with_context(self, view_instance_id: str) -> tuple[V, ViewContext] | None:
        item = await self.table.query_first(QUERY_INSTANCE_ID, view_instance_id)
        if item is None:
            return None
        payload, version = item_to_view(item)
        try:
            view = self.view_type.model_validate(payload)
        except ValidationError as err:
            raise DeserializationError(
                f"stored {self.view_name} view {view_instance_id!r} does not match "
                f"{self.view_type.__name__}",
                err,
            ) from err
        return view, ViewContext(view_instance_id=view_instance_id, version=version)

    async def update_view(self, view: V, context: ViewContext) -> None:
        transaction = TransactionBuilder(max_items=1)
        transaction.put(
            self.view_name,
            view_to_item(
                context.view_instance_id, context.version + 1, view.model_dump(mode="json")
            ),
            VIEW_CONDITION,
            {":expected_view_version": number_attribute(context.version)},
        )
        await transaction.commit(self.client)
        LOGGER.debug(
            "Updated %s view %s to version %d",
            self.view_name,
            context.view_instance_id,
            context.version + 1,
        )
