from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SerializedEvent(BaseModel):
    """Immutable, serialized record of one state change in an aggregate.

    The repository stores these verbatim. The identity of an event is the
    triple (aggregate_type, aggregate_id, sequence) and is never reused:
    once an event is written at a sequence number, no other event can be
    written there.

    Attributes:
        aggregate_type: Name of the aggregate type, e.g. ``"BankAccount"``
        aggregate_id: Identifier of the aggregate instance
        sequence: Position in the aggregate's event stream (1-indexed,
            contiguous). Chosen by the caller, never by the repository.
        event_type: Name of the event, e.g. ``"MoneyDeposited"``
        event_version: Schema version of the payload shape
        payload: JSON-compatible event data
        metadata: JSON-compatible metadata such as correlation and causation ids

    Examples:
        >>> event = SerializedEvent(
        ...     aggregate_type="BankAccount",
        ...     aggregate_id="acc-1",
        ...     sequence=1,
        ...     event_type="AccountOpened",
        ...     event_version="1.0",
        ...     payload={"owner": "Alice"},
        ... )
        >>> event.partition_key
        'BankAccount:acc-1'
    """

    model_config = ConfigDict(frozen=True)

    aggregate_type: str = Field(min_length=1)
    aggregate_id: str = Field(min_length=1)
    sequence: int = Field(ge=1)
    event_type: str
    event_version: str
    payload: Any = Field(description="JSON-compatible event data")
    metadata: Any = Field(
        default_factory=dict,
        description="JSON-compatible metadata (correlation, causation, ...)",
    )

    @property
    def partition_key(self) -> str:
        """The composite ``"{aggregate_type}:{aggregate_id}"`` partition key."""
        return aggregate_key(self.aggregate_type, self.aggregate_id)


def aggregate_key(aggregate_type: str, aggregate_id: str) -> str:
    """Build the partition key shared by all records of one aggregate."""
    return f"{aggregate_type}:{aggregate_id}"
