"""Conversion between DynamoDB attribute values and serialized records.

Items use the low-level client representation: every attribute is a
single-key dict naming its type, e.g. ``{"S": "BankAccount"}``,
``{"N": "3"}`` or ``{"B": b'{"owner":"Alice"}'}``. Counters are stored as
decimal strings and opaque values as JSON bytes.

Decoding never lets a malformed record escape as a ``KeyError`` or
``ValueError``: a missing attribute, an attribute of the wrong type, or
an unparseable blob raises ``DeserializationError``.
"""

from typing import Any

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError, from_json, to_json

from .domain import (
    DeserializationError,
    SerializedEvent,
    SerializedSnapshot,
    SnapshotUpdate,
    UnknownError,
    aggregate_key,
)

AttributeValue = dict[str, Any]
Item = dict[str, AttributeValue]

# Events / snapshots
AGGREGATE_TYPE_AND_ID = "AggregateTypeAndId"
AGGREGATE_ID_SEQUENCE = "AggregateIdSequence"
AGGREGATE_TYPE = "AggregateType"
AGGREGATE_ID = "AggregateId"
EVENT_TYPE = "EventType"
EVENT_VERSION = "EventVersion"
PAYLOAD = "Payload"
METADATA = "Metadata"
CURRENT_SEQUENCE = "CurrentSequence"
CURRENT_SNAPSHOT = "CurrentSnapshot"

# Views
QUERY_INSTANCE_ID = "QueryInstanceId"
VIEW_VERSION = "ViewVersion"


def string_attribute(value: str) -> AttributeValue:
    return {"S": value}


def number_attribute(value: int) -> AttributeValue:
    return {"N": str(value)}


def value_attribute(value: Any) -> AttributeValue:
    """Serialize an opaque JSON-compatible value into a binary attribute."""
    try:
        return {"B": to_json(value)}
    except PydanticSerializationError as err:
        raise UnknownError(err) from err


def _attribute(item: Item, name: str, type_key: str) -> Any:
    attribute = item.get(name)
    if attribute is None:
        raise DeserializationError(f"missing attribute {name!r}")
    if type_key not in attribute:
        found = ", ".join(attribute) or "nothing"
        raise DeserializationError(
            f"attribute {name!r} is not of type {type_key} (found {found})"
        )
    return attribute[type_key]


def att_as_string(item: Item, name: str) -> str:
    """Read a string attribute."""
    value: str = _attribute(item, name, "S")
    return value


def att_as_number(item: Item, name: str) -> int:
    """Read a numeric attribute as an integer."""
    raw = _attribute(item, name, "N")
    try:
        return int(raw)
    except (TypeError, ValueError) as err:
        raise DeserializationError(f"attribute {name!r} is not an integer: {raw!r}", err) from err


def att_as_value(item: Item, name: str) -> Any:
    """Read a binary attribute holding a JSON document."""
    raw = _attribute(item, name, "B")
    try:
        return from_json(raw)
    except ValueError as err:
        raise DeserializationError(f"attribute {name!r} is not valid JSON", err) from err


# ========== Events ==========


def event_to_item(event: SerializedEvent) -> Item:
    return {
        AGGREGATE_TYPE_AND_ID: string_attribute(event.partition_key),
        AGGREGATE_ID_SEQUENCE: number_attribute(event.sequence),
        AGGREGATE_TYPE: string_attribute(event.aggregate_type),
        AGGREGATE_ID: string_attribute(event.aggregate_id),
        EVENT_VERSION: string_attribute(event.event_version),
        EVENT_TYPE: string_attribute(event.event_type),
        PAYLOAD: value_attribute(event.payload),
        METADATA: value_attribute(event.metadata),
    }


def item_to_event(item: Item) -> SerializedEvent:
    try:
        return SerializedEvent(
            aggregate_type=att_as_string(item, AGGREGATE_TYPE),
            aggregate_id=att_as_string(item, AGGREGATE_ID),
            sequence=att_as_number(item, AGGREGATE_ID_SEQUENCE),
            event_type=att_as_string(item, EVENT_TYPE),
            event_version=att_as_string(item, EVENT_VERSION),
            payload=att_as_value(item, PAYLOAD),
            metadata=att_as_value(item, METADATA),
        )
    except ValidationError as err:
        raise DeserializationError(f"invalid event record: {err}", err) from err


# ========== Snapshots ==========


def snapshot_to_item(aggregate_type: str, update: SnapshotUpdate, current_sequence: int) -> Item:
    return {
        AGGREGATE_TYPE_AND_ID: string_attribute(aggregate_key(aggregate_type, update.aggregate_id)),
        AGGREGATE_TYPE: string_attribute(aggregate_type),
        AGGREGATE_ID: string_attribute(update.aggregate_id),
        CURRENT_SEQUENCE: number_attribute(current_sequence),
        CURRENT_SNAPSHOT: number_attribute(update.current_snapshot),
        PAYLOAD: value_attribute(update.aggregate),
    }


def item_to_snapshot(item: Item) -> SerializedSnapshot:
    try:
        return SerializedSnapshot(
            aggregate_id=att_as_string(item, AGGREGATE_ID),
            aggregate=att_as_value(item, PAYLOAD),
            current_sequence=att_as_number(item, CURRENT_SEQUENCE),
            current_snapshot=att_as_number(item, CURRENT_SNAPSHOT),
        )
    except ValidationError as err:
        raise DeserializationError(f"invalid snapshot record: {err}", err) from err


# ========== Views ==========


def view_to_item(view_instance_id: str, version: int, payload: Any) -> Item:
    return {
        QUERY_INSTANCE_ID: string_attribute(view_instance_id),
        VIEW_VERSION: number_attribute(version),
        PAYLOAD: value_attribute(payload),
    }


def item_to_view(item: Item) -> tuple[Any, int]:
    """Decode a view item into its raw payload and stored version."""
    return att_as_value(item, PAYLOAD), att_as_number(item, VIEW_VERSION)
