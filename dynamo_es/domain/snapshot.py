from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SerializedSnapshot(BaseModel):
    """Compacted aggregate state as stored in the snapshot table.

    Attributes:
        aggregate_id: Identifier of the aggregate instance
        aggregate: JSON-compatible aggregate state
        current_sequence: Sequence number of the last event folded into the state
        current_snapshot: Version counter of the snapshot itself, independent
            of current_sequence
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    aggregate: Any
    current_sequence: int = Field(ge=0)
    current_snapshot: int = Field(ge=1)


class SnapshotUpdate(BaseModel):
    """Snapshot half of a persist call.

    ``current_snapshot`` is the new snapshot version to write. The write only
    succeeds if the stored version is exactly ``current_snapshot - 1``, or no
    snapshot exists yet.
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    aggregate: Any
    current_snapshot: int = Field(ge=1)
