"""
Data model for stream records, bulk operations and pipeline results.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import RecordParseException

KEY_SEPARATOR = "#"
UNKNOWN_DOCUMENT_ID = "unknown"
VERSION_TYPE = "external_gte"


class EventKind(str, Enum):
    """Kind of mutation carried by a stream record"""

    INSERT = "INSERT"
    MODIFY = "MODIFY"
    REMOVE = "REMOVE"


class StreamImage(BaseModel):
    """The `dynamodb` section of a stream record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    keys: Dict[str, Any] = Field(default_factory=dict, alias="Keys")
    new_image: Optional[Dict[str, Any]] = Field(default=None, alias="NewImage")
    old_image: Optional[Dict[str, Any]] = Field(default=None, alias="OldImage")
    approximate_creation_time: Optional[float] = Field(default=None, alias="ApproximateCreationDateTime")


class ChangeRecord(BaseModel):
    """
    One mutation event from the source table's change stream.

    Produced by the stream source and consumed once per invocation; never persisted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_kind: EventKind = Field(alias="eventName")
    event_id: Optional[str] = Field(default=None, alias="eventID")
    dynamodb: StreamImage = Field(default_factory=StreamImage)

    @classmethod
    def from_stream_record(cls, raw: Dict[str, Any]) -> "ChangeRecord":
        """
        Parse a raw stream record.

        Raises:
            RecordParseException: If the record does not have the expected shape
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise RecordParseException(f"Unparsable stream record: {e.error_count()} validation error(s)") from e

    @property
    def keys(self) -> Dict[str, Any]:
        return self.dynamodb.keys

    @property
    def new_image(self) -> Optional[Dict[str, Any]]:
        return self.dynamodb.new_image

    @property
    def old_image(self) -> Optional[Dict[str, Any]]:
        return self.dynamodb.old_image

    @property
    def approximate_creation_time(self) -> Optional[float]:
        return self.dynamodb.approximate_creation_time

    @property
    def is_removal(self) -> bool:
        return self.event_kind is EventKind.REMOVE

    def document_id(self) -> str:
        """Stable document id: each key's raw value joined with '#', in key order."""
        parts: List[str] = []
        for typed_value in self.keys.values():
            if isinstance(typed_value, dict) and typed_value:
                parts.append(str(next(iter(typed_value.values()))))
            else:
                parts.append(str(typed_value))
        return KEY_SEPARATOR.join(parts) or UNKNOWN_DOCUMENT_ID


@dataclass(frozen=True)
class BulkOperation:
    """A single bulk action, with the document body for `index` actions."""

    action: Literal["index", "delete"]
    index: str
    document_id: str
    version: Optional[int] = None
    version_type: Optional[str] = None
    body: Optional[Dict[str, Any]] = None

    @classmethod
    def index_document(cls, index: str, document_id: str, version: int, body: Dict[str, Any]) -> "BulkOperation":
        return cls("index", index, document_id, version=version, version_type=VERSION_TYPE, body=body)

    @classmethod
    def delete_document(cls, index: str, document_id: str) -> "BulkOperation":
        return cls("delete", index, document_id)

    def action_line(self) -> Dict[str, Dict[str, Any]]:
        descriptor: Dict[str, Any] = {"_index": self.index, "_id": self.document_id}
        if self.version is not None:
            descriptor["version"] = self.version
            descriptor["version_type"] = self.version_type or VERSION_TYPE
        return {self.action: descriptor}

    def to_lines(self) -> List[str]:
        lines = [json.dumps(self.action_line())]
        if self.action == "index":
            lines.append(json.dumps(self.body if self.body is not None else {}))
        return lines


def serialize_bulk_body(operations: List[BulkOperation]) -> str:
    """Serialize operations into one newline-delimited bulk body with a trailing newline."""
    lines: List[str] = []
    for operation in operations:
        lines.extend(operation.to_lines())
    return "\n".join(lines) + "\n"


class PipelineResult(BaseModel):
    """Status returned to the invoking host."""

    status: Literal["ok", "no-op"]
    items: int = 0

    @classmethod
    def no_op(cls) -> "PipelineResult":
        return cls(status="no-op", items=0)

    @classmethod
    def ok(cls, items: int) -> "PipelineResult":
        return cls(status="ok", items=items)
