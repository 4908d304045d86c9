"""
Bulk batch assembly: index routing, external versioning and action pairing.
"""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import OpenSearchConfig
from .models import BulkOperation, ChangeRecord

logger = logging.getLogger(__name__)

SAVE_ENTITY = "Save"
DISCOVER_TAG_ENTITY = "DiscoverTag"

VERSION_FIELDS = ("updatedAt", "timestamp")


class EntityRouter:
    """Maps an entity type to the index that stores it."""

    def __init__(self, routes: Mapping[str, str], default_index: str):
        self.routes = dict(routes)
        self.default_index = default_index

    @classmethod
    def from_config(cls, config: OpenSearchConfig) -> "EntityRouter":
        return cls({SAVE_ENTITY: config.index_name, DISCOVER_TAG_ENTITY: config.tag_index_name}, config.index_name)

    def index_for(self, entity_type: Any) -> Optional[str]:
        """Target index, or None for entity types that are not indexed."""
        if not isinstance(entity_type, str):
            return None
        return self.routes.get(entity_type)

    def indices(self) -> List[str]:
        """Distinct routed indices, default index first."""
        names = [self.default_index]
        for name in self.routes.values():
            if name not in names:
                names.append(name)
        return names


def _epoch_millis(value: Any) -> Optional[int]:
    """Interpret a timestamp field as epoch milliseconds, or None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        number = int(value)
        return number if number > 0 else None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        number = int(float(text))
        return number if number > 0 else None
    except (ValueError, OverflowError):
        pass

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def compute_version(document: Mapping[str, Any], record: ChangeRecord, now: Optional[float] = None) -> int:
    """
    External version for an index operation.

    Order of preference: the document's own update timestamp, the record's
    approximate creation time (seconds, scaled to milliseconds), wall-clock milliseconds.
    """
    for field_name in VERSION_FIELDS:
        version = _epoch_millis(document.get(field_name))
        if version:
            return version

    creation_time = record.approximate_creation_time
    if creation_time and math.isfinite(creation_time) and creation_time > 0:
        return int(creation_time * 1000)

    return int((now if now is not None else time.time()) * 1000)


class BatchBuilder:
    """
    Turns change records and their prepared documents into bulk operations.
    """

    def __init__(self, router: EntityRouter):
        self.router = router

    def build(self, entries: Iterable[Tuple[ChangeRecord, Optional[Dict[str, Any]]]]) -> List[BulkOperation]:
        """
        Build the ordered list of bulk operations.

        Args:
            entries: (record, document) pairs. For REMOVE events the document is the
                decoded old image (or None); for INSERT/MODIFY it is the decoded,
                normalized and enriched new image (or None if there was none).

        Returns:
            Operations in record order; skipped records contribute nothing
        """
        operations: List[BulkOperation] = []
        for record, document in entries:
            operations.extend(self.build_operations(record, document))
        return operations

    def build_operations(self, record: ChangeRecord, document: Optional[Dict[str, Any]]) -> List[BulkOperation]:
        document_id = record.document_id()

        if record.is_removal:
            if not document:
                # Entity type unknown without an old image: delete from every routed index
                return [BulkOperation.delete_document(name, document_id) for name in self.router.indices()]
            index_name = self.router.index_for(document.get("entityType"))
            if index_name is None:
                logger.debug(f"Skipping removal of non-indexed entity {document_id}")
                return []
            return [BulkOperation.delete_document(index_name, document_id)]

        if not document:
            logger.debug(f"Skipping record {document_id} without a new image")
            return []

        entity_type = document.get("entityType")
        index_name = self.router.index_for(entity_type)
        if index_name is None:
            logger.debug(f"Skipping non-indexed entity {document_id} (entityType={entity_type!r})")
            return []

        version = compute_version(document, record)
        return [BulkOperation.index_document(index_name, document_id, version, document)]
