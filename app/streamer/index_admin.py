"""
Operator-facing index management: create, verify and delete.

These calls are not on the hot path and are never retried.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from .exceptions import OpenSearchException
from .index_templates import get_index_mapping
from .opensearch_client import OpenSearchResponse

logger = logging.getLogger(__name__)


class IndexTransport(Protocol):
    async def put_index(self, index_name: str, index_body: Optional[Dict[str, Any]] = None) -> OpenSearchResponse: ...

    async def get_index(self, index_name: str) -> OpenSearchResponse: ...

    async def delete_index(self, index_name: str) -> OpenSearchResponse: ...


class IndexAdmin:
    """Idempotent index lifecycle operations."""

    def __init__(self, client: IndexTransport):
        self.client = client

    async def create(self, index_name: str, index_body: Optional[Dict[str, Any]] = None) -> bool:
        """
        Create an index with the fixed mapping.

        Returns:
            True if the index was created or already exists
        """
        try:
            response = await self.client.put_index(index_name, index_body or get_index_mapping())
        except OpenSearchException as e:
            logger.error(f"Error creating index {index_name}: {e}")
            return False

        if response.ok:
            logger.info(f"Created index: {index_name} ({response.status})")
            return True
        if response.status == 400 and "resource_already_exists_exception" in response.text:
            logger.info(f"Index {index_name} already exists")
            return True

        logger.error(f"Failed to create index {index_name}: {response.status} - {response.snippet()}")
        return False

    async def verify(self, index_name: str) -> bool:
        """
        Check that an index exists.

        Returns:
            True if the index exists
        """
        try:
            response = await self.client.get_index(index_name)
        except OpenSearchException as e:
            logger.error(f"Error verifying index {index_name}: {e}")
            return False

        if response.ok:
            logger.info(f"Index exists: {index_name} ({response.status})")
            return True

        logger.error(f"Verify failed for {index_name}: {response.status} - {response.snippet()}")
        return False

    async def delete(self, index_name: str) -> bool:
        """
        Delete an index.

        Returns:
            True if the index was deleted or did not exist
        """
        try:
            response = await self.client.delete_index(index_name)
        except OpenSearchException as e:
            logger.error(f"Error deleting index {index_name}: {e}")
            return False

        if response.ok:
            logger.info(f"Index deleted: {index_name} ({response.status})")
            return True
        if response.status == 404:
            logger.info(f"Index {index_name} does not exist, nothing to delete")
            return True

        logger.error(f"Delete failed for {index_name}: {response.status} - {response.snippet()}")
        return False

    async def ensure_exists(self, index_name: str) -> None:
        """Best-effort create with an empty body; non-2xx (usually "already exists") is ignored."""
        try:
            response = await self.client.put_index(index_name, {})
        except OpenSearchException as e:
            logger.debug(f"Ensure index call for {index_name} failed: {e}")
            return

        if not response.ok:
            logger.debug(f"Ensure index call for {index_name} returned {response.status} (likely exists already)")
