"""
Stream pipeline that keeps the search indices consistent with the source table.

For each invocation:
1. Parse the change records
2. Decode typed images into plain documents
3. Route by entity type and normalize ambiguous fields
4. Enrich saves with semantic tags (best-effort)
5. Build one versioned bulk batch and deliver it
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from botocore.exceptions import BotoCoreError

from .attribute_decoder import decode_image
from .batch_builder import SAVE_ENTITY, BatchBuilder, EntityRouter
from .config import StreamerConfig
from .delivery import BackoffPolicy, DeliveryEngine
from .enrichment_client import BedrockEnrichmentClient
from .exceptions import RecordParseException
from .index_admin import IndexAdmin
from .models import ChangeRecord, PipelineResult
from .normalizer import normalize_document
from .opensearch_client import OpenSearchClient

logger = logging.getLogger(__name__)

ENRICHMENTS_FIELD = "enrichments"
IS_BROKEN_FIELD = "isBroken"


class StreamPipeline:
    """
    Processes one batch of change records to completion.
    """

    def __init__(
        self,
        config: StreamerConfig,
        delivery: DeliveryEngine,
        enrichment_client: Optional[BedrockEnrichmentClient] = None,
        index_admin: Optional[IndexAdmin] = None,
    ):
        self.config = config
        self.router = EntityRouter.from_config(config.opensearch_config)
        self.builder = BatchBuilder(self.router)
        self.delivery = delivery
        self.enrichment_client = enrichment_client if config.enable_enrichment else None
        self.index_admin = index_admin

    @classmethod
    def from_client(cls, config: StreamerConfig, client: OpenSearchClient) -> "StreamPipeline":
        """Wire the production collaborators around an open OpenSearch client."""
        delivery = DeliveryEngine(client, BackoffPolicy.from_config(config.retry_config))
        enrichment_client = None
        if config.enable_enrichment and config.enrichment_config:
            try:
                enrichment_client = BedrockEnrichmentClient(config.enrichment_config)
            except BotoCoreError as e:
                logger.warning(f"Enrichment disabled, could not create Bedrock client: {e}")
        return cls(config, delivery, enrichment_client, IndexAdmin(client))

    async def process(self, raw_records: Iterable[Dict[str, Any]]) -> PipelineResult:
        """
        Run one invocation.

        Args:
            raw_records: Stream records as delivered by the stream source

        Returns:
            PipelineResult with status "ok" and the processed item count, or "no-op"

        Raises:
            BulkDeliveryError: If the batch could not be applied
        """
        records = self._parse_records(raw_records)
        logger.info(f"Processing {len(records)} change records")

        opensearch_config = self.config.opensearch_config
        if opensearch_config.ensure_index and self.index_admin:
            for index_name in (opensearch_config.index_name, opensearch_config.tag_index_name):
                await self.index_admin.ensure_exists(index_name)

        entries: List[Tuple[ChangeRecord, Optional[Dict[str, Any]]]] = []
        for record in records:
            entries.append((record, await self.prepare_document(record)))

        operations = self.builder.build(entries)
        if not operations:
            logger.debug("No operations generated from event")
            return PipelineResult.no_op()

        items = await self.delivery.deliver(operations)
        return PipelineResult.ok(items)

    async def prepare_document(self, record: ChangeRecord) -> Optional[Dict[str, Any]]:
        """
        Decode and prepare the document a record contributes.

        REMOVE events only need the old image (for routing); other events get the
        normalized, and for saves enriched, new image.
        """
        document_id = record.document_id()
        logger.debug(f"Processing record {record.event_kind.value} {document_id}")

        if record.is_removal:
            return decode_image(record.old_image) if record.old_image else None

        if not record.new_image:
            return None

        document = decode_image(record.new_image)
        if not document or self.router.index_for(document.get("entityType")) is None:
            return document

        normalize_document(document)

        if document.get("entityType") == SAVE_ENTITY and self.enrichment_client:
            await self._enrich_save(document_id, document)

        return document

    async def _enrich_save(self, document_id: str, document: Dict[str, Any]) -> None:
        """Attach enrichment tags (and optionally the broken flag) to a save."""
        result = await self.enrichment_client.generate_enrichments(
            document.get("title"), document.get("description"), document.get("url")
        )
        if not result.ok:
            logger.warning(f"Enrichment unavailable for {document_id}: {result.error}")
        document[ENRICHMENTS_FIELD] = result.tags

        enrichment_config = self.config.enrichment_config
        if enrichment_config and enrichment_config.enable_broken_save_detection:
            broken = await self.enrichment_client.detect_broken_save(
                document.get("title"), document.get("description"), document.get("url"), document.get("image")
            )
            document[IS_BROKEN_FIELD] = broken.is_broken

    def _parse_records(self, raw_records: Iterable[Dict[str, Any]]) -> List[ChangeRecord]:
        records: List[ChangeRecord] = []
        for position, raw in enumerate(raw_records):
            try:
                records.append(ChangeRecord.from_stream_record(raw))
            except RecordParseException as e:
                logger.warning(f"Skipping record {position}: {e}")
        return records
