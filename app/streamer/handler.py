"""
Stream entry point: receives a batch of DynamoDB stream records and indexes them.
"""

import asyncio
from typing import Any, Dict, List, Optional

from .config import StreamerConfig
from .exceptions import BulkDeliveryError
from .opensearch_client import OpenSearchClient
from .pipeline import StreamPipeline
from .utils.logging import log_stream_event, setup_streamer_logger


async def process_event(config: StreamerConfig, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Process one stream event with a client owned by this invocation.

    Returns:
        {"status": "ok"|"no-op", "items": n}
    """
    async with OpenSearchClient(config.opensearch_config) as client:
        pipeline = StreamPipeline.from_client(config, client)
        result = await pipeline.process(records)
    return result.model_dump()


def handler(event: Dict[str, Any], context: Any = None, config: Optional[StreamerConfig] = None) -> Dict[str, Any]:
    """
    Lambda-style handler.

    Terminal delivery failures are re-raised so the host applies its own
    redelivery or dead-letter policy to the whole batch.
    """
    config = config or StreamerConfig.from_environment()
    logger = setup_streamer_logger("streamer.handler", level=config.log_level, json_logs=config.json_logs)

    records = (event or {}).get("Records") or []
    log_stream_event(
        logger,
        "batch_received",
        records=len(records),
        index=config.opensearch_config.index_name,
        tag_index=config.opensearch_config.tag_index_name,
    )

    try:
        result = asyncio.run(process_event(config, records))
    except BulkDeliveryError as e:
        log_stream_event(
            logger, "batch_failed", status=e.status_code, attempts=e.attempts, body=e.response_snippet
        )
        raise

    log_stream_event(logger, "batch_completed", **result)
    return result
