"""
Stream indexer that mirrors DynamoDB table changes into OpenSearch.

This module handles the flow:
1. Receive a batch of change records from the table's stream
2. Decode typed attributes into plain documents
3. Route by entity type and normalize ambiguous fields
4. Enrich saves with semantic tags via Bedrock
5. Deliver one versioned bulk batch to OpenSearch with bounded retries
"""
