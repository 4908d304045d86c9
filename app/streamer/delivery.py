"""
Bulk delivery with classified retry and partial-failure detection.

Each attempt ends in exactly one outcome:

- DeliverySuccess: 2xx without per-item errors
- RetryAfter: 429/5xx (or a transport error) with attempts left
- TerminalFailure: anything else, including per-item errors and exhausted retries
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union

from .config import BulkRetryConfig
from .exceptions import BulkDeliveryError, BulkPartialFailureError, OpenSearchException
from .models import BulkOperation, serialize_bulk_body
from .opensearch_client import SNIPPET_LENGTH, OpenSearchResponse

logger = logging.getLogger(__name__)

MAX_LOGGED_ITEM_ERRORS = 5


class BulkTransport(Protocol):
    async def bulk(self, body: str) -> OpenSearchResponse: ...


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: base, doubling per attempt, capped."""

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 8.0

    @classmethod
    def from_config(cls, config: BulkRetryConfig) -> "BackoffPolicy":
        return cls(config.max_attempts, config.backoff_base, config.backoff_max_delay)

    def delay_for(self, attempt: int) -> float:
        """
        Delay to wait after a failed attempt.

        Args:
            attempt: The attempt that just failed (1-indexed)
        """
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


@dataclass(frozen=True)
class DeliverySuccess:
    items: int


@dataclass(frozen=True)
class RetryAfter:
    delay: float
    status_code: Optional[int]
    reason: str


@dataclass(frozen=True)
class TerminalFailure:
    status_code: Optional[int]
    reason: str
    snippet: str = ""
    partial: bool = False


DeliveryOutcome = Union[DeliverySuccess, RetryAfter, TerminalFailure]


def is_retriable_status(status: int) -> bool:
    return status == 429 or status >= 500


def item_errors(parsed: Dict[str, Any], limit: int = MAX_LOGGED_ITEM_ERRORS) -> List[Dict[str, Any]]:
    """Collect the first few failed items from a bulk response."""
    failures: List[Dict[str, Any]] = []
    for item in parsed.get("items") or []:
        if not isinstance(item, dict):
            continue
        for action, result in item.items():
            if isinstance(result, dict) and result.get("error"):
                failures.append(
                    {
                        "action": action,
                        "_id": result.get("_id"),
                        "status": result.get("status"),
                        "error": result.get("error"),
                    }
                )
        if len(failures) >= limit:
            break
    return failures[:limit]


def classify_response(status: int, text: str, attempt: int, policy: BackoffPolicy) -> DeliveryOutcome:
    """
    Classify one bulk response.

    Args:
        status: HTTP status code
        text: Raw response body
        attempt: The attempt that produced this response (1-indexed)
        policy: Backoff policy

    Returns:
        The attempt outcome
    """
    snippet = text[:SNIPPET_LENGTH]

    if 200 <= status < 300:
        try:
            parsed = json.loads(text)
        except ValueError:
            return TerminalFailure(status, "unparsable bulk response", snippet)
        if not isinstance(parsed, dict):
            return TerminalFailure(status, "unexpected bulk response shape", snippet)

        if parsed.get("errors"):
            for failure in item_errors(parsed):
                logger.error(f"Bulk item failed: {failure}")
            return TerminalFailure(status, "bulk partial errors", snippet, partial=True)

        return DeliverySuccess(items=len(parsed.get("items") or []))

    if is_retriable_status(status):
        if attempt < policy.max_attempts:
            return RetryAfter(policy.delay_for(attempt), status, f"retriable status {status}")
        return TerminalFailure(status, f"retries exhausted after {attempt} attempts", snippet)

    return TerminalFailure(status, f"bulk failed with status {status}", snippet)


class DeliveryEngine:
    """
    Sends bulk batches and retries transient failures with bounded backoff.
    """

    def __init__(
        self,
        transport: BulkTransport,
        policy: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.transport = transport
        self.policy = policy or BackoffPolicy()
        self.sleep = sleep

    async def deliver(self, operations: List[BulkOperation]) -> int:
        """
        Deliver a batch of operations.

        Args:
            operations: Bulk operations in submission order

        Returns:
            Number of items the bulk endpoint processed

        Raises:
            BulkPartialFailureError: If the endpoint reported per-item errors
            BulkDeliveryError: On non-retriable statuses or exhausted retries
        """
        if not operations:
            logger.debug("No bulk operations to deliver")
            return 0

        body = serialize_bulk_body(operations)
        attempt = 0

        while attempt < self.policy.max_attempts:
            attempt += 1
            logger.debug(f"Sending bulk request (attempt {attempt}, {len(operations)} operations)")

            outcome = await self._attempt(body, attempt)

            if isinstance(outcome, DeliverySuccess):
                logger.info(f"Bulk success: {outcome.items} items", extra={"items": outcome.items, "attempts": attempt})
                return outcome.items

            if isinstance(outcome, RetryAfter):
                logger.warning(
                    f"Bulk attempt {attempt}/{self.policy.max_attempts} failed ({outcome.reason}), "
                    f"retrying in {outcome.delay}s"
                )
                await self.sleep(outcome.delay)
                continue

            self._raise_terminal(outcome, attempt)

        # Only reachable when max_attempts < 1
        raise BulkDeliveryError("Bulk delivery was not attempted", attempts=attempt)

    async def _attempt(self, body: str, attempt: int) -> DeliveryOutcome:
        try:
            response = await self.transport.bulk(body)
        except OpenSearchException as e:
            if attempt < self.policy.max_attempts:
                return RetryAfter(self.policy.delay_for(attempt), e.status_code, str(e))
            return TerminalFailure(e.status_code, f"retries exhausted after {attempt} attempts: {e}")
        return classify_response(response.status, response.text, attempt, self.policy)

    def _raise_terminal(self, outcome: TerminalFailure, attempt: int) -> None:
        logger.error(
            f"Bulk failed: {outcome.reason}",
            extra={"status": outcome.status_code, "body": outcome.snippet, "attempts": attempt},
        )
        error_class = BulkPartialFailureError if outcome.partial else BulkDeliveryError
        raise error_class(
            outcome.reason, status_code=outcome.status_code, response_snippet=outcome.snippet, attempts=attempt
        )
