"""
Sanitization of decoded documents before they reach the bulk batch.

OpenSearch infers a field's type from the first value it sees, so one record
with a boolean in a free-text field can mistype that field for the whole index.
"""

import logging
import re
from typing import Any, Dict
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

COMMENTS_FIELD = "comments"
THIRD_PARTY_IMAGE_FIELD = "thirdPartyImage"

_BOOLEAN_TEXT = {"true", "false"}
_HTTP_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)


def is_valid_comments(value: Any) -> bool:
    """A comment must be non-empty text that is not a stringified boolean."""
    if not isinstance(value, str):
        return False
    text = value.strip()
    return bool(text) and text.lower() not in _BOOLEAN_TEXT


def is_valid_http_url(value: Any) -> bool:
    """True for an http(s) URL string with a host."""
    if not isinstance(value, str) or not _HTTP_URL_RE.match(value):
        return False
    try:
        return bool(urlparse(value).netloc)
    except ValueError:
        return False


def normalize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop fields whose values would pollute the index mapping.

    The document is modified in place and returned for convenience.

    Args:
        document: Decoded document

    Returns:
        The same document
    """
    if COMMENTS_FIELD in document and not is_valid_comments(document[COMMENTS_FIELD]):
        logger.debug(f"Dropping invalid comments value of type {type(document[COMMENTS_FIELD]).__name__}")
        del document[COMMENTS_FIELD]

    if THIRD_PARTY_IMAGE_FIELD in document and not is_valid_http_url(document[THIRD_PARTY_IMAGE_FIELD]):
        logger.debug("Dropping invalid thirdPartyImage value")
        del document[THIRD_PARTY_IMAGE_FIELD]

    return document
