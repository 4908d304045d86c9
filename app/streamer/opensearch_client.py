"""
Signed async HTTP client for OpenSearch.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .config import OpenSearchConfig
from .exceptions import OpenSearchException
from .signing import HttpRequest, RequestSigner, SigV4RequestSigner

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 500


@dataclass(frozen=True)
class OpenSearchResponse:
    """Status and raw body of an OpenSearch response."""

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def snippet(self, length: int = SNIPPET_LENGTH) -> str:
        return self.text[:length]


class OpenSearchClient:
    """
    Async OpenSearch client that signs every request.

    Use as an async context manager so the HTTP session is closed with the invocation.
    """

    def __init__(self, config: OpenSearchConfig, signer: Optional[RequestSigner] = None):
        self.config = config
        self.base_url = config.base_url
        self._signer = signer
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def signer(self) -> RequestSigner:
        """Request signer, resolved from the credential chain on first use."""
        if self._signer is None:
            self._signer = SigV4RequestSigner(self.config.region, self.config.service, self.config.profile)
        return self._signer

    async def __aenter__(self) -> "OpenSearchClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def request(
        self, method: str, path: str, body: str = "", headers: Optional[Dict[str, str]] = None
    ) -> OpenSearchResponse:
        """
        Send a signed request.

        Args:
            method: HTTP method
            path: Path relative to the endpoint, e.g. "/_bulk"
            body: Request body text
            headers: Extra headers

        Returns:
            OpenSearchResponse for any HTTP status

        Raises:
            OpenSearchException: On connection failures and timeouts
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        request_headers = {"content-type": "application/json"} if body else {}
        request_headers.update(headers or {})

        signed = self.signer.sign(HttpRequest(method, url, request_headers, body.encode("utf-8")))

        try:
            session = await self._get_session()
            async with session.request(signed.method, signed.url, data=signed.body, headers=signed.headers) as response:
                text = await response.text(errors="replace")
                return OpenSearchResponse(response.status, text)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"OpenSearch {method} {path} failed: {e!r}")
            raise OpenSearchException(f"OpenSearch {method} {path} failed: {e!r}") from e

    async def bulk(self, body: str) -> OpenSearchResponse:
        """Submit a newline-delimited bulk body."""
        return await self.request("POST", "/_bulk", body)

    async def put_index(self, index_name: str, index_body: Optional[Dict[str, Any]] = None) -> OpenSearchResponse:
        return await self.request("PUT", f"/{index_name}", json.dumps(index_body or {}))

    async def get_index(self, index_name: str) -> OpenSearchResponse:
        return await self.request("GET", f"/{index_name}")

    async def delete_index(self, index_name: str) -> OpenSearchResponse:
        return await self.request("DELETE", f"/{index_name}")
