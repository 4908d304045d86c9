"""
AWS SigV4 request signing for OpenSearch and OpenSearch Serverless.
"""

import hashlib
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest

from .exceptions import ConfigurationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpRequest:
    """A fully-formed outbound HTTP request."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""


class RequestSigner(Protocol):
    """Anything that turns a request into a signed request."""

    def sign(self, request: HttpRequest) -> HttpRequest: ...


class SigV4RequestSigner:
    """
    Signs requests with SigV4 for a fixed service scope and region.

    Credentials come from the default boto3 chain (or a named profile) unless
    given explicitly.
    """

    def __init__(
        self,
        region: str,
        service: str = "aoss",
        profile: Optional[str] = None,
        credentials: Any = None,
    ):
        self.region = region
        self.service = service
        if credentials is None:
            credentials = boto3.Session(profile_name=profile, region_name=region).get_credentials()
        if credentials is None:
            raise ConfigurationException("No AWS credentials available for request signing")
        self.credentials = credentials

    def sign(self, request: HttpRequest) -> HttpRequest:
        headers = dict(request.headers)
        # OpenSearch Serverless requires the payload hash as a header
        headers["x-amz-content-sha256"] = hashlib.sha256(request.body).hexdigest()

        aws_request = AWSRequest(method=request.method, url=request.url, data=request.body, headers=headers)
        frozen = self.credentials.get_frozen_credentials()
        SigV4Auth(frozen, self.service, self.region).add_auth(aws_request)

        logger.debug(f"Signed {request.method} {request.url} for {self.service}/{self.region}")
        return replace(request, headers=dict(aws_request.headers.items()))
