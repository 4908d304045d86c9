"""Tests for environment configuration and request signing."""

import hashlib

import pytest
from botocore.credentials import Credentials

from app.streamer.config import OpenSearchConfig, StreamerConfig
from app.streamer.exceptions import ConfigurationException
from app.streamer.signing import HttpRequest, SigV4RequestSigner

ENV_VARS = [
    "AOSS_ENDPOINT",
    "AOSS_INDEX",
    "AOSS_TAG_INDEX",
    "AOSS_SERVICE",
    "AOSS_ENSURE_INDEX",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_PROFILE",
    "LOG_LEVEL",
    "ENABLE_ENRICHMENT",
    "ENRICHMENT_PROFILE",
    "ENRICHMENT_REGION",
    "ENABLE_BROKEN_SAVE_DETECTION",
    "BULK_MAX_ATTEMPTS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    clean_env.setenv("AOSS_ENDPOINT", "abc.us-east-1.aoss.amazonaws.com")

    config = StreamerConfig.from_environment()

    assert config.opensearch_config.index_name == "saves"
    assert config.opensearch_config.tag_index_name == "discovertags"
    assert config.opensearch_config.service == "aoss"
    assert config.opensearch_config.region == "us-east-1"
    assert config.opensearch_config.base_url == "https://abc.us-east-1.aoss.amazonaws.com"
    assert config.log_level == "info"
    assert config.enable_enrichment is True
    assert config.enrichment_config.max_tags == 5
    assert config.retry_config.max_attempts == 4
    assert config.retry_config.backoff_base == 1.0
    assert config.retry_config.backoff_max_delay == 8.0


def test_overrides(clean_env):
    clean_env.setenv("AOSS_ENDPOINT", "https://search.example.com/")
    clean_env.setenv("AOSS_INDEX", "saves-dev")
    clean_env.setenv("AWS_REGION", "eu-west-1")
    clean_env.setenv("LOG_LEVEL", "DEBUG")
    clean_env.setenv("ENABLE_ENRICHMENT", "false")
    clean_env.setenv("AOSS_ENSURE_INDEX", "true")

    config = StreamerConfig.from_environment()

    assert config.opensearch_config.base_url == "https://search.example.com"
    assert config.opensearch_config.index_name == "saves-dev"
    assert config.opensearch_config.region == "eu-west-1"
    assert config.opensearch_config.ensure_index is True
    assert config.log_level == "debug"
    assert config.enable_enrichment is False
    assert config.enrichment_config is None


def test_endpoint_is_required(clean_env):
    with pytest.raises(ConfigurationException):
        StreamerConfig.from_environment()


@pytest.mark.parametrize("name,value", [("LOG_LEVEL", "verbose"), ("BULK_MAX_ATTEMPTS", "four")])
def test_invalid_values(clean_env, name, value):
    clean_env.setenv("AOSS_ENDPOINT", "https://search.example.com")
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationException):
        StreamerConfig.from_environment()


def test_sigv4_signing_adds_auth_headers():
    """Test that requests are signed for the configured service scope and region."""
    signer = SigV4RequestSigner("us-east-1", "aoss", credentials=Credentials("AKIDEXAMPLE", "secret"))
    body = b'{"delete":{"_index":"saves","_id":"a"}}\n'
    request = HttpRequest("POST", "https://search.example.com/_bulk", {"content-type": "application/json"}, body)

    signed = signer.sign(request)

    headers = {name.lower(): value for name, value in signed.headers.items()}
    assert headers["authorization"].startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
    assert "/us-east-1/aoss/aws4_request" in headers["authorization"]
    assert headers["x-amz-content-sha256"] == hashlib.sha256(body).hexdigest()
    assert "x-amz-date" in headers
    assert signed.body == body
    assert request.headers == {"content-type": "application/json"}


def test_base_url_keeps_explicit_scheme():
    assert OpenSearchConfig(endpoint="http://localhost:9200").base_url == "http://localhost:9200"
