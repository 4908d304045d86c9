"""
Configuration management for the stream-to-search service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import ConfigurationException


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class OpenSearchConfig:
    """OpenSearch (or OpenSearch Serverless) connection configuration."""

    endpoint: str
    index_name: str = "saves"
    tag_index_name: str = "discovertags"
    region: str = "us-east-1"
    service: str = "aoss"  # "es" for managed domains
    profile: Optional[str] = None
    timeout: int = 30
    ensure_index: bool = False

    @property
    def base_url(self) -> str:
        """Endpoint with a scheme and without a trailing slash."""
        endpoint = self.endpoint.rstrip("/")
        if not endpoint.startswith(("http://", "https://")):
            endpoint = f"https://{endpoint}"
        return endpoint


@dataclass
class BulkRetryConfig:
    """Retry policy for bulk delivery."""

    max_attempts: int = 4
    backoff_base: float = 1.0
    backoff_max_delay: float = 8.0


@dataclass
class EnrichmentConfig:
    """Bedrock configuration for semantic enrichment."""

    region: str = "us-east-1"
    model_id: str = "amazon.nova-micro-v1:0"
    profile: Optional[str] = None
    max_tags: int = 5
    max_tokens: int = 256
    timeout: int = 10
    enable_broken_save_detection: bool = False


@dataclass
class StreamerConfig:
    """Main configuration, built once at startup and passed to each component."""

    # Required fields (no defaults)
    opensearch_config: OpenSearchConfig

    # Optional fields (with defaults)
    log_level: str = "info"
    json_logs: bool = True
    enable_enrichment: bool = True
    enrichment_config: Optional[EnrichmentConfig] = None
    retry_config: BulkRetryConfig = field(default_factory=BulkRetryConfig)

    @classmethod
    def from_environment(cls) -> "StreamerConfig":
        """Create configuration from environment variables."""

        endpoint = os.getenv("AOSS_ENDPOINT")
        if not endpoint:
            raise ConfigurationException("AOSS_ENDPOINT environment variable is required")

        region = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1"

        log_level = os.getenv("LOG_LEVEL", "info").lower()
        if log_level not in ("info", "debug"):
            raise ConfigurationException(f"LOG_LEVEL must be 'info' or 'debug', got {log_level!r}")

        try:
            opensearch_config = OpenSearchConfig(
                endpoint=endpoint,
                index_name=os.getenv("AOSS_INDEX", "saves"),
                tag_index_name=os.getenv("AOSS_TAG_INDEX", "discovertags"),
                region=region,
                service=os.getenv("AOSS_SERVICE", "aoss"),
                profile=os.getenv("AWS_PROFILE"),
                timeout=int(os.getenv("AOSS_TIMEOUT", "30")),
                ensure_index=_env_flag("AOSS_ENSURE_INDEX", "false"),
            )

            retry_config = BulkRetryConfig(
                max_attempts=int(os.getenv("BULK_MAX_ATTEMPTS", "4")),
                backoff_base=float(os.getenv("BULK_BACKOFF_BASE", "1.0")),
                backoff_max_delay=float(os.getenv("BULK_BACKOFF_MAX_DELAY", "8.0")),
            )
        except ValueError as e:
            raise ConfigurationException(f"Invalid numeric configuration value: {e}") from e

        if retry_config.max_attempts < 1:
            raise ConfigurationException("BULK_MAX_ATTEMPTS must be at least 1")

        # Enrichment configuration (optional)
        enrichment_config = None
        enable_enrichment = _env_flag("ENABLE_ENRICHMENT", "true")
        if enable_enrichment:
            enrichment_config = EnrichmentConfig(
                region=os.getenv("ENRICHMENT_REGION", region),
                model_id=os.getenv("ENRICHMENT_MODEL_ID", "amazon.nova-micro-v1:0"),
                profile=os.getenv("ENRICHMENT_PROFILE"),
                enable_broken_save_detection=_env_flag("ENABLE_BROKEN_SAVE_DETECTION", "false"),
            )

        return cls(
            opensearch_config=opensearch_config,
            log_level=log_level,
            json_logs=_env_flag("JSON_LOGS", "true"),
            enable_enrichment=enable_enrichment,
            enrichment_config=enrichment_config,
            retry_config=retry_config,
        )
