"""
Bedrock client for deriving semantic category tags for saved content.

Enrichment is best-effort: every failure is turned into an empty result so that
indexing never waits on, or fails because of, the text-understanding service.
"""

import asyncio
import logging
import textwrap
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError

from .config import EnrichmentConfig
from .exceptions import EnrichmentException

logger = logging.getLogger(__name__)

ENRICHMENT_TOOL = "enrichment_schema"
BROKEN_SAVE_TOOL = "broken_schema"

ENRICHMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"enrichments": {"type": "array", "items": {"type": "string"}}},
    "required": ["enrichments"],
    "additionalProperties": False,
}

BROKEN_SAVE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"isBroken": {"type": "boolean"}},
    "required": ["isBroken"],
    "additionalProperties": False,
}


class EnrichmentPayload(BaseModel):
    """Strict shape of the enrichment tool input."""

    model_config = ConfigDict(extra="forbid")

    enrichments: List[StrictStr]


class BrokenSavePayload(BaseModel):
    """Strict shape of the broken-save tool input."""

    model_config = ConfigDict(extra="forbid")

    isBroken: StrictBool


@dataclass(frozen=True)
class EnrichmentResult:
    """Outcome of an enrichment request. Failed requests carry no tags."""

    ok: bool
    tags: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, tags: List[str]) -> "EnrichmentResult":
        return cls(ok=True, tags=list(tags))

    @classmethod
    def failure(cls, reason: str) -> "EnrichmentResult":
        return cls(ok=False, tags=[], error=reason)


@dataclass(frozen=True)
class BrokenSaveResult:
    """Outcome of a broken-save check. Failed checks report "not broken"."""

    ok: bool
    is_broken: bool = False
    error: Optional[str] = None


def _field_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


class BedrockEnrichmentClient:
    """
    Client for Amazon Bedrock tag generation.

    Structured output is obtained by forcing the model to call a single tool whose
    input schema is the expected JSON object; the tool input is then validated.
    """

    def __init__(self, config: EnrichmentConfig, client: Any = None):
        self.config = config
        if client is None:
            session = boto3.Session(profile_name=config.profile, region_name=config.region)
            client = session.client(
                "bedrock-runtime",
                config=Config(read_timeout=config.timeout, connect_timeout=config.timeout, retries={"max_attempts": 1}),
            )
        self.client = client

    async def generate_enrichments(
        self, title: Any = None, description: Any = None, url: Any = None
    ) -> EnrichmentResult:
        """
        Request up to `max_tags` semantic categories for a saved item.

        Args:
            title: Document title
            description: Document description
            url: Document URL

        Returns:
            EnrichmentResult; on any failure `ok` is False and `tags` is empty
        """
        title_text, description_text, url_text = _field_text(title), _field_text(description), _field_text(url)
        if not (title_text or description_text or url_text):
            return EnrichmentResult.success([])

        prompt = textwrap.dedent(
            f"""
            Title: {title_text}
            Description: {description_text}
            URL: {url_text}

            Return a JSON object with a single field "enrichments": a list of semantic categories the content
            belongs to that will be used for search enhancements.
            There should be a maximum of {self.config.max_tags} enrichments strings. Exclude overly generic
            categories like "Social Media".
            If nothing of value can be inferred, return an empty array.
            No explanations.
            """
        ).strip()

        try:
            tool_input = await self._invoke_tool(prompt, ENRICHMENT_TOOL, ENRICHMENT_SCHEMA)
            payload = EnrichmentPayload.model_validate(tool_input)
        except EnrichmentException as e:
            logger.warning(f"Enrichment request failed: {e}")
            return EnrichmentResult.failure(str(e))
        except ValidationError as e:
            logger.warning(f"Enrichment response did not match schema: {e.error_count()} error(s)")
            return EnrichmentResult.failure("schema mismatch")
        except Exception as e:
            logger.error(f"Unexpected error in enrichment: {e}")
            return EnrichmentResult.failure(str(e))

        tags = [tag.strip() for tag in payload.enrichments if tag.strip()]
        return EnrichmentResult.success(tags[: self.config.max_tags])

    async def detect_broken_save(
        self, title: Any = None, description: Any = None, url: Any = None, image: Any = None
    ) -> BrokenSaveResult:
        """
        Judge whether a save is unusable (paywall, login wall, rate-limit page, no title, ...).

        Returns:
            BrokenSaveResult; on any failure `is_broken` is False
        """
        image_text = image.strip() if isinstance(image, str) else ""
        prompt = textwrap.dedent(
            f"""
            Title: {_field_text(title) or "(none)"}
            Description: {_field_text(description) or "(none)"}
            URL: {_field_text(url) or "(none)"}
            Image: {image_text or "(none)"}

            Determine if this save is "broken": e.g. missing or invalid URL, no usable title, no image when one
            would be expected, or content that cannot be meaningfully used for search or display.
            That could include login blockers or paywalls, or a title/description that indicates we were
            rate-limited.
            Return a JSON object with a single boolean field "isBroken": true if broken, false otherwise.
            No explanations.
            """
        ).strip()

        try:
            tool_input = await self._invoke_tool(prompt, BROKEN_SAVE_TOOL, BROKEN_SAVE_SCHEMA)
            payload = BrokenSavePayload.model_validate(tool_input)
        except (EnrichmentException, ValidationError) as e:
            logger.warning(f"Broken-save check failed: {e}")
            return BrokenSaveResult(ok=False, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error in broken-save check: {e}")
            return BrokenSaveResult(ok=False, error=str(e))

        return BrokenSaveResult(ok=True, is_broken=payload.isBroken)

    async def _invoke_tool(self, prompt: str, tool_name: str, schema: Dict[str, Any]) -> Any:
        """Run the blocking Bedrock call in an executor and return the tool input."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._invoke_tool_sync, prompt, tool_name, schema)

    def _invoke_tool_sync(self, prompt: str, tool_name: str, schema: Dict[str, Any]) -> Any:
        """Synchronous Bedrock converse call."""
        try:
            response = self.client.converse(
                modelId=self.config.model_id,
                messages=[{"role": "user", "content": [{"text": prompt}]}],
                toolConfig={
                    "tools": [
                        {
                            "toolSpec": {
                                "name": tool_name,
                                "description": "Record the structured answer.",
                                "inputSchema": {"json": schema},
                            }
                        }
                    ],
                    "toolChoice": {"tool": {"name": tool_name}},
                },
                inferenceConfig={"maxTokens": self.config.max_tokens, "temperature": 0},
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code == "ThrottlingException":
                logger.error("Bedrock API throttled - consider reducing request rate")
            raise EnrichmentException(f"Bedrock API error: {error_code}", error_code=error_code) from e
        except BotoCoreError as e:
            raise EnrichmentException(f"Bedrock transport error: {e}") from e

        logger.debug(f"Bedrock stop reason: {response.get('stopReason')}")

        try:
            content = response["output"]["message"]["content"]
        except (KeyError, TypeError) as e:
            raise EnrichmentException("Unexpected Bedrock response format") from e

        for block in content or []:
            tool_use = block.get("toolUse") if isinstance(block, dict) else None
            if tool_use and tool_use.get("name") == tool_name:
                return tool_use.get("input")

        raise EnrichmentException(f"Bedrock response did not call tool {tool_name}")
