"""
AWS Bedrock provider for Anthropic Claude models.

Sends each check's prompt to Bedrock ``invoke_model`` using the Anthropic
messages format. Credentials come from the usual boto3 chain (environment,
shared config, instance role); only the region and model ID are configured
here.

boto3 clients are thread-safe, so one client is created per provider and
shared by all worker threads. botocore's own retry handler is limited to a
single attempt: terra-inform does not retry.

Usage:
    from terrainform.bedrock_client import BedrockProvider

    client = BedrockProvider(provider_config)
    answer = client.run_check(DowntimeAnalyzer(), plan_output)
"""

import json
from typing import Any, ClassVar

from typing_extensions import override

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from terrainform.config import ProviderConfig
from terrainform.errors import ProviderError
from terrainform.logging_config import get_logger, log_with_context
from terrainform.provider_client import ProviderClient

logger = get_logger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"

# Bedrock error codes where trying again later could succeed.
RETRYABLE_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "ServiceUnavailableException",
        "InternalServerException",
        "ModelNotReadyException",
        "ModelTimeoutException",
    }
)


class BedrockProvider(ProviderClient):
    """
    Provider client for Claude models on AWS Bedrock.

    Attributes:
        bedrock_client: boto3 ``bedrock-runtime`` client
    """

    provider_name: ClassVar[str] = "bedrock"

    def __init__(self, config: ProviderConfig) -> None:
        """
        Initialize Bedrock provider.

        Args:
            config: Provider configuration (model_name is the Bedrock model ID)
        """
        super().__init__(config)
        boto_config = Config(
            read_timeout=config.request_timeout_seconds,
            connect_timeout=10,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        self.bedrock_client: Any = boto3.client(
            service_name="bedrock-runtime",
            region_name=config.region or "us-east-1",
            config=boto_config,
        )

    @override
    def _complete(self, prompt: str, check_name: str) -> str:
        body = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": self.config.max_response_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = self.bedrock_client.invoke_model(
                modelId=self.config.model_name,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            payload: dict[str, Any] = json.loads(response["body"].read())

        except ClientError as e:
            error = e.response.get("Error", {})
            error_code = error.get("Code")
            request_id = e.response.get("ResponseMetadata", {}).get("RequestId")
            log_with_context(
                logger,
                "warning",
                "Bedrock request failed",
                check_name=check_name,
                error_code=error_code,
                request_id=request_id,
            )
            raise ProviderError(
                f"Error processing check {check_name}: {error_code}: "
                f"{error.get('Message', str(e))}",
                check_name=check_name,
                error_code=error_code,
                retryable=error_code in RETRYABLE_ERROR_CODES,
            ) from e
        except BotoCoreError as e:
            raise ProviderError(
                f"Error processing check {check_name}: {e}",
                check_name=check_name,
                retryable=True,
            ) from e
        except (json.JSONDecodeError, KeyError) as e:
            raise ProviderError(
                f"Error processing check {check_name}: malformed Bedrock response",
                check_name=check_name,
            ) from e

        return _extract_text(payload, check_name)


def _extract_text(payload: dict[str, Any], check_name: str) -> str:
    """
    Join the text blocks of a Claude messages response.

    Raises:
        ProviderError: If the response carries no text
    """
    blocks = payload.get("content") or []
    texts = [
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type", "text") == "text"
    ]
    text = "".join(texts)
    if not text:
        raise ProviderError(
            f"Error processing check {check_name}: empty Claude response",
            check_name=check_name,
            error_code=str(payload.get("stop_reason")) if payload.get("stop_reason") else None,
        )
    return text
