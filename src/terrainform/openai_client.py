"""
OpenAI chat-completions provider.

Talks to the OpenAI REST API (or any compatible endpoint configured through
``base_url``) with ``requests``. Each check's prompt is sent as a single
system message, with the configured response length cap.

API Reference: https://platform.openai.com/docs/api-reference/chat

Usage:
    from terrainform.openai_client import OpenAIProvider

    client = OpenAIProvider(provider_config)
    answer = client.run_check(Summarizer(), plan_output)
"""

from typing import Any, ClassVar

from typing_extensions import override

import requests

from terrainform import __version__
from terrainform.config import ProviderConfig
from terrainform.errors import ProviderError
from terrainform.logging_config import get_logger, log_with_context
from terrainform.provider_client import ProviderClient

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
MISSING_API_KEY = "missing_api_key"

# Statuses where trying again later could succeed.
_RETRYABLE_STATUSES = frozenset({408, 409, 429, 500, 502, 503, 504})


class OpenAIProvider(ProviderClient):
    """
    Provider client for the OpenAI chat-completions API.

    A new HTTP session is opened for every request so that concurrent checks
    never share connection state.
    """

    provider_name: ClassVar[str] = "openai"
    CHAT_COMPLETIONS_ENDPOINT: ClassVar[str] = "/chat/completions"

    def __init__(self, config: ProviderConfig) -> None:
        """
        Initialize OpenAI provider.

        A missing API key is reported per check by ``_complete``, so
        terraform commands still run without one.

        Args:
            config: Provider configuration
        """
        super().__init__(config)
        self.base_url: str = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        if not config.api_key:
            log_with_context(
                logger,
                "warning",
                "OPENAI_API_KEY is not set, analysis checks will fail",
                model=config.model_name,
            )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"terra-inform/{__version__}",
        }

    @override
    def _complete(self, prompt: str, check_name: str) -> str:
        if not self.config.api_key:
            raise ProviderError(
                f"Error processing check {check_name}: OPENAI_API_KEY is not set",
                check_name=check_name,
                error_code=MISSING_API_KEY,
            )

        payload: dict[str, Any] = {
            "model": self.config.model_name,
            "messages": [{"role": "system", "content": prompt}],
            "max_tokens": self.config.max_response_tokens,
        }

        try:
            with requests.Session() as session:
                session.headers.update(self._headers())
                response = session.post(
                    f"{self.base_url}{self.CHAT_COMPLETIONS_ENDPOINT}",
                    json=payload,
                    timeout=self.config.request_timeout_seconds,
                )
                response.raise_for_status()
                body: dict[str, Any] = response.json()

        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            detail = _error_detail(e.response) if e.response is not None else str(e)
            log_with_context(
                logger,
                "warning",
                "OpenAI request failed",
                check_name=check_name,
                status_code=status_code,
                error=detail,
            )
            raise ProviderError(
                f"Error processing check {check_name}: HTTP {status_code}: {detail}",
                check_name=check_name,
                status_code=status_code,
                retryable=status_code in _RETRYABLE_STATUSES,
            ) from e
        except requests.JSONDecodeError as e:
            raise ProviderError(
                f"Error processing check {check_name}: response is not valid JSON",
                check_name=check_name,
            ) from e
        except requests.Timeout as e:
            raise ProviderError(
                f"Error processing check {check_name}: request timed out",
                check_name=check_name,
                retryable=True,
            ) from e
        except requests.RequestException as e:
            raise ProviderError(
                f"Error processing check {check_name}: {e}",
                check_name=check_name,
                retryable=True,
            ) from e

        return _extract_content(body, check_name)


def _error_detail(response: requests.Response) -> str:
    """Pull the error message out of an OpenAI error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text[:500]


def _extract_content(body: dict[str, Any], check_name: str) -> str:
    """
    Return the first choice's message content.

    Raises:
        ProviderError: If the body has no usable content
    """
    choices = body.get("choices") if isinstance(body, dict) else None
    if not choices:
        raise ProviderError(
            f"Error processing check {check_name}: response contained no choices",
            check_name=check_name,
        )

    message = choices[0].get("message") or {}
    content = message.get("content")
    if not isinstance(content, str):
        raise ProviderError(
            f"Error processing check {check_name}: response message has no text content",
            check_name=check_name,
        )
    return content
