"""
Provider client contract.

A provider client sends one check's prompt to a language-model backend and
returns the text of the answer. Concrete clients implement ``_complete``;
``run_check`` adds the shared behaviour around it:

1. Empty input fails with EmptyInputError before anything is sent.
2. The prompt comes from ``check.prompt(input_text)``.
3. Exactly one backend call is made. There is no retry loop.
4. Any failure leaves as ProviderError carrying the check name.

Clients hold only immutable configuration and thread-safe transports, so a
single instance is shared by every worker thread of a dispatch.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from terrainform.checks import Check
from terrainform.config import ProviderConfig
from terrainform.errors import EmptyInputError, ProviderError
from terrainform.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


class ProviderClient(ABC):
    """
    Base class for language-model provider clients.

    Attributes:
        config: Immutable provider configuration
    """

    provider_name: ClassVar[str] = "unknown"

    def __init__(self, config: ProviderConfig) -> None:
        """
        Initialize provider client.

        Args:
            config: Immutable provider configuration
        """
        self.config: ProviderConfig = config

    @property
    def model_name(self) -> str:
        """Model the client sends requests to."""
        return self.config.model_name

    def run_check(self, check: Check, input_text: str) -> str:
        """
        Run one check against the backend.

        Args:
            check: Check whose prompt is sent
            input_text: Text to analyze

        Returns:
            The backend's answer

        Raises:
            EmptyInputError: If input_text is empty (no request is made)
            ProviderError: If the backend call fails for any reason
        """
        if not input_text:
            raise EmptyInputError(check.name)

        prompt = check.prompt(input_text)

        log_with_context(
            logger,
            "debug",
            "Sending check to provider",
            provider=self.provider_name,
            model=self.model_name,
            check_name=check.name,
            prompt_chars=len(prompt),
        )

        try:
            return self._complete(prompt, check_name=check.name)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Error processing check {check.name}: {e}",
                check_name=check.name,
            ) from e

    @abstractmethod
    def _complete(self, prompt: str, check_name: str) -> str:
        """
        Send a single prompt and return the answer text.

        Args:
            prompt: Fully formed prompt
            check_name: Name of the check, for error reporting

        Returns:
            Answer text

        Raises:
            ProviderError: If the request fails or the answer is unusable
        """
        ...
