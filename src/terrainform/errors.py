"""
Custom exception classes for terra-inform.

This module defines the exception hierarchy used across terra-inform so that
callers can tell apart failures that belong to a single check (reported as
data in a CheckResult) from failures that stop the process before any
analysis runs (configuration problems).

Exception Hierarchy:
    TerraInformError (base)
    ├── EmptyInputError (nothing to analyze, raised before any network call)
    ├── ProviderError (backend failures for one check)
    │   └── CheckTimeoutError (check did not finish before the deadline)
    ├── CheckRegistryError
    │   ├── UnknownCheckError (name not in the registry)
    │   └── DuplicateCheckError (same name used twice in one batch)
    ├── ConfigurationError (invalid settings, fatal at startup)
    │   └── UnsupportedProviderError (unknown provider identifier)
    └── TerraformCommandError (terraform binary could not be run)

Retry Semantics:
    Nothing in terra-inform retries. The ``retryable`` flag only records
    whether a retry could plausibly succeed (rate limits, 5xx responses,
    timeouts) so that callers wrapping terra-inform can decide for themselves.
"""

from collections.abc import Iterable


class TerraInformError(Exception):
    """
    Base exception for all terra-inform errors.

    Attributes:
        message: Human-readable error description
        retryable: Whether a retry could succeed
        context: Additional context dictionary for structured logging
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        context: dict[str, object] | None = None,
    ) -> None:
        """
        Initialize terra-inform error.

        Args:
            message: Human-readable error description
            retryable: Whether a retry could succeed
            context: Additional context for structured logging
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        return self.message


class EmptyInputError(TerraInformError):
    """
    No input text was supplied for analysis.

    Raised locally before any request is made to the provider. Always
    recoverable: the caller simply has nothing to analyze.

    Attributes:
        check_name: Check that was asked to run on empty input
    """

    def __init__(self, check_name: str | None = None) -> None:
        """
        Initialize empty input error.

        Args:
            check_name: Name of the check that received empty input
        """
        message = "No input to analyze"
        if check_name:
            message = f"No input to analyze for check '{check_name}'"
        super().__init__(message, retryable=False, context={"check_name": check_name})
        self.check_name = check_name


class ProviderError(TerraInformError):
    """
    Error returned by (or while talking to) the language-model provider.

    Covers transport failures, authentication failures, rate limiting and
    unparseable responses. Always carries the name of the failing check so
    the error can be rendered next to the right result.

    Attributes:
        check_name: Name of the check whose request failed
        status_code: HTTP status code (HTTP providers)
        error_code: Backend error code (e.g. ThrottlingException)
    """

    def __init__(
        self,
        message: str,
        check_name: str,
        status_code: int | None = None,
        error_code: str | None = None,
        retryable: bool = False,
    ) -> None:
        """
        Initialize provider error.

        Args:
            message: Human-readable error description
            check_name: Name of the check whose request failed
            status_code: HTTP status code if available
            error_code: Backend-specific error code if available
            retryable: Whether a retry could succeed
        """
        context: dict[str, object] = {
            "check_name": check_name,
            "status_code": status_code,
            "error_code": error_code,
        }
        super().__init__(message, retryable=retryable, context=context)
        self.check_name = check_name
        self.status_code = status_code
        self.error_code = error_code


class CheckTimeoutError(ProviderError):
    """
    A check did not complete before the dispatch deadline.

    Attributes:
        timeout_seconds: Deadline that was exceeded
    """

    def __init__(self, check_name: str, timeout_seconds: float) -> None:
        """
        Initialize check timeout error.

        Args:
            check_name: Name of the check that timed out
            timeout_seconds: Deadline that was exceeded
        """
        super().__init__(
            f"Check '{check_name}' did not finish within {timeout_seconds:g}s",
            check_name=check_name,
            retryable=True,
        )
        self.timeout_seconds = timeout_seconds
        self.context["timeout_seconds"] = timeout_seconds


class CheckRegistryError(TerraInformError):
    """Base class for problems with the requested check set."""


class UnknownCheckError(CheckRegistryError):
    """
    A requested check name is not registered.

    Attributes:
        check_name: The unknown name
        available: Names that are registered
    """

    def __init__(self, check_name: str, available: Iterable[str]) -> None:
        """
        Initialize unknown check error.

        Args:
            check_name: The unknown name
            available: Names that are registered
        """
        self.available = sorted(available)
        super().__init__(
            f"Unknown check '{check_name}'. Available checks: {', '.join(self.available)}",
            context={"check_name": check_name, "available": self.available},
        )
        self.check_name = check_name


class DuplicateCheckError(CheckRegistryError):
    """
    The same check name appears more than once in one batch.

    Results are correlated to requests by check name, so names must be
    unique within a batch.

    Attributes:
        duplicates: Names that appear more than once
    """

    def __init__(self, duplicates: Iterable[str]) -> None:
        """
        Initialize duplicate check error.

        Args:
            duplicates: Names that appear more than once
        """
        self.duplicates = sorted(set(duplicates))
        super().__init__(
            f"Check names must be unique within a batch; duplicated: {', '.join(self.duplicates)}",
            context={"duplicates": self.duplicates},
        )


class ConfigurationError(TerraInformError):
    """
    Error in terra-inform configuration.

    Raised at startup when configuration is missing or invalid. These
    errors are fatal and stop the process before terraform runs.

    Attributes:
        config_key: Configuration key that is invalid
        reason: Specific validation failure reason
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        reason: str | None = None,
    ) -> None:
        """
        Initialize configuration error.

        Args:
            message: Human-readable error description
            config_key: Configuration key that failed validation
            reason: Why the configuration is invalid
        """
        context: dict[str, object] = {
            "config_key": config_key,
            "reason": reason,
        }
        super().__init__(message, retryable=False, context=context)
        self.config_key = config_key
        self.reason = reason


class UnsupportedProviderError(ConfigurationError):
    """
    The selected provider identifier is not supported.

    Attributes:
        provider: The unsupported identifier
        supported: Identifiers that are supported
    """

    def __init__(self, provider: str, supported: Iterable[str]) -> None:
        """
        Initialize unsupported provider error.

        Args:
            provider: The unsupported identifier
            supported: Identifiers that are supported
        """
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported provider: {provider}",
            config_key="TERRA_INFORM_MODEL_PROVIDER",
            reason=f"Supported providers: {', '.join(self.supported)}",
        )
        self.provider = provider


class TerraformCommandError(TerraInformError):
    """
    The terraform binary could not be executed.

    A terraform command that runs and exits non-zero is not an exception;
    this is raised when the process cannot be started at all.

    Attributes:
        command: Command line that was attempted
        returncode: Exit status, if the process started
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
    ) -> None:
        """
        Initialize terraform command error.

        Args:
            message: Human-readable error description
            command: Command line that was attempted
            returncode: Exit status if available
        """
        context: dict[str, object] = {
            "command": command or [],
            "returncode": returncode,
        }
        super().__init__(message, retryable=False, context=context)
        self.command = command or []
        self.returncode = returncode
