"""
Configuration management for terra-inform.

Settings are loaded from environment variables (and an optional ``.env``
file) with Pydantic validation. Command-line flags are applied on top by the
CLI. The analysis core never reads settings directly: the CLI turns them into
an immutable ProviderConfig and passes that down explicitly.

Environment Variables:
    TERRA_INFORM_MODEL_PROVIDER: Provider identifier (default: openai)
    TERRA_INFORM_MODEL_NAME: Model name (default: gpt-4o)
    OPENAI_API_KEY: API key for the OpenAI provider
    TERRA_INFORM_OPENAI_BASE_URL: OpenAI API base URL
    AWS_REGION: AWS region for the Bedrock provider (default: us-east-1)
    TERRA_INFORM_MAX_RESPONSE_TOKENS: Response length cap (default: 500)
    TERRA_INFORM_REQUEST_TIMEOUT_SECONDS: HTTP timeout per request (default: 60)
    TERRA_INFORM_CHECK_TIMEOUT_SECONDS: Deadline for one dispatch (default: none)
    TERRA_INFORM_MAX_WORKERS: Worker pool bound (default: one per check)
    TERRA_INFORM_CHECKS: Comma-separated check names
    TERRA_INFORM_TERRAFORM_PATH: terraform binary (default: terraform)
    TERRA_INFORM_LOG_LEVEL: Logging level (default: WARNING)

Usage:
    from terrainform.config import get_settings

    settings = get_settings()
    provider_config = settings.provider_config()
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from terrainform.errors import ConfigurationError

DEFAULT_CHECKS = "summarizer,downtime-analyzer"


@dataclass(frozen=True)
class ProviderConfig:
    """
    Immutable provider configuration shared by every check in a process.

    Attributes:
        provider: Provider identifier (openai, bedrock)
        model_name: Model name or Bedrock model ID
        api_key: API credential (None for providers using ambient credentials)
        max_response_tokens: Response length cap sent with each request
        request_timeout_seconds: Transport timeout for one request
        region: Cloud region (Bedrock)
        base_url: API base URL (OpenAI-compatible endpoints)
    """

    provider: str
    model_name: str
    api_key: str | None = None
    max_response_tokens: int = 500
    request_timeout_seconds: float = 60.0
    region: str | None = None
    base_url: str | None = None

    def __repr__(self) -> str:
        """Return a representation that never includes the credential."""
        return (
            f"ProviderConfig(provider={self.provider!r}, model_name={self.model_name!r}, "
            f"api_key={'***' if self.api_key else None}, "
            f"max_response_tokens={self.max_response_tokens})"
        )


class Settings(BaseSettings):
    """
    terra-inform configuration settings.

    Attributes:
        model_provider: Provider identifier
        model_name: Model name passed to the provider
        openai_api_key: OpenAI API key
        openai_base_url: OpenAI API base URL
        aws_region: AWS region for Bedrock
        max_response_tokens: Response length cap per check
        request_timeout_seconds: Transport timeout per provider request
        check_timeout_seconds: Deadline for all checks of one dispatch
        max_workers: Upper bound on concurrently running checks
        checks: Comma-separated names of the checks to run
        terraform_path: Path to the terraform binary
        log_level: Logging level
    """

    model_config = SettingsConfigDict(
        env_prefix="TERRA_INFORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=("settings_",),
    )

    model_provider: str = Field(
        default="openai",
        description="Language-model provider identifier",
    )
    model_name: str = Field(
        default="gpt-4o",
        description="Model name or Bedrock model ID",
    )

    # OpenAI Configuration
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "TERRA_INFORM_OPENAI_API_KEY"),
        description="OpenAI API key",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_REGION", "TERRA_INFORM_AWS_REGION"),
        description="AWS region for Bedrock",
    )

    # Analysis Configuration
    max_response_tokens: int = Field(
        default=500,
        ge=1,
        le=8192,
        description="Response length cap per check",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Transport timeout for one provider request",
    )
    check_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Deadline for all checks of one dispatch",
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Upper bound on concurrently running checks",
    )
    checks: str = Field(
        default=DEFAULT_CHECKS,
        description="Comma-separated check names",
    )

    # Runtime Configuration
    terraform_path: str = Field(
        default="terraform",
        description="Path to the terraform binary",
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level",
    )

    @field_validator("model_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        """
        Normalize the provider identifier.

        Whether the provider is supported is decided by the provider
        factory, which raises UnsupportedProviderError.

        Raises:
            ConfigurationError: If the identifier is empty
        """
        if not v or not v.strip():
            raise ConfigurationError(
                "TERRA_INFORM_MODEL_PROVIDER must not be empty",
                config_key="TERRA_INFORM_MODEL_PROVIDER",
                reason="Provider is empty",
            )
        return v.strip().lower()

    @field_validator("model_name")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        """
        Validate model name is not empty.

        Raises:
            ConfigurationError: If the model name is empty
        """
        if not v or not v.strip():
            raise ConfigurationError(
                "TERRA_INFORM_MODEL_NAME must not be empty",
                config_key="TERRA_INFORM_MODEL_NAME",
                reason="Model name is empty",
            )
        return v.strip()

    @field_validator("checks")
    @classmethod
    def validate_checks(cls, v: str) -> str:
        """
        Normalize the comma-separated check list.

        Raises:
            ConfigurationError: If no check name is given
        """
        names = [name.strip() for name in v.split(",") if name.strip()]
        if not names:
            raise ConfigurationError(
                "TERRA_INFORM_CHECKS must name at least one check",
                config_key="TERRA_INFORM_CHECKS",
                reason="Check list is empty",
            )
        return ",".join(names)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate log level is recognized.

        Raises:
            ConfigurationError: If log level is invalid
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ConfigurationError(
                f"TERRA_INFORM_LOG_LEVEL '{v}' is not valid. Must be one of: "
                f"{', '.join(sorted(valid_levels))}",
                config_key="TERRA_INFORM_LOG_LEVEL",
                reason=f"Invalid log level: {v}",
            )
        return v_upper

    @property
    def check_names(self) -> list[str]:
        """Check names in the configured order."""
        return [name.strip() for name in self.checks.split(",") if name.strip()]

    def provider_config(self) -> ProviderConfig:
        """
        Build the immutable provider configuration.

        A missing OpenAI API key is not an error here: terraform still runs,
        and each check reports the missing credential when it is analyzed.

        Returns:
            ProviderConfig for the selected provider
        """
        return ProviderConfig(
            provider=self.model_provider,
            model_name=self.model_name,
            api_key=(self.openai_api_key or "").strip() or None,
            max_response_tokens=self.max_response_tokens,
            request_timeout_seconds=self.request_timeout_seconds,
            region=self.aws_region,
            base_url=self.openai_base_url.rstrip("/"),
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            reason=str(e),
        ) from e
