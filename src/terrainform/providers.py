"""
Provider selection.

Maps a provider identifier to its client class. This is the only place that
knows which providers exist; an unknown identifier is a fatal configuration
error raised before any terraform command or dispatch runs.
"""

from terrainform.bedrock_client import BedrockProvider
from terrainform.config import ProviderConfig
from terrainform.errors import UnsupportedProviderError
from terrainform.logging_config import get_logger, log_with_context
from terrainform.openai_client import OpenAIProvider
from terrainform.provider_client import ProviderClient

logger = get_logger(__name__)

PROVIDERS: dict[str, type[ProviderClient]] = {
    OpenAIProvider.provider_name: OpenAIProvider,
    BedrockProvider.provider_name: BedrockProvider,
}


def create_provider(config: ProviderConfig) -> ProviderClient:
    """
    Instantiate the client for the configured provider.

    Args:
        config: Immutable provider configuration

    Returns:
        Provider client ready to be shared across worker threads

    Raises:
        UnsupportedProviderError: If the provider identifier is unknown
    """
    provider_cls = PROVIDERS.get(config.provider.lower())
    if provider_cls is None:
        raise UnsupportedProviderError(config.provider, PROVIDERS)

    client = provider_cls(config)

    log_with_context(
        logger,
        "info",
        "Initialized provider client",
        provider=provider_cls.provider_name,
        model=config.model_name,
        max_response_tokens=config.max_response_tokens,
    )
    return client
