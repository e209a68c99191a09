"""
Shared pytest fixtures for terra-inform tests.

Fixtures include an isolated environment, settings, a scripted provider
client that records every call, and sample terraform output.

Usage:
    def test_something(scripted_provider, sample_plan_output):
        result = scripted_provider.run_check(Summarizer(), sample_plan_output)
"""

import threading
import time
from collections.abc import Generator, Mapping
from dataclasses import dataclass
from typing import ClassVar

from typing_extensions import override

import pytest
from _pytest.monkeypatch import MonkeyPatch

from terrainform.config import ProviderConfig, Settings, get_settings
from terrainform.provider_client import ProviderClient

_ISOLATED_ENV_VARS = (
    "OPENAI_API_KEY",
    "AWS_REGION",
    "TERRA_INFORM_MODEL_PROVIDER",
    "TERRA_INFORM_MODEL_NAME",
    "TERRA_INFORM_OPENAI_API_KEY",
    "TERRA_INFORM_OPENAI_BASE_URL",
    "TERRA_INFORM_AWS_REGION",
    "TERRA_INFORM_MAX_RESPONSE_TOKENS",
    "TERRA_INFORM_REQUEST_TIMEOUT_SECONDS",
    "TERRA_INFORM_CHECK_TIMEOUT_SECONDS",
    "TERRA_INFORM_MAX_WORKERS",
    "TERRA_INFORM_CHECKS",
    "TERRA_INFORM_TERRAFORM_PATH",
    "TERRA_INFORM_LOG_LEVEL",
)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: MonkeyPatch,
    tmp_path_factory: pytest.TempPathFactory,
) -> Generator[None, None, None]:
    """
    Remove terra-inform related variables from the environment.

    Also runs each test from an empty directory so that a developer's
    ``.env`` file is never picked up, and clears the settings cache.
    """
    for key in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_env_vars(monkeypatch: MonkeyPatch) -> dict[str, str]:
    """
    Set a complete, valid environment.

    Returns:
        Dictionary of environment variable names and values
    """
    env_vars = {
        "OPENAI_API_KEY": "sk-test-openai-key-12345",
        "TERRA_INFORM_MODEL_PROVIDER": "openai",
        "TERRA_INFORM_MODEL_NAME": "gpt-4o-mini",
        "TERRA_INFORM_MAX_RESPONSE_TOKENS": "300",
        "TERRA_INFORM_CHECK_TIMEOUT_SECONDS": "30",
        "TERRA_INFORM_MAX_WORKERS": "4",
        "TERRA_INFORM_CHECKS": "downtime-analyzer, summarizer",
        "TERRA_INFORM_LOG_LEVEL": "debug",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Settings:
    """Settings built from mock_env_vars, bypassing the cache."""
    _ = mock_env_vars
    return Settings()


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provider configuration for the OpenAI client."""
    return ProviderConfig(
        provider="openai",
        model_name="gpt-4o",
        api_key="sk-test-openai-key-12345",
        max_response_tokens=500,
        request_timeout_seconds=5.0,
        base_url="https://api.openai.com/v1",
    )


# =============================================================================
# Check and Provider Fixtures
# =============================================================================


@dataclass(frozen=True)
class StaticCheck:
    """Minimal check used to build batches of arbitrary size."""

    name: str

    def prompt(self, input_text: str) -> str:
        return f"[{self.name}] {input_text}"


class ScriptedProvider(ProviderClient):
    """
    Provider client that answers from a script instead of the network.

    Records every call it receives and the largest number of calls that
    were in flight at the same time.

    Args:
        responses: Answer per check name (default: "<name> ok")
        delays: Seconds to sleep per check name before answering
        failures: Exception to raise per check name
    """

    provider_name: ClassVar[str] = "scripted"

    def __init__(
        self,
        responses: Mapping[str, str] | None = None,
        delays: Mapping[str, float] | None = None,
        failures: Mapping[str, Exception] | None = None,
    ) -> None:
        super().__init__(ProviderConfig(provider="scripted", model_name="test-model"))
        self.responses: dict[str, str] = dict(responses or {})
        self.delays: dict[str, float] = dict(delays or {})
        self.failures: dict[str, Exception] = dict(failures or {})
        self.calls: list[tuple[str, str]] = []
        self.max_active = 0
        self._active = 0
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    @override
    def _complete(self, prompt: str, check_name: str) -> str:
        with self._lock:
            self.calls.append((check_name, prompt))
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            delay = self.delays.get(check_name, 0.0)
            if delay:
                time.sleep(delay)
            if check_name in self.failures:
                raise self.failures[check_name]
            return self.responses.get(check_name, f"{check_name} ok")
        finally:
            with self._lock:
                self._active -= 1


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    """ScriptedProvider with default answers."""
    return ScriptedProvider()


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_plan_output() -> str:
    """Realistic terraform plan output with a replacement."""
    return """Terraform used the selected providers to generate the following execution
plan. Resource actions are indicated with the following symbols:
  + create
-/+ destroy and then create replacement

Terraform will perform the following actions:

  # aws_db_instance.main must be replaced
-/+ resource "aws_db_instance" "main" {
      ~ engine_version = "13.7" -> "15.4" # forces replacement
      ~ id             = "db-main" -> (known after apply)
        # (22 unchanged attributes hidden)
    }

  # aws_s3_bucket.logs will be created
  + resource "aws_s3_bucket" "logs" {
      + bucket = "example-logs"
      + id     = (known after apply)
    }

Plan: 2 to add, 0 to change, 1 to destroy.
"""


@pytest.fixture
def sample_error_output() -> str:
    """terraform stderr for a failed plan."""
    return """
Error: Unsupported argument

  on main.tf line 12, in resource "aws_s3_bucket" "logs":
  12:   acl_policy = "private"

An argument named "acl_policy" is not expected here.
"""
