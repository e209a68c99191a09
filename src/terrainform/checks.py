"""
Analysis checks run against terraform output.

A check is anything with a ``name`` and a ``prompt(input_text)`` method. The
dispatcher only relies on that interface, so a new analysis is added by
writing a class and registering a factory for it in CHECK_REGISTRY.

Usage:
    from terrainform.checks import build_checks

    checks = build_checks(["summarizer", "downtime-analyzer"])
    prompt = checks[0].prompt(plan_output)
"""

import re
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from terrainform.errors import DuplicateCheckError, UnknownCheckError

DOWNTIME_RISK_TAG = "DOWNTIME RISK:"
DOWNTIME_RISK_LEVELS = ("None", "Low", "Medium", "High")

_DOWNTIME_RISK_PATTERN = re.compile(
    rf"{re.escape(DOWNTIME_RISK_TAG)}\s*({'|'.join(DOWNTIME_RISK_LEVELS)})\b",
    re.IGNORECASE,
)


@runtime_checkable
class Check(Protocol):
    """
    A named analysis that turns raw text into a provider prompt.

    ``name`` must be unique within one batch; the dispatcher uses it to
    correlate results with requests. ``prompt`` must be pure and must keep
    the full input text.
    """

    @property
    def name(self) -> str: ...

    def prompt(self, input_text: str) -> str: ...


@dataclass(frozen=True)
class Summarizer:
    """Asks for a short bullet-point summary of the planned changes."""

    name: str = "summarizer"

    PREAMBLE = (
        "You are a helpful assistant that summarizes Terraform plan output. "
        "Focus on the key changes, resource additions, modifications, and deletions. "
        "Be concise but comprehensive. Make sure this is easy to read and understand. "
        "Format this output into a simple list with bullet points."
    )

    def prompt(self, input_text: str) -> str:
        return f"{self.PREAMBLE}\n\n{input_text}"


@dataclass(frozen=True)
class DowntimeAnalyzer:
    """
    Asks for a one-line downtime risk rating.

    The answer is constrained to start with ``DOWNTIME RISK:`` followed by
    one of None, Low, Medium or High and an optional short justification,
    so it can be parsed with parse_downtime_risk.
    """

    name: str = "downtime-analyzer"

    PREAMBLE = (
        "You are a Terraform expert focused on identifying potential downtime or service "
        "disruptions. Analyze the following Terraform plan and identify if there are any "
        "changes that could cause downtime or service disruption. Consider resource "
        "replacements, restarts, or changes to critical infrastructure components like load "
        "balancers, databases, and networking. Be extremely concise - respond with a single "
        f"line starting with '{DOWNTIME_RISK_TAG}' and a rating of "
        f"{', '.join(DOWNTIME_RISK_LEVELS[:-1])}, or {DOWNTIME_RISK_LEVELS[-1]}, followed by "
        "a brief explanation if there is risk. "
        f"Example: '{DOWNTIME_RISK_TAG} Medium - Database instance will be restarted.'"
    )

    def prompt(self, input_text: str) -> str:
        return f"{self.PREAMBLE}\n\n{input_text}"


def parse_downtime_risk(text: str) -> str | None:
    """
    Extract the risk rating from a downtime analyzer answer.

    Args:
        text: Provider response text

    Returns:
        One of None/Low/Medium/High (as a string), or None if the answer
        does not contain a well-formed rating

    Example:
        >>> parse_downtime_risk("DOWNTIME RISK: High - ALB is replaced")
        'High'
    """
    match = _DOWNTIME_RISK_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).capitalize()


# Factories keyed by the default check name.
CHECK_REGISTRY: dict[str, Callable[[], Check]] = {
    "summarizer": Summarizer,
    "downtime-analyzer": DowntimeAnalyzer,
}


def ensure_unique_names(checks: Sequence[Check]) -> None:
    """
    Verify that no two checks share a name.

    Raises:
        DuplicateCheckError: If a name appears more than once
    """
    counts = Counter(check.name for check in checks)
    duplicates = [name for name, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateCheckError(duplicates)


def build_checks(names: Iterable[str]) -> list[Check]:
    """
    Instantiate registered checks in the requested order.

    Args:
        names: Registry names

    Returns:
        One check per name, in the same order

    Raises:
        UnknownCheckError: If a name is not registered
        DuplicateCheckError: If a name is requested twice
    """
    checks: list[Check] = []
    for name in names:
        factory = CHECK_REGISTRY.get(name)
        if factory is None:
            raise UnknownCheckError(name, CHECK_REGISTRY.keys())
        checks.append(factory())

    ensure_unique_names(checks)
    return checks


def default_checks() -> list[Check]:
    """Return every registered check, in registry order."""
    return build_checks(CHECK_REGISTRY)
