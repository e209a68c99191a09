"""
Terminal rendering of analysis results.

Every result is printed on its own: a failed check prints a single failure
line and never hides or changes the block of any other check.
"""

from collections.abc import Sequence
from typing import TextIO

from terrainform.dispatcher import CheckResult

SUCCESS_MARKER = "✅"
FAILURE_MARKER = "❌"


def render_header(provider: str, model: str, stream: TextIO) -> None:
    print(f"\nRunning checks using {provider} Model: {model}", file=stream)


def render_results(results: Sequence[CheckResult], stream: TextIO) -> None:
    """
    Print one block per check result, in the given order.

    Args:
        results: Ordered dispatch results
        stream: Output stream
    """
    print("\n🤖 AI Analysis:", file=stream)
    for result in results:
        if result.ok:
            print(f"\n{SUCCESS_MARKER} {result.check_name}:\n{result.result}", file=stream)
        else:
            print(
                f"\n{FAILURE_MARKER} {result.check_name} check failed: {result.error}",
                file=stream,
            )


def render_error_analysis(text: str, stream: TextIO) -> None:
    print(f"\n🤖 Error Analysis:\n{text}", file=stream)
