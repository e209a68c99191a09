"""
Concurrent check dispatcher.

Runs every check of a batch against one shared input on a thread pool and
returns one CheckResult per check, in the order the checks were given.

How a dispatch proceeds:
    1. Empty batch: return [] without creating a pool.
    2. Duplicate check names: raise DuplicateCheckError before any work.
    3. Empty input: every check fails with EmptyInputError, no task is
       submitted and the provider is never called.
    4. Submit one task per check. Tasks share nothing but the read-only
       provider client.
    5. Collect completions as they arrive, keyed by check name, until every
       task has finished (or the optional deadline passes).
    6. Rebuild the output by walking the original check order.

A failing check becomes a failed CheckResult. It never cancels, delays or
alters its siblings, and no exception from a task escapes ``dispatch``.

Usage:
    from terrainform.dispatcher import dispatch

    results = dispatch(checks, plan_output, client, timeout_seconds=120)
    for result in results:
        print(result.check_name, result.result if result.ok else result.error)
"""

import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Protocol, Self

from terrainform.checks import Check, ensure_unique_names
from terrainform.errors import (
    CheckTimeoutError,
    EmptyInputError,
    ProviderError,
    TerraInformError,
)
from terrainform.logging_config import get_logger, log_with_context, run_with_context

logger = get_logger(__name__)


class CheckRunner(Protocol):
    """Anything that can run one check synchronously (see ProviderClient)."""

    def run_check(self, check: Check, input_text: str) -> str: ...


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of running one check.

    Exactly one of ``result`` and ``error`` is set. Build instances with
    ``succeeded`` or ``failed``.

    Attributes:
        check_name: Name of the check this outcome belongs to
        result: Provider answer, when the check succeeded
        error: Failure, when the check failed
    """

    check_name: str
    result: str | None = None
    error: TerraInformError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError(
                f"CheckResult for '{self.check_name}' must have exactly one of result or error"
            )

    @classmethod
    def succeeded(cls, check_name: str, result: str) -> Self:
        """Successful outcome carrying the provider's answer."""
        return cls(check_name=check_name, result=result)

    @classmethod
    def failed(cls, check_name: str, error: TerraInformError) -> Self:
        """Failed outcome carrying the error."""
        return cls(check_name=check_name, error=error)

    @property
    def ok(self) -> bool:
        """True if the check succeeded."""
        return self.error is None


def dispatch(
    checks: Sequence[Check],
    input_text: str,
    client: CheckRunner,
    *,
    timeout_seconds: float | None = None,
    max_workers: int | None = None,
) -> list[CheckResult]:
    """
    Run a batch of checks concurrently and return results in input order.

    Args:
        checks: Checks to run; names must be unique
        input_text: Text every check analyzes
        client: Provider client shared by all tasks
        timeout_seconds: Deadline for the whole batch. Checks still running
            when it passes fail with CheckTimeoutError. None waits forever.
        max_workers: Upper bound on concurrently running checks. None runs
            every check at once.

    Returns:
        One CheckResult per check, with ``results[i].check_name ==
        checks[i].name``

    Raises:
        DuplicateCheckError: If two checks share a name
    """
    if not checks:
        return []

    ensure_unique_names(checks)

    if not input_text:
        log_with_context(
            logger,
            "info",
            "Nothing to analyze, skipping provider calls",
            check_count=len(checks),
        )
        return [CheckResult.failed(check.name, EmptyInputError(check.name)) for check in checks]

    workers = min(max_workers, len(checks)) if max_workers else len(checks)
    start = time.monotonic()

    log_with_context(
        logger,
        "info",
        "Dispatching checks",
        check_count=len(checks),
        max_workers=workers,
        timeout_seconds=timeout_seconds,
        input_chars=len(input_text),
    )

    completed: dict[str, CheckResult] = {}
    timed_out = False
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="terrainform-check")

    try:
        future_to_name: dict[Future[str], str] = {
            executor.submit(run_with_context(client.run_check), check, input_text): check.name
            for check in checks
        }

        try:
            for future in as_completed(future_to_name, timeout=timeout_seconds):
                name = future_to_name[future]
                completed[name] = _collect(future, name)
        except TimeoutError:
            timed_out = True
            # timeout_seconds is set whenever as_completed can time out
            deadline = timeout_seconds or 0.0
            for future, name in future_to_name.items():
                if name in completed:
                    continue
                if future.done():
                    completed[name] = _collect(future, name)
                else:
                    _ = future.cancel()
                    completed[name] = CheckResult.failed(name, CheckTimeoutError(name, deadline))
                    log_with_context(
                        logger,
                        "warning",
                        "Check timed out",
                        check_name=name,
                        timeout_seconds=deadline,
                    )
    finally:
        # A hung provider call must not block the caller past the deadline.
        executor.shutdown(wait=not timed_out, cancel_futures=True)

    results = [completed[check.name] for check in checks]

    failed = sum(1 for result in results if not result.ok)
    log_with_context(
        logger,
        "info",
        "Dispatch complete",
        check_count=len(results),
        succeeded=len(results) - failed,
        failed=failed,
        timed_out=timed_out,
        duration_seconds=round(time.monotonic() - start, 3),
    )
    return results


def _collect(future: Future[str], check_name: str) -> CheckResult:
    """Turn a finished future into a CheckResult."""
    exc = future.exception()
    if exc is None:
        value = future.result()
        if isinstance(value, str):
            log_with_context(
                logger,
                "debug",
                "Check succeeded",
                check_name=check_name,
            )
            return CheckResult.succeeded(check_name, value)
        exc = ProviderError(
            f"Check {check_name} returned {type(value).__name__} instead of text",
            check_name=check_name,
        )

    error: TerraInformError
    if isinstance(exc, TerraInformError):
        error = exc
    else:
        error = ProviderError(
            f"Unexpected error in check {check_name}: {exc}",
            check_name=check_name,
        )
        error.__cause__ = exc

    log_with_context(
        logger,
        "warning",
        "Check failed",
        check_name=check_name,
        error=str(error),
        error_type=type(exc).__name__,
        retryable=error.retryable,
    )
    return CheckResult.failed(check_name, error)
