"""
CLI interface for terra-inform.

Wraps the terraform CLI. ``plan`` and ``apply`` output is captured and sent
through the configured analysis checks; every other command is passed
straight through. When terraform fails, its error output is summarized.

Usage:
    terra-inform [-p PROVIDER] [-m MODEL] [-c CHECKS] [terraform global options] <command> [args...]
    terra-inform -m gpt-4o-mini plan
    terra-inform apply
    terra-inform -chdir=infra plan
    terrasummary plan
"""

import argparse
import sys
from collections.abc import Sequence
from typing import TextIO

from terrainform import __version__
from terrainform.checks import Check, Summarizer, build_checks
from terrainform.config import Settings, get_settings
from terrainform.dispatcher import dispatch
from terrainform.errors import ConfigurationError, TerraformCommandError, TerraInformError
from terrainform.logging_config import LogContext, get_logger, log_with_context, setup_logging
from terrainform.provider_client import ProviderClient
from terrainform.providers import PROVIDERS, create_provider
from terrainform.renderer import render_error_analysis, render_header, render_results
from terrainform.terraform_runner import CommandResult, TerraformRunner

logger = get_logger(__name__)

AUTO_APPROVE_FLAG = "-auto-approve"
DETAILED_EXITCODE_FLAG = "-detailed-exitcode"
ANALYZED_COMMANDS = frozenset({"plan", "apply"})
WRAPPER_VALUE_OPTIONS = frozenset({"-p", "--provider", "-m", "--model", "--log-level"})
CHECKS_OPTIONS = frozenset({"-c", "--checks"})
WRAPPER_SWITCHES = frozenset({"-h", "--help", "--version"})
CONFIRMATION_PROMPT = (
    "\nDo you want to perform these actions? Only 'yes' will be accepted to approve.\n\n"
    "Enter a value: "
)


class TerraInform:
    """
    Runs terraform commands and analyzes their output.

    Attributes:
        settings: Effective settings (environment plus command-line overrides)
        runner: Terraform runner
        client: Provider client shared by all checks
        checks: Checks to run on plan/apply output
    """

    def __init__(
        self,
        settings: Settings,
        runner: TerraformRunner,
        client: ProviderClient,
        checks: Sequence[Check],
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.settings: Settings = settings
        self.runner: TerraformRunner = runner
        self.client: ProviderClient = client
        self.checks: list[Check] = list(checks)
        self._stdin = stdin
        self._stdout = stdout

    @property
    def stdin(self) -> TextIO:
        return self._stdin or sys.stdin

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    def execute(self, terraform_args: Sequence[str]) -> int:
        """
        Run one terraform command line.

        Global options such as ``-chdir=DIR`` may precede the subcommand and
        are kept in front of it on every terraform invocation.

        Args:
            terraform_args: Arguments for terraform

        Returns:
            Process exit code
        """
        args = list(terraform_args)
        index = subcommand_index(args)

        if index is None or args[index] not in ANALYZED_COMMANDS:
            return self._run(args, capture_output=False)

        if args[index] == "apply" and AUTO_APPROVE_FLAG not in args:
            return self._plan_then_apply(args[:index], args[index + 1 :])

        return self._run(args, capture_output=True)

    def analyze(self, output: str) -> None:
        """
        Run every configured check on captured terraform output and print the results.

        Args:
            output: Captured terraform stdout
        """
        if not output.strip():
            log_with_context(logger, "info", "Nothing to analyze")
            return

        render_header(self.client.provider_name, self.client.model_name, self.stdout)
        results = dispatch(
            self.checks,
            output,
            self.client,
            timeout_seconds=self.settings.check_timeout_seconds,
            max_workers=self.settings.max_workers,
        )
        render_results(results, self.stdout)

    def analyze_error(self, error_output: str) -> None:
        """
        Summarize terraform's error output.

        Provider failures are logged, not printed: the terraform error itself
        has already been shown to the user.

        Args:
            error_output: Captured terraform stderr
        """
        if not error_output.strip():
            return

        print("\n🔍 Analyzing error...", file=self.stdout)
        [result] = dispatch(
            [Summarizer()],
            error_output,
            self.client,
            timeout_seconds=self.settings.check_timeout_seconds,
        )
        if result.ok and result.result is not None:
            render_error_analysis(result.result, self.stdout)
        else:
            log_with_context(
                logger,
                "warning",
                "Error analysis failed",
                error=str(result.error),
            )

    def _run(self, args: list[str], capture_output: bool) -> int:
        result = self.runner.run(args, capture_output=capture_output)

        if not _is_success(result):
            self.analyze_error(result.stderr)
            print(f"\nError running terraform: exit status {result.returncode}", file=self.stdout)
            return result.returncode

        if capture_output:
            self.analyze(result.stdout)
        return result.returncode

    def _plan_then_apply(self, global_args: list[str], extra_args: list[str]) -> int:
        """
        Save a plan, analyze it, ask for confirmation, then apply the saved plan.

        The plan file is removed on every path out of this method.
        """
        plan_file = self.runner.create_plan_file()
        try:
            plan_code = self._run(
                [*global_args, "plan", f"-out={plan_file}", *extra_args], capture_output=True
            )
            if plan_code != 0:
                return plan_code

            print(CONFIRMATION_PROMPT, end="", file=self.stdout)
            self.stdout.flush()
            response = self.stdin.readline().strip()

            if response != "yes":
                print("Apply cancelled.", file=self.stdout)
                return 0

            return self._run(
                [*global_args, "apply", AUTO_APPROVE_FLAG, str(plan_file)], capture_output=False
            )
        finally:
            self.runner.remove_plan_file(plan_file)


def _is_success(result: CommandResult) -> bool:
    # -detailed-exitcode reports "changes present" as exit status 2
    if result.returncode == 2 and DETAILED_EXITCODE_FLAG in result.args:
        return True
    return result.succeeded


def subcommand_index(terraform_args: Sequence[str]) -> int | None:
    """Return the position of the terraform subcommand, skipping global options."""
    for index, arg in enumerate(terraform_args):
        if not arg.startswith("-"):
            return index
    return None


def split_arguments(
    argv: Sequence[str],
    value_options: frozenset[str],
    switches: frozenset[str] = WRAPPER_SWITCHES,
) -> tuple[list[str], list[str]]:
    """
    Split a command line into wrapper options and terraform arguments.

    Only exact wrapper option names are taken, so terraform's single-dash
    options such as ``-chdir=DIR`` are never read as abbreviations. The
    first token that is not a wrapper option starts the terraform part;
    a ``--`` token ends the wrapper part and is dropped.

    Args:
        argv: Full command line, without the program name
        value_options: Wrapper options that take a value
        switches: Wrapper options that take no value

    Returns:
        Tuple of (wrapper arguments, terraform arguments)
    """
    wrapper: list[str] = []
    index = 0
    while index < len(argv):
        token = argv[index]
        if token == "--":
            return wrapper, list(argv[index + 1 :])

        if token.startswith("--") and "=" in token:
            if token.split("=", 1)[0] in value_options:
                wrapper.append(token)
                index += 1
                continue
            break

        if token in value_options:
            wrapper.extend(argv[index : index + 2])
            index += 2
            continue

        if token in switches:
            wrapper.append(token)
            index += 1
            continue

        break

    return wrapper, list(argv[index:])


def build_parser(prog: str, description: str) -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Wrapper flags must come before the terraform arguments. The parser only
    ever sees the wrapper part produced by ``split_arguments``.
    """
    parser = argparse.ArgumentParser(
        prog=prog,
        description=description,
        epilog=(
            f"Examples:\n  {prog} -m gpt-4o-mini plan\n  {prog} apply\n"
            f"  {prog} -chdir=infra plan"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    _ = parser.add_argument(
        "-p",
        "--provider",
        help=f"AI provider to use ({', '.join(sorted(PROVIDERS))}; default: openai)",
    )
    _ = parser.add_argument(
        "-m",
        "--model",
        help="Model name to use (default: gpt-4o)",
    )
    _ = parser.add_argument(
        "--log-level",
        help="Logging level (default: WARNING)",
    )
    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    _ = parser.add_argument(
        "terraform_args",
        nargs=argparse.REMAINDER,
        help="terraform command and arguments",
    )
    return parser


def run(
    argv: Sequence[str] | None,
    prog: str,
    description: str,
    fixed_checks: Sequence[str] | None = None,
) -> int:
    """
    Shared entry point for terra-inform and terrasummary.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])
        prog: Program name for help output
        description: Help description
        fixed_checks: Check names to run regardless of configuration

    Returns:
        Exit code
    """
    parser = build_parser(prog, description)
    value_options = WRAPPER_VALUE_OPTIONS
    if fixed_checks is None:
        value_options = value_options | CHECKS_OPTIONS
        _ = parser.add_argument(
            "-c",
            "--checks",
            help="Comma-separated checks to run (default: summarizer,downtime-analyzer)",
        )

    wrapper_args, terraform_args = split_arguments(
        sys.argv[1:] if argv is None else argv, value_options
    )
    args = parser.parse_args(wrapper_args)
    if not terraform_args:
        parser.print_help()
        return 0

    overrides: dict[str, object] = {}
    if args.provider:
        overrides["model_provider"] = args.provider
    if args.model:
        overrides["model_name"] = args.model
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "checks", None):
        overrides["checks"] = args.checks

    try:
        settings = load_settings(overrides)
    except TerraInformError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level)

    with LogContext():
        try:
            checks = build_checks(fixed_checks or settings.check_names)
            client = create_provider(settings.provider_config())
        except TerraInformError as e:
            log_with_context(
                logger,
                "error",
                "Startup failed",
                error=str(e),
                error_type=type(e).__name__,
                **e.context,
            )
            print(f"Error: {e}", file=sys.stderr)
            return 1

        app = TerraInform(
            settings=settings,
            runner=TerraformRunner(settings.terraform_path),
            client=client,
            checks=checks,
        )

        try:
            return app.execute(terraform_args)
        except TerraformCommandError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            return 130


def load_settings(overrides: dict[str, object]) -> Settings:
    """
    Load settings from the environment with command-line overrides applied.

    Overrides go through the same validation as environment values.

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    if not overrides:
        return get_settings()
    try:
        return Settings(**overrides)  # pyright: ignore[reportArgumentType]
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid option: {e}", reason=str(e)) from e


def main(argv: Sequence[str] | None = None) -> int:
    """terra-inform entry point."""
    return run(
        argv,
        prog="terra-inform",
        description="terra-inform: An AI-powered wrapper for Terraform CLI",
    )


def summary_main(argv: Sequence[str] | None = None) -> int:
    """terrasummary entry point: summarizer only."""
    return run(
        argv,
        prog="terrasummary",
        description="terrasummary: AI summaries of Terraform plan output",
        fixed_checks=["summarizer"],
    )


if __name__ == "__main__":
    sys.exit(main())
