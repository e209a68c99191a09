"""
Terraform subprocess execution.

Runs the terraform CLI with the user's terminal attached: stdin is inherited,
and stdout/stderr are streamed to the terminal as they arrive while a copy is
kept for analysis. Output is forwarded in raw chunks rather than lines so
that prompts without a trailing newline ("Enter a value:") still show up
immediately.

Usage:
    from terrainform.terraform_runner import TerraformRunner

    runner = TerraformRunner()
    result = runner.run(["plan"], capture_output=True)
    if result.succeeded:
        analyze(result.stdout)
"""

import codecs
import os
import subprocess
import sys
import tempfile
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TextIO

from terrainform.errors import TerraformCommandError
from terrainform.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one terraform invocation.

    Attributes:
        args: Arguments passed to terraform (without the binary)
        returncode: Process exit status
        stdout: Captured standard output (empty unless capture was requested)
        stderr: Captured standard error
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        """True if terraform exited with status 0."""
        return self.returncode == 0


class TerraformRunner:
    """
    Runs terraform commands and tees their output.

    Attributes:
        terraform_path: Path to the terraform binary
    """

    def __init__(
        self,
        terraform_path: str = "terraform",
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """
        Initialize terraform runner.

        Args:
            terraform_path: Path to terraform binary (default: "terraform" from PATH)
            stdout: Where terraform's stdout is echoed (default: sys.stdout at run time)
            stderr: Where terraform's stderr is echoed (default: sys.stderr at run time)
        """
        self.terraform_path: str = terraform_path
        self._stdout = stdout
        self._stderr = stderr

    def run(self, args: Sequence[str], capture_output: bool = False) -> CommandResult:
        """
        Run terraform with the given arguments.

        Standard error is always captured so failures can be analyzed.
        Standard output is captured only when ``capture_output`` is set;
        otherwise terraform writes straight to the terminal.

        Args:
            args: terraform arguments, e.g. ["plan", "-out=tfplan"]
            capture_output: Keep a copy of stdout in the result

        Returns:
            CommandResult with exit status and captured output

        Raises:
            TerraformCommandError: If the terraform binary cannot be started
        """
        command = [self.terraform_path, *args]
        out_sink = self._stdout or sys.stdout
        err_sink = self._stderr or sys.stderr

        log_with_context(
            logger,
            "info",
            "Running terraform",
            command=command,
            capture_output=capture_output,
        )

        try:
            process = subprocess.Popen(
                command,
                stdin=None,
                stdout=subprocess.PIPE if capture_output else None,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise TerraformCommandError(
                f"Terraform binary not found at '{self.terraform_path}'",
                command=command,
            ) from e
        except OSError as e:
            raise TerraformCommandError(
                f"Failed to start terraform: {e}",
                command=command,
            ) from e

        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        readers: list[threading.Thread] = []

        if process.stdout is not None:
            readers.append(_start_tee(process.stdout, out_sink, stdout_chunks, "stdout"))
        if process.stderr is not None:
            readers.append(_start_tee(process.stderr, err_sink, stderr_chunks, "stderr"))

        try:
            returncode = process.wait()
        except KeyboardInterrupt:
            # terraform receives the same SIGINT and shuts down on its own
            _ = process.wait()
            raise
        finally:
            for reader in readers:
                reader.join()

        log_with_context(
            logger,
            "info",
            "Terraform finished",
            command=command,
            returncode=returncode,
        )

        return CommandResult(
            args=tuple(args),
            returncode=returncode,
            stdout="".join(stdout_chunks),
            stderr="".join(stderr_chunks),
        )

    def create_plan_file(self) -> Path:
        """
        Reserve a temporary path for a saved plan.

        Returns:
            Path of an empty file that terraform will overwrite
        """
        fd, path = tempfile.mkstemp(prefix="tfplan-")
        os.close(fd)
        return Path(path)

    @staticmethod
    def remove_plan_file(path: Path) -> None:
        """Delete a saved plan, ignoring files that are already gone."""
        path.unlink(missing_ok=True)


def _start_tee(
    source: IO[bytes],
    sink: TextIO,
    chunks: list[str],
    stream_name: str,
) -> threading.Thread:
    """Start a daemon thread copying ``source`` to ``sink`` and ``chunks``."""
    thread = threading.Thread(
        target=_tee,
        args=(source, sink, chunks),
        name=f"terraform-{stream_name}",
        daemon=True,
    )
    thread.start()
    return thread


def _tee(source: IO[bytes], sink: TextIO, chunks: list[str]) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    read = getattr(source, "read1", source.read)
    with source:
        for raw in iter(lambda: read(_CHUNK_SIZE), b""):
            text = decoder.decode(raw)
            if text:
                chunks.append(text)
                _ = sink.write(text)
                sink.flush()
        tail = decoder.decode(b"", final=True)
        if tail:
            chunks.append(tail)
            _ = sink.write(tail)
            sink.flush()
