"""Process executor — runs external package tools and captures their output.

Only spawn-level problems are exceptional. A child that exits non-zero is a
normal ExecutionResult with success False; callers decide what that means.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, TextIO

from birdnest.core import privilege
from birdnest.core.errors import CommandFailed, SpawnError
from birdnest.core.logger import get_logger
from birdnest.core.models import ExecutionResult

_log = get_logger("executor")


@dataclass(frozen=True)
class RunOptions:
    capture_output: bool = True
    stream_live: bool = False
    working_dir: Path | None = None
    privileged: bool = False


BUFFERED = RunOptions()
LIVE = RunOptions(stream_live=True)
LIVE_PRIVILEGED = RunOptions(stream_live=True, privileged=True)
INTERACTIVE = RunOptions(capture_output=False, stream_live=True)


class ProcessExecutor:
    """Runs one command at a time and blocks until it exits."""

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def build_argv(self, command: str, args: Sequence[str], options: RunOptions) -> list[str]:
        if shutil.which(command) is None:
            raise SpawnError(command)
        argv = [command, *args]
        if options.privileged:
            argv = privilege.escalate(argv)
        return argv

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        options: RunOptions = BUFFERED,
    ) -> ExecutionResult:
        argv = self.build_argv(command, args, options)
        cwd = str(options.working_dir) if options.working_dir else None
        _log.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)
        start = time.monotonic()
        try:
            if options.stream_live and options.capture_output:
                result = self._run_streamed(argv, cwd)
            elif not options.capture_output:
                # Inherited stdio; nothing to collect
                proc = subprocess.run(argv, cwd=cwd)
                result = ExecutionResult(argv=argv, exit_code=proc.returncode)
            else:
                proc = subprocess.run(argv, cwd=cwd, capture_output=True, text=True, errors="replace")
                result = ExecutionResult(
                    argv=argv, exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr,
                )
        except FileNotFoundError as e:
            raise SpawnError(argv[0]) from e
        except OSError as e:
            raise SpawnError(argv[0], e.strerror or str(e)) from e

        result.duration = time.monotonic() - start
        if result.success:
            _log.debug("%s: exited 0 in %.1fs", command, result.duration)
        else:
            _log.warning("%s: exited with code %s", command, result.exit_code)
        return result

    def _run_streamed(self, argv: list[str], cwd: str | None) -> ExecutionResult:
        """Echo output line by line while collecting it; stderr is merged into stdout."""
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
        lines: list[str] = []
        echo = True
        try:
            for line in iter(proc.stdout.readline, ""):
                lines.append(line)
                if not echo:
                    continue
                try:
                    self.out.write(line)
                    self.out.flush()
                except (BrokenPipeError, ValueError):
                    # Reader went away; keep draining so the child can finish
                    _log.warning("%s: output stream closed, no longer echoing", argv[0])
                    echo = False
        finally:
            proc.stdout.close()
            proc.wait()
        return ExecutionResult(argv=argv, exit_code=proc.returncode, stdout="".join(lines))


def check(result: ExecutionResult) -> ExecutionResult:
    """Raise CommandFailed for a non-zero exit, else hand the result back."""
    if not result.success:
        raise CommandFailed(result.exit_code, result.stderr or result.stdout, result)
    return result
