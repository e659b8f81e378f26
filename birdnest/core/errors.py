"""Error taxonomy and process exit codes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from birdnest.core.models import ExecutionResult

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 5
EXIT_NO_BACKEND = 6
EXIT_CONFIG = 7
EXIT_SPAWN = 127

RESERVED_EXIT_CODES = frozenset(
    {EXIT_USAGE, EXIT_CANCELLED, EXIT_NO_BACKEND, EXIT_CONFIG, EXIT_SPAWN}
)


class BirdNestError(Exception):
    """Base class for every error BirdNest reports to the user."""

    exit_code = EXIT_FAILURE
    hint = ""


class SpawnError(BirdNestError):
    """The executable could not be located or launched."""

    exit_code = EXIT_SPAWN

    def __init__(self, command: str, reason: str = "") -> None:
        self.command = command
        self.reason = reason or "executable not found"
        super().__init__(f"Cannot run {command}: {self.reason}")


class NoBackendFound(BirdNestError):
    exit_code = EXIT_NO_BACKEND
    hint = "Install pikman or apt, or set package_manager in the config file."


class SandboxBackendUnavailable(BirdNestError):
    exit_code = EXIT_NO_BACKEND
    hint = "Install flatpak and make sure flatpak_enabled is true in the config file."


class ConfigError(BirdNestError):
    exit_code = EXIT_CONFIG


class UnsupportedOperation(BirdNestError):
    exit_code = EXIT_USAGE


class InvalidOperation(BirdNestError):
    exit_code = EXIT_USAGE


class UserCancelled(BirdNestError):
    """Not a failure: the user declined the confirmation prompt."""

    exit_code = EXIT_CANCELLED


class CommandFailed(BirdNestError):
    """The underlying tool ran and returned a non-zero exit status."""

    def __init__(self, exit_code: int, stderr: str = "", result: ExecutionResult | None = None) -> None:
        self.tool_exit_code = exit_code
        self.stderr = stderr
        self.result = result
        self.exit_code = mirror_exit_code(exit_code)
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        msg = f"Command failed with exit code {exit_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


def mirror_exit_code(code: int) -> int:
    """Map a child's exit code onto ours, keeping our reserved codes distinct."""
    if code <= 0 or code > 255 or code in RESERVED_EXIT_CODES:
        return EXIT_FAILURE
    return code
