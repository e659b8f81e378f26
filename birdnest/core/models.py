"""Shared data model: backends, operations, normalized records and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from birdnest.core.errors import InvalidOperation


@dataclass(frozen=True)
class Capabilities:
    supports_search: bool = True
    supports_autoremove: bool = True
    supports_list_upgradable: bool = True
    supports_distro_targets: bool = False
    supports_containers: bool = False


class BackendKind(Enum):
    PIKMAN = "pikman"
    APT = "apt"
    FLATPAK = "flatpak"

    @property
    def executable(self) -> str:
        return self.value

    @property
    def is_system(self) -> bool:
        return self is not BackendKind.FLATPAK

    @property
    def capabilities(self) -> Capabilities:
        return _CAPABILITIES[self]


_CAPABILITIES = {
    BackendKind.PIKMAN: Capabilities(supports_distro_targets=True, supports_containers=True),
    BackendKind.APT: Capabilities(),
    BackendKind.FLATPAK: Capabilities(),
}


class OperationKind(Enum):
    INSTALL = "install"
    REMOVE = "remove"
    SEARCH = "search"
    UPDATE = "update"
    UPGRADE = "upgrade"
    LIST = "list"
    SHOW = "show"
    CLEAN = "clean"
    STATUS = "status"
    AUTOREMOVE = "autoremove"
    PURGE = "purge"
    CONTAINER = "container"

    @property
    def is_mutating(self) -> bool:
        return self in _MUTATING

    @property
    def requires_targets(self) -> bool:
        return self in _NEEDS_TARGETS


_MUTATING = frozenset({
    OperationKind.INSTALL,
    OperationKind.REMOVE,
    OperationKind.UPGRADE,
    OperationKind.CLEAN,
    OperationKind.AUTOREMOVE,
    OperationKind.PURGE,
})

_NEEDS_TARGETS = frozenset({
    OperationKind.INSTALL,
    OperationKind.REMOVE,
    OperationKind.SEARCH,
    OperationKind.SHOW,
    OperationKind.PURGE,
})

DISTROS = ("aur", "fedora", "alpine")
CONTAINER_SUBCOMMANDS = ("enter", "export", "init", "log", "run", "upgrades", "unexport")


@dataclass(frozen=True)
class Operation:
    """A backend-agnostic description of what the user asked for."""
    kind: OperationKind
    targets: tuple[str, ...] = ()
    flatpak: bool = False
    assume_yes: bool = False
    autoremove: bool = False
    upgradable_only: bool = False
    distro: str | None = None
    subcommand: str = ""
    extra: tuple[str, ...] = ()
    # Skip detection and use this system tool
    system_backend: BackendKind | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "targets", tuple(self.targets))
        object.__setattr__(self, "extra", tuple(self.extra))
        for target in self.targets:
            if not isinstance(target, str) or not target.strip():
                raise InvalidOperation("Package names must be non-empty strings")
        if self.kind.requires_targets and not self.targets:
            raise InvalidOperation(f"No packages specified for {self.kind.value}")
        if self.distro is not None and self.distro not in DISTROS:
            raise InvalidOperation(f"Unknown distro {self.distro!r}; expected one of {', '.join(DISTROS)}")
        if self.kind is OperationKind.CONTAINER and self.subcommand not in CONTAINER_SUBCOMMANDS:
            raise InvalidOperation(f"Unknown pikman command {self.subcommand!r}")
        if self.system_backend is not None:
            if not self.system_backend.is_system:
                raise InvalidOperation(f"{self.system_backend.value} is not a system package manager")
            if self.flatpak:
                raise InvalidOperation(f"Cannot combine {self.system_backend.value} with flatpak")

    @property
    def is_mutating(self) -> bool:
        return self.kind.is_mutating

    def summary(self, backend: BackendKind) -> str:
        """One-line description used by the confirmation prompt."""
        verb = self.kind.value.capitalize()
        noun = "flatpak(s)" if backend is BackendKind.FLATPAK else "package(s)"
        if self.targets:
            what = f"{len(self.targets)} {noun}: {', '.join(self.targets)}"
        elif self.kind is OperationKind.UPGRADE:
            what = f"all {noun}"
        elif self.kind is OperationKind.AUTOREMOVE:
            what = f"unused {noun}"
        else:
            what = "package cache"
        extras = []
        if self.distro:
            extras.append(f"from {self.distro}")
        if self.autoremove:
            extras.append("and unused dependencies")
        tail = f" {' '.join(extras)}" if extras else ""
        return f"{verb} {what}{tail} using {backend.value}?"


@dataclass
class PackageRecord:
    """Normalized package row produced by every backend parser."""
    name: str
    version: str = ""
    upgradable: bool = False
    new_version: str = ""
    description: str = ""
    origin: str = ""

    @property
    def current_version(self) -> str:
        return self.version


@dataclass
class ExecutionResult:
    """Outcome of one external command."""
    argv: list[str] = field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    records: list[PackageRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def merge(cls, results: Sequence[ExecutionResult]) -> ExecutionResult:
        """Fold sequential runs into one result; the last run decides the exit code."""
        merged = cls()
        for res in results:
            merged.argv = res.argv
            merged.exit_code = res.exit_code
            merged.stdout += res.stdout
            merged.stderr += res.stderr
            merged.duration += res.duration
            merged.records.extend(res.records)
        return merged


@dataclass
class UpdateReport:
    refreshed: bool = False
    upgradable: list[PackageRecord] = field(default_factory=list)
    output: str = ""
