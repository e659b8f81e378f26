"""System package backend — routes unified operations to pikman or apt."""

from __future__ import annotations

from typing import Callable, Sequence

from birdnest.core import apt_backend, pikman_backend
from birdnest.core.errors import UnsupportedOperation
from birdnest.core.executor import (
    BUFFERED, INTERACTIVE, LIVE, LIVE_PRIVILEGED, ProcessExecutor, RunOptions, check,
)
from birdnest.core.logger import get_logger
from birdnest.core.models import BackendKind, ExecutionResult, Operation, OperationKind, PackageRecord

_log = get_logger("system_backend")

_TOOLS = {
    BackendKind.PIKMAN: pikman_backend,
    BackendKind.APT: apt_backend,
}

_INTERACTIVE_CONTAINER_COMMANDS = ("enter", "run")


def needs_privilege(kind: BackendKind, action: str = "install") -> bool:
    """Check if a backend action needs privilege escalation."""
    if kind == BackendKind.PIKMAN:
        return False  # pikman handles its own privilege
    if kind == BackendKind.APT:
        return action not in ("search", "list", "list_upgradable", "show")
    return False


class SystemPackageBackend:
    """One instance per process, bound to the detected BackendKind."""

    def __init__(self, kind: BackendKind, executor: ProcessExecutor | None = None) -> None:
        if kind not in _TOOLS:
            raise ValueError(f"{kind.value} is not a system package backend")
        self.kind = kind
        self.executor = executor or ProcessExecutor()
        self._tool = _TOOLS[kind]

    @property
    def capabilities(self):
        return self.kind.capabilities

    def _options(self, action: str, live: bool) -> RunOptions:
        if not live:
            return BUFFERED
        return LIVE_PRIVILEGED if needs_privilege(self.kind, action) else LIVE

    def _run(self, argv: Sequence[str], action: str, live: bool = True) -> ExecutionResult:
        result = self.executor.run(argv[0], argv[1:], self._options(action, live))
        return check(result)

    def _query(self, argv: Sequence[str], action: str,
               parser: Callable[[str], list[PackageRecord]]) -> ExecutionResult:
        result = self._run(argv, action, live=False)
        result.records = parser(result.stdout)
        _log.debug("%s %s: parsed %d record(s)", self.kind.value, action, len(result.records))
        return result

    # ── Operations ──

    def install(self, targets: Sequence[str], distro: str | None = None) -> ExecutionResult:
        if distro:
            if not self.capabilities.supports_distro_targets:
                raise UnsupportedOperation(
                    "Distro-specific flags (--aur, --fedora, --alpine) only work with pikman"
                )
            return self._run(pikman_backend.install_command(targets, distro), "install")
        return self._run(self._tool.install_command(targets), "install")

    def remove(self, targets: Sequence[str], autoremove: bool = False) -> ExecutionResult:
        return self._run(self._tool.remove_command(targets, autoremove), "remove")

    def purge(self, targets: Sequence[str]) -> ExecutionResult:
        return self._run(self._tool.purge_command(targets), "purge")

    def autoremove(self) -> ExecutionResult:
        return self._run(self._tool.autoremove_command(), "autoremove")

    def search(self, query: str) -> ExecutionResult:
        return self._query(self._tool.search_command(query), "search", self._tool.parse_search)

    def refresh(self) -> ExecutionResult:
        """Refresh package indices; never touches installed packages."""
        return self._run(self._tool.refresh_command(), "update")

    def list_upgradable(self) -> ExecutionResult:
        """Read-only query against the current indices; never refreshes them."""
        return self._query(
            self._tool.list_upgradable_command(), "list_upgradable", self._tool.parse_upgradable,
        )

    def upgrade(self, targets: Sequence[str] = ()) -> ExecutionResult:
        return self._run(self._tool.upgrade_command(targets), "upgrade")

    def list_packages(self) -> ExecutionResult:
        parser = apt_backend.parse_dpkg_list if self.kind == BackendKind.APT else pikman_backend.parse_listing
        return self._query(self._tool.list_installed_command(), "list", parser)

    def show(self, target: str) -> ExecutionResult:
        return self._query(self._tool.show_command(target), "show", self._tool.parse_show)

    def clean(self) -> ExecutionResult:
        results = []
        # Sequential; stop at the first failure
        for argv in self._tool.clean_commands():
            results.append(self._run(argv, "clean"))
        return ExecutionResult.merge(results)

    def container(self, subcommand: str, args: Sequence[str] = (), name: str | None = None,
                  manager: str | None = None) -> ExecutionResult:
        if not self.capabilities.supports_containers:
            raise UnsupportedOperation(
                f"'pikman {subcommand}' needs pikman, but the system backend is {self.kind.value}"
            )
        argv = pikman_backend.container_command(subcommand, args, name=name, manager=manager)
        options = INTERACTIVE if subcommand in _INTERACTIVE_CONTAINER_COMMANDS else LIVE
        return check(self.executor.run(argv[0], argv[1:], options))

    def execute(self, op: Operation) -> ExecutionResult:
        """Run an Operation; STATUS and UPDATE reports are the orchestrator's job."""
        kind = op.kind
        if kind is OperationKind.INSTALL:
            return self.install(op.targets, op.distro)
        if kind is OperationKind.REMOVE:
            return self.remove(op.targets, op.autoremove)
        if kind is OperationKind.PURGE:
            return self.purge(op.targets)
        if kind is OperationKind.AUTOREMOVE:
            return self.autoremove()
        if kind is OperationKind.SEARCH:
            return self.search(" ".join(op.targets))
        if kind is OperationKind.UPDATE:
            return self.refresh()
        if kind is OperationKind.UPGRADE:
            return self.upgrade(op.targets)
        if kind is OperationKind.LIST:
            return self.list_upgradable() if op.upgradable_only else self.list_packages()
        if kind is OperationKind.SHOW:
            return self.show(op.targets[0])
        if kind is OperationKind.CLEAN:
            return self.clean()
        if kind is OperationKind.CONTAINER:
            name, manager = _container_options(op)
            return self.container(op.subcommand, op.targets, name=name, manager=manager)
        raise UnsupportedOperation(f"{kind.value} is not a single backend command")


def _container_options(op: Operation) -> tuple[str | None, str | None]:
    """Container flags travel in Operation.extra as ("--name", value) pairs."""
    opts = dict(zip(op.extra[::2], op.extra[1::2]))
    return opts.get("--name"), opts.get("--manager")
