"""Flatpak backend — manages sandboxed applications through the flatpak CLI.

Scoped to application IDs. Availability is checked before every operation so
a missing or disabled flatpak is reported without ever spawning a process.
"""

from __future__ import annotations

import shutil
from typing import Callable, Sequence

from birdnest.core.errors import SandboxBackendUnavailable, UnsupportedOperation
from birdnest.core.executor import BUFFERED, LIVE, ProcessExecutor, check
from birdnest.core.logger import get_logger
from birdnest.core.models import BackendKind, ExecutionResult, Operation, OperationKind, PackageRecord

_log = get_logger("flatpak_backend")

LIST_COLUMNS = "application,name,version,branch,origin"
SEARCH_COLUMNS = "application,name,description,version,branch,remotes"
UPDATES_COLUMNS = "application,version"


def is_available() -> bool:
    """Check if flatpak is installed."""
    return shutil.which("flatpak") is not None


def install_command(app_ids: Sequence[str]) -> list[str]:
    return ["flatpak", "install", "-y"] + list(app_ids)


def remove_command(app_ids: Sequence[str]) -> list[str]:
    return ["flatpak", "uninstall", "-y"] + list(app_ids)


def purge_command(app_ids: Sequence[str]) -> list[str]:
    return ["flatpak", "uninstall", "-y", "--delete-data"] + list(app_ids)


def unused_command() -> list[str]:
    """Remove runtimes and extensions no installed app needs."""
    return ["flatpak", "uninstall", "--unused", "-y"]


def search_command(query: str) -> list[str]:
    return ["flatpak", "search", f"--columns={SEARCH_COLUMNS}", query]


def refresh_command() -> list[str]:
    """Refresh appstream metadata only; installed apps are left alone."""
    return ["flatpak", "update", "--appstream"]


def list_updates_command() -> list[str]:
    return ["flatpak", "remote-ls", "--updates", "--app", f"--columns={UPDATES_COLUMNS}"]


def update_command(app_ids: Sequence[str] = ()) -> list[str]:
    """Update all Flatpak apps, or only the given ones."""
    return ["flatpak", "update", "-y"] + list(app_ids)


def list_installed_command() -> list[str]:
    return ["flatpak", "list", "--app", f"--columns={LIST_COLUMNS}"]


def info_command(app_id: str) -> list[str]:
    return ["flatpak", "info", app_id]


# ── Output parsing ──

def _columns(line: str) -> list[str] | None:
    if not line.strip() or "\t" not in line:
        return None
    return [p.strip() for p in line.split("\t")]


def parse_list(output: str) -> list[PackageRecord]:
    """Parse `flatpak list --columns=application,name,version,branch,origin`."""
    apps = []
    for line in output.splitlines():
        parts = _columns(line)
        if not parts or parts[0] == "Application ID":
            continue
        apps.append(PackageRecord(
            name=parts[0],
            version=parts[2] if len(parts) > 2 else "",
            description=parts[1] if len(parts) > 1 else "",
            origin=parts[4] if len(parts) > 4 else "",
        ))
    return apps


def parse_search(output: str) -> list[PackageRecord]:
    """Parse `flatpak search` with the SEARCH_COLUMNS layout."""
    apps = []
    for line in output.splitlines():
        parts = _columns(line)
        if not parts or parts[0] == "Application ID":
            continue
        name = parts[1] if len(parts) > 1 else ""
        desc = parts[2] if len(parts) > 2 else ""
        apps.append(PackageRecord(
            name=parts[0],
            version=parts[3] if len(parts) > 3 else "",
            description=f"{name} - {desc}" if name and desc else name or desc,
            origin=parts[5] if len(parts) > 5 else "",
        ))
    return apps


def parse_updates(output: str, installed: Sequence[PackageRecord] = ()) -> list[PackageRecord]:
    """Parse `flatpak remote-ls --updates`; current versions come from the installed list."""
    current = {app.name: app.version for app in installed}
    records = []
    for line in output.splitlines():
        parts = _columns(line) or line.split()
        if not parts or parts[0] == "Application ID":
            continue
        app_id = parts[0]
        if "." not in app_id:
            continue
        records.append(PackageRecord(
            name=app_id,
            version=current.get(app_id, ""),
            upgradable=True,
            new_version=parts[1] if len(parts) > 1 else "",
        ))
    return records


def parse_info(output: str) -> list[PackageRecord]:
    """Parse `flatpak info`: a "Name - summary" title then right-aligned "Key: value" rows."""
    fields: dict[str, str] = {}
    title = ""
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        key, sep, value = stripped.partition(":")
        if sep and key and " " not in key.strip():
            fields[key.strip()] = value.strip()
        elif not title and not fields:
            title = stripped
    app_id = fields.get("ID", "")
    if not app_id and fields.get("Ref"):
        # app/org.example.App/x86_64/stable
        ref = fields["Ref"].split("/")
        app_id = ref[1] if len(ref) > 1 else ""
    if not app_id:
        return []
    return [PackageRecord(
        name=app_id,
        version=fields.get("Version", ""),
        description=title,
        origin=fields.get("Origin", ""),
    )]


class FlatpakBackend:
    """Sandboxed application backend, usable only when enabled and installed."""

    kind = BackendKind.FLATPAK

    def __init__(
        self,
        executor: ProcessExecutor | None = None,
        enabled: bool = True,
        available: Callable[[], bool] = is_available,
    ) -> None:
        self.executor = executor or ProcessExecutor()
        self.enabled = enabled
        self._available = available

    @property
    def capabilities(self):
        return self.kind.capabilities

    def ensure_available(self) -> None:
        if not self.enabled:
            raise SandboxBackendUnavailable("Flatpak support is disabled in the config file")
        if not self._available():
            raise SandboxBackendUnavailable("flatpak is not installed")

    def _run(self, argv: Sequence[str]) -> ExecutionResult:
        self.ensure_available()
        return check(self.executor.run(argv[0], argv[1:], LIVE))

    def _query(self, argv: Sequence[str], parser: Callable[[str], list[PackageRecord]]) -> ExecutionResult:
        self.ensure_available()
        result = check(self.executor.run(argv[0], argv[1:], BUFFERED))
        result.records = parser(result.stdout)
        _log.debug("flatpak %s: parsed %d record(s)", argv[1], len(result.records))
        return result

    def install(self, app_ids: Sequence[str]) -> ExecutionResult:
        return self._run(install_command(app_ids))

    def remove(self, app_ids: Sequence[str]) -> ExecutionResult:
        return self._run(remove_command(app_ids))

    def purge(self, app_ids: Sequence[str]) -> ExecutionResult:
        return self._run(purge_command(app_ids))

    def autoremove(self) -> ExecutionResult:
        return self._run(unused_command())

    def search(self, query: str) -> ExecutionResult:
        return self._query(search_command(query), parse_search)

    def refresh(self) -> ExecutionResult:
        return self._run(refresh_command())

    def list_packages(self) -> ExecutionResult:
        return self._query(list_installed_command(), parse_list)

    def list_upgradable(self) -> ExecutionResult:
        installed = self.list_packages().records
        return self._query(list_updates_command(), lambda out: parse_updates(out, installed))

    def upgrade(self, app_ids: Sequence[str] = ()) -> ExecutionResult:
        return self._run(update_command(app_ids))

    def show(self, app_id: str) -> ExecutionResult:
        return self._query(info_command(app_id), parse_info)

    def clean(self) -> ExecutionResult:
        return self._run(unused_command())

    def execute(self, op: Operation) -> ExecutionResult:
        kind = op.kind
        if op.distro:
            raise UnsupportedOperation("Distro-specific flags (--aur, --fedora, --alpine) only work with pikman")
        if kind is OperationKind.REMOVE and op.autoremove:
            # flatpak has no per-app autoremove; drop unused runtimes afterwards
            return ExecutionResult.merge([self.remove(op.targets), self.autoremove()])
        if kind is OperationKind.INSTALL:
            return self.install(op.targets)
        if kind is OperationKind.REMOVE:
            return self.remove(op.targets)
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
        raise UnsupportedOperation(f"{kind.value} is not available for flatpak")
