"""Update orchestrator — refresh, list and apply updates for one backend."""

from __future__ import annotations

from typing import Sequence

from birdnest.core.errors import CommandFailed
from birdnest.core.logger import get_logger
from birdnest.core.models import ExecutionResult, UpdateReport

_log = get_logger("updates")


class UpdateOrchestrator:
    """Works with SystemPackageBackend and FlatpakBackend alike."""

    def __init__(self, backend) -> None:
        self.backend = backend

    def check_updates(self) -> UpdateReport:
        """Refresh indices, then list upgradable packages.

        A failed refresh does not stop the listing: the report is built from
        the stale indices and marked refreshed=False. A failed listing
        propagates.
        """
        report = UpdateReport()
        try:
            self.backend.refresh()
            report.refreshed = True
        except CommandFailed as e:
            _log.warning("Index refresh failed (%s), listing from stale indices", e)
        listing = self.backend.list_upgradable()
        report.upgradable = listing.records
        report.output = listing.stdout
        _log.info(
            "%s: %d upgradable package(s), refreshed=%s",
            self.backend.kind.value, len(report.upgradable), report.refreshed,
        )
        return report

    def apply_updates(self, targets: Sequence[str] | None = None) -> ExecutionResult:
        return self.backend.upgrade(tuple(targets or ()))
