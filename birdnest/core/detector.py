"""Backend detector — finds which package tools exist on this host.

Probing only checks the search path; nothing is executed. Results are
memoized so one process never switches backend kind halfway through.
"""

from __future__ import annotations

import shutil
from typing import Callable

from birdnest.core.config import Config
from birdnest.core.errors import NoBackendFound, SandboxBackendUnavailable
from birdnest.core.logger import get_logger
from birdnest.core.models import BackendKind

_log = get_logger("detector")

# Preference order when package_manager is "auto": distribution tool first.
SYSTEM_BACKEND_PRIORITY: tuple[BackendKind, ...] = (BackendKind.PIKMAN, BackendKind.APT)


class BackendDetector:
    def __init__(self, config: Config, which: Callable[[str], str | None] = shutil.which) -> None:
        self._config = config
        self._which = which
        self._system: BackendKind | None = None
        self._sandbox_checked = False

    def _candidates(self) -> tuple[BackendKind, ...]:
        forced = self._config.forced_backend
        if forced is None:
            return SYSTEM_BACKEND_PRIORITY
        return (BackendKind(forced),)

    def detect_system_backend(self) -> BackendKind:
        if self._system is not None:
            return self._system
        candidates = self._candidates()
        for kind in candidates:
            if self._which(kind.executable):
                _log.info("System backend: %s", kind.value)
                self._system = kind
                return kind
        names = " or ".join(k.value for k in candidates)
        raise NoBackendFound(f"No supported package manager found ({names})")

    def detect_sandboxed_app_backend(self) -> None:
        if self._sandbox_checked:
            return
        if not self._config.flatpak_enabled:
            raise SandboxBackendUnavailable("Flatpak support is disabled in the config file")
        if not self._which(BackendKind.FLATPAK.executable):
            raise SandboxBackendUnavailable("flatpak is not installed")
        _log.debug("Sandboxed app backend: flatpak")
        self._sandbox_checked = True

    def is_present(self, kind: BackendKind) -> bool:
        return bool(self._which(kind.executable))
