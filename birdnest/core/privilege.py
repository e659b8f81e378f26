"""Privilege escalation helper: run as-is when root, else pkexec (graphical) or sudo."""

from __future__ import annotations

import os
import shutil
from typing import Mapping, Sequence

from birdnest.core.errors import SpawnError
from birdnest.core.logger import get_logger

_log = get_logger("privilege")

GUI_ENV_VARS = ("DISPLAY", "XAUTHORITY", "WAYLAND_DISPLAY")


def is_root() -> bool:
    return os.geteuid() == 0


def has_pkexec() -> bool:
    return shutil.which("pkexec") is not None


def has_sudo() -> bool:
    return shutil.which("sudo") is not None


def in_graphical_session(env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    return bool(env.get("DISPLAY") or env.get("WAYLAND_DISPLAY"))


def escalate(cmd: Sequence[str], env: Mapping[str, str] | None = None) -> list[str]:
    """Return cmd prefixed with whatever is needed to run it as root.

    pkexec is preferred inside a graphical session so the polkit dialog can
    ask for the password; sudo is used on a plain terminal.
    """
    if is_root():
        return list(cmd)
    env = os.environ if env is None else env
    if in_graphical_session(env) and has_pkexec():
        _log.info("Elevated privileges required, using pkexec")
        # pkexec clears the environment; hand the display variables through env(1)
        passthrough = [f"{k}={env[k]}" for k in GUI_ENV_VARS if env.get(k)]
        if passthrough:
            return ["pkexec", "env", *passthrough, *cmd]
        return ["pkexec", *cmd]
    if has_sudo():
        _log.info("Elevated privileges required, using sudo")
        return ["sudo", *cmd]
    raise SpawnError(cmd[0], "sudo is not available; install sudo or run as root")
