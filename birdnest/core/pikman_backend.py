"""Pikman backend — wraps the PikaOS package manager.

pikman handles its own privilege escalation, and can install packages from
other distributions (AUR, Fedora, Alpine) through managed containers.
"""

from __future__ import annotations

import re
from typing import Sequence

from birdnest.core import apt_backend
from birdnest.core.models import PackageRecord

# "name current -> new", optionally "name: current -> new"
_ARROW_RE = re.compile(r"^(?P<name>[^\s:]+):?\s+(?P<current>\S+)\s+->\s+(?P<new>\S+)")


def install_command(names: Sequence[str], distro: str | None = None) -> list[str]:
    cmd = ["pikman", "install"]
    if distro:
        cmd.append(f"--{distro}")
    return cmd + list(names) + ["-y"]


def remove_command(names: Sequence[str], autoremove: bool = False) -> list[str]:
    cmd = ["pikman", "remove"] + list(names) + ["-y"]
    if autoremove:
        cmd.append("--autoremove")
    return cmd


def purge_command(names: Sequence[str]) -> list[str]:
    return ["pikman", "purge"] + list(names) + ["-y"]


def autoremove_command() -> list[str]:
    return ["pikman", "autoremove", "-y"]


def search_command(query: str) -> list[str]:
    return ["pikman", "search", query]


def refresh_command() -> list[str]:
    return ["pikman", "update"]


def list_upgradable_command() -> list[str]:
    return ["pikman", "list", "--upgradable"]


def upgrade_command(names: Sequence[str] = ()) -> list[str]:
    return ["pikman", "upgrade"] + list(names) + ["-y"]


def list_installed_command() -> list[str]:
    return ["pikman", "list", "--installed"]


def show_command(name: str) -> list[str]:
    return ["pikman", "show", name]


def clean_commands() -> list[list[str]]:
    return [["pikman", "clean"]]


# ── Container commands ──

def container_command(subcommand: str, args: Sequence[str] = (), name: str | None = None,
                      manager: str | None = None) -> list[str]:
    """Return argv for enter/export/init/log/run/upgrades/unexport."""
    cmd = ["pikman", subcommand] + list(args)
    if name and subcommand in ("export", "unexport"):
        cmd += ["--name", name]
    if manager and subcommand == "init":
        cmd += ["--manager", manager]
    return cmd


# ── Output parsing ──

def parse_upgradable(output: str) -> list[PackageRecord]:
    """Parse pikman's upgradable list.

    Native packages come back in apt's listing format; container packages
    use "name current -> new". Both shapes may appear in one output.
    """
    records = []
    for line in output.splitlines():
        match = _ARROW_RE.match(line.strip())
        if match:
            records.append(PackageRecord(
                name=match.group("name"),
                version=match.group("current"),
                upgradable=True,
                new_version=match.group("new"),
            ))
            continue
        record = apt_backend.parse_listing_line(line)
        if record and record.upgradable:
            records.append(record)
    return records


parse_listing = apt_backend.parse_listing
parse_search = apt_backend.parse_search
parse_show = apt_backend.parse_show
