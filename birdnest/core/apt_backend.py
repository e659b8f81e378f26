"""Apt backend — argv builders for apt/dpkg and parsers for their output."""

from __future__ import annotations

import re
from typing import Sequence

from birdnest.core.models import PackageRecord

# name/suite[,now] version [arch] [flags]
_LISTING_RE = re.compile(
    r"^(?P<name>[^\s/]+)/(?P<origin>\S+)\s+(?P<version>\S+)"
    r"(?:\s+(?P<arch>[^\s\[]+))?(?:\s+\[(?P<flags>[^\]]*)\])?\s*$"
)
_UPGRADABLE_FROM_RE = re.compile(r"upgradable from:\s*(?P<old>\S+)")
_DPKG_STATUS_RE = re.compile(r"^[uirph][ncuhiftwp][ R]?$")


def install_command(names: Sequence[str]) -> list[str]:
    return ["apt", "install", "-y"] + list(names)


def remove_command(names: Sequence[str], autoremove: bool = False) -> list[str]:
    cmd = ["apt", "remove", "-y"] + list(names)
    if autoremove:
        cmd.append("--autoremove")
    return cmd


def purge_command(names: Sequence[str]) -> list[str]:
    return ["apt", "purge", "-y"] + list(names)


def autoremove_command() -> list[str]:
    return ["apt", "autoremove", "-y"]


def search_command(query: str) -> list[str]:
    return ["apt", "search", query]


def refresh_command() -> list[str]:
    return ["apt", "update"]


def list_upgradable_command() -> list[str]:
    return ["apt", "list", "--upgradable"]


def upgrade_command(names: Sequence[str] = ()) -> list[str]:
    """Upgrade everything, or only the named packages when given."""
    if not names:
        return ["apt", "upgrade", "-y"]
    return ["apt", "install", "--only-upgrade", "-y"] + list(names)


def list_installed_command() -> list[str]:
    return ["dpkg", "-l"]


def show_command(name: str) -> list[str]:
    return ["apt", "show", name]


def clean_commands() -> list[list[str]]:
    """Cache cleanup runs two commands, in order."""
    return [["apt", "clean"], ["apt", "autoclean"]]


def parse_listing_line(line: str) -> PackageRecord | None:
    match = _LISTING_RE.match(line.strip())
    if not match:
        return None
    origin = match.group("origin").split(",")[0]
    version = match.group("version")
    flags = match.group("flags") or ""
    upgraded = _UPGRADABLE_FROM_RE.search(flags)
    if upgraded:
        return PackageRecord(
            name=match.group("name"), version=upgraded.group("old"),
            upgradable=True, new_version=version, origin=origin,
        )
    return PackageRecord(name=match.group("name"), version=version, origin=origin)


def parse_listing(output: str) -> list[PackageRecord]:
    """Parse `apt list` style output; banner and warning lines are skipped."""
    records = []
    for line in output.splitlines():
        record = parse_listing_line(line)
        if record:
            records.append(record)
    return records


def parse_upgradable(output: str) -> list[PackageRecord]:
    return [r for r in parse_listing(output) if r.upgradable]


def parse_search(output: str) -> list[PackageRecord]:
    """Parse `apt search` output: a listing line followed by indented description lines."""
    records: list[PackageRecord] = []
    current: PackageRecord | None = None
    for line in output.splitlines():
        if not line.strip():
            current = None
            continue
        if line[0].isspace():
            if current is not None:
                text = line.strip()
                current.description = f"{current.description} {text}".strip()
            continue
        current = parse_listing_line(line)
        if current:
            records.append(current)
    return records


def parse_dpkg_list(output: str) -> list[PackageRecord]:
    """Parse `dpkg -l`; only rows whose status says installed are kept."""
    records = []
    for line in output.splitlines():
        parts = line.split(None, 4)
        if len(parts) < 3 or not _DPKG_STATUS_RE.match(parts[0]):
            continue
        if parts[0][1] != "i":
            continue
        name = parts[1].split(":", 1)[0]
        records.append(PackageRecord(
            name=name,
            version=parts[2],
            description=parts[4].strip() if len(parts) > 4 else "",
        ))
    return records


def parse_show(output: str) -> list[PackageRecord]:
    """Parse the first `Key: value` block of `apt show`."""
    fields: dict[str, str] = {}
    current_key = ""
    for line in output.splitlines():
        if not line.strip():
            if fields:
                break
            continue
        if line[0].isspace():
            # Long descriptions wrap onto indented lines
            if current_key == "Description":
                fields[current_key] = f"{fields[current_key]} {line.strip()}"
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        current_key = key.strip()
        fields[current_key] = value.strip()

    name = fields.get("Package") or fields.get("Name")
    if not name:
        return []
    origin = fields.get("Origin") or fields.get("APT-Sources") or fields.get("Source", "")
    return [PackageRecord(
        name=name,
        version=fields.get("Version", ""),
        description=fields.get("Description", ""),
        origin=origin,
    )]
