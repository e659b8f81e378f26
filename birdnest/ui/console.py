"""Terminal presentation: status lines, record tables and the y/N prompt."""

from __future__ import annotations

import re
from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from birdnest.core.dispatcher import Outcome, OutcomeStatus
from birdnest.core.models import Operation, OperationKind, PackageRecord

console = Console()
err_console = Console(stderr=True)

# Progress and warning lines the package tools print around their real output
_BANNER_RE = re.compile(
    r"^(?:Listing|Sorting|Full Text Search|Reading package lists|Building dependency tree"
    r"|Reading state information|Looking for updates)\.\.\.|^WARNING:|^N: |^Application ID\t"
)


def print_success(message: str) -> None:
    console.print(f"[green]✓[/] {escape(message)}", soft_wrap=True)


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/] {escape(message)}", soft_wrap=True)


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/] {escape(message)}", soft_wrap=True)


def print_error(message: str) -> None:
    err_console.print(f"[red]✗[/] {escape(message)}", soft_wrap=True)


class TerminalPrompter:
    """Asks on the terminal; anything but an explicit yes declines."""

    def __init__(self, con: Console | None = None) -> None:
        self.console = con or console

    def confirm(self, message: str) -> bool:
        return Confirm.ask(f"[bold yellow]{message}[/]", default=False, console=self.console)


def records_table(records: Sequence[PackageRecord], title: str = "", upgrades: bool = False) -> Table:
    table = Table(title=title or None, show_lines=False, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    if upgrades:
        table.add_column("Current")
        table.add_column("New", style="green")
        for rec in records:
            table.add_row(escape(rec.name), escape(rec.current_version or "?"), escape(rec.new_version))
        return table
    table.add_column("Version")
    table.add_column("Origin", style="dim")
    table.add_column("Description", overflow="fold")
    for rec in records:
        table.add_row(escape(rec.name), escape(rec.version), escape(rec.origin), escape(rec.description))
    return table


def show_details(record: PackageRecord) -> None:
    console.print(f"[bold]Name:[/] {escape(record.name)}")
    if record.version:
        console.print(f"[bold]Version:[/] {escape(record.version)}")
    if record.origin:
        console.print(f"[bold]Origin:[/] {escape(record.origin)}")
    if record.description:
        console.print(f"[bold]Description:[/] {escape(record.description)}")


_DONE = {
    OperationKind.INSTALL: "Successfully installed {n} {noun}",
    OperationKind.REMOVE: "Successfully removed {n} {noun}",
    OperationKind.PURGE: "Successfully purged {n} {noun}",
    OperationKind.UPGRADE: "{Noun} upgraded",
    OperationKind.UPDATE: "Package lists updated",
    OperationKind.CLEAN: "Cache cleaned",
    OperationKind.AUTOREMOVE: "Unused packages removed",
}


def report(outcome: Outcome) -> None:
    """Print the outcome of one dispatched operation."""
    op = outcome.operation
    if outcome.status is OutcomeStatus.CANCELLED:
        print_info(outcome.message)
        return
    if not outcome.ok:
        print_error(outcome.message)
        if outcome.hint:
            err_console.print(f"  [dim]{outcome.hint}[/]")
        return

    kind = op.kind
    backend = outcome.backend.value if outcome.backend else "?"
    if kind is OperationKind.STATUS:
        console.print(f"[bold]Package Manager:[/] {backend}")
        if not outcome.report.refreshed:
            print_warning("Could not refresh package lists; showing cached information")
        _print_records(outcome, "Upgradable packages", upgrades=True, empty="Everything is up to date")
        return
    if kind is OperationKind.LIST and op.upgradable_only:
        _print_records(outcome, upgrades=True, empty="Everything is up to date")
        return
    if kind is OperationKind.SHOW:
        if outcome.records:
            show_details(outcome.records[0])
        else:
            _print_raw(outcome.result.stdout)
        return
    if kind is OperationKind.LIST:
        _print_records(outcome)
        return
    if kind is OperationKind.SEARCH:
        _print_records(outcome, info=f"No packages found matching '{' '.join(op.targets)}'")
        return
    if kind is OperationKind.CONTAINER:
        message = _container_message(op)
        if message:
            print_success(message)
        return
    template = _DONE.get(kind)
    if template:
        noun = "flatpak(s)" if op.flatpak else "package(s)"
        print_success(template.format(n=len(op.targets), noun=noun, Noun=noun.capitalize()))


def _raw_output(outcome: Outcome) -> str:
    if outcome.report is not None:
        return outcome.report.output
    return outcome.result.stdout if outcome.result is not None else ""


def leftover_lines(output: str) -> list[str]:
    """Lines of tool output that are neither blank nor a known progress banner."""
    return [line for line in output.splitlines() if line.strip() and not _BANNER_RE.match(line)]


def _print_raw(output: str) -> None:
    if not output:
        return
    console.print(output, end="" if output.endswith("\n") else "\n", markup=False, highlight=False)


def _print_records(outcome: Outcome, title: str = "", upgrades: bool = False,
                   empty: str = "", info: str = "") -> None:
    """Print parsed records, or the tool's own output when none could be parsed."""
    if outcome.records:
        console.print(records_table(outcome.records, title, upgrades=upgrades))
        return
    output = _raw_output(outcome)
    if leftover_lines(output):
        print_warning("Could not read the package tool's output; showing it unchanged")
        _print_raw(output)
    elif empty:
        print_success(empty)
    elif info:
        print_info(info)


def _container_message(op: Operation) -> str:
    sub = op.subcommand
    if sub == "export":
        return f"Desktop entry exported for {op.targets[0]}"
    if sub == "unexport":
        return f"Desktop entry removed for {op.targets[0]}"
    if sub == "init":
        return f"Container {op.targets[0]} initialized"
    return ""
