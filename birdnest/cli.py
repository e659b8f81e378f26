"""Command-line interface: parse arguments into an Operation and dispatch it."""

from __future__ import annotations

import argparse
from dataclasses import asdict
from typing import Sequence

from birdnest import __version__
from birdnest.core import config as config_mod
from birdnest.core.dispatcher import Dispatcher
from birdnest.core.errors import EXIT_OK, EXIT_USAGE, ConfigError, InvalidOperation
from birdnest.core.logger import get_log_path, get_logger, setup_logging
from birdnest.core.models import BackendKind, Operation, OperationKind
from birdnest.ui import console

_log = get_logger("cli")

DESCRIPTION = """\
A unified package manager for PikaOS supporting pikman, apt, and flatpak.

Pikman can install packages from other distributions:
  --aur: Install Arch packages (including from the AUR)
  --fedora: Install Fedora packages
  --alpine: Install Alpine packages
"""

DIALOG_COMMANDS = {
    "install-dialog": OperationKind.INSTALL,
    "remove-dialog": OperationKind.REMOVE,
}

# Shortcut commands: the operation they run and the fields they pin
SHORTCUTS = {
    "pikman-search": (OperationKind.SEARCH, {"system_backend": BackendKind.PIKMAN}),
    "flatpak-install": (OperationKind.INSTALL, {"flatpak": True}),
    "flatpak-search": (OperationKind.SEARCH, {"flatpak": True}),
    "flatpak-update": (OperationKind.UPDATE, {"flatpak": True}),
}


def _flatpak(p: argparse.ArgumentParser, help_text: str = "Use flatpak instead of the system package manager") -> None:
    p.add_argument("-f", "--flatpak", action="store_true", help=help_text)


def _yes(p: argparse.ArgumentParser) -> None:
    p.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="birdnest",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--config", metavar="PATH", help="Use this config file instead of the default")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("install", help="Install packages")
    p.add_argument("packages", nargs="+", help="Package names to install")
    _flatpak(p)
    distro = p.add_mutually_exclusive_group()
    distro.add_argument("--aur", dest="distro", action="store_const", const="aur",
                        help="Install Arch packages (including from the AUR) via pikman")
    distro.add_argument("--fedora", dest="distro", action="store_const", const="fedora",
                        help="Install Fedora packages via pikman")
    distro.add_argument("--alpine", dest="distro", action="store_const", const="alpine",
                        help="Install Alpine packages via pikman")
    _yes(p)

    p = sub.add_parser("remove", help="Remove packages")
    p.add_argument("packages", nargs="+", help="Package names to remove")
    _flatpak(p)
    _yes(p)
    p.add_argument("-a", "--autoremove", action="store_true", help="Remove unused dependencies")

    p = sub.add_parser("search", help="Search for packages")
    p.add_argument("query", help="Search query")
    _flatpak(p, "Search in flatpak repositories")

    p = sub.add_parser("pikman-search", help="Search for packages using pikman")
    p.add_argument("query", help="Search query")

    p = sub.add_parser("update", help="Update package lists")
    _flatpak(p, "Update flatpak metadata")

    p = sub.add_parser("upgrade", help="Upgrade installed packages")
    p.add_argument("packages", nargs="*", help="Package names to upgrade (if empty, upgrade all)")
    _flatpak(p)
    _yes(p)

    p = sub.add_parser("list", help="List installed packages")
    p.add_argument("-u", "--upgradable", action="store_true", help="Show only upgradable packages")
    _flatpak(p)

    p = sub.add_parser("show", help="Show package information")
    p.add_argument("package", help="Package name")
    _flatpak(p)

    p = sub.add_parser("clean", help="Clean package cache")
    _flatpak(p, "Remove unused flatpak runtimes")
    _yes(p)

    p = sub.add_parser("status", help="Show package manager status and available upgrades")
    _flatpak(p)

    p = sub.add_parser("autoremove", help="Remove all unused packages")
    _flatpak(p)
    _yes(p)

    p = sub.add_parser("purge", help="Fully purge packages, including their configuration")
    p.add_argument("packages", nargs="+", help="Package names to purge")
    _flatpak(p)
    _yes(p)

    p = sub.add_parser("flatpak-install", help="Install flatpak packages")
    p.add_argument("packages", nargs="+", help="Flatpak package names to install")
    _yes(p)

    p = sub.add_parser("flatpak-search", help="Search for flatpak packages")
    p.add_argument("query", help="Search query")

    sub.add_parser("flatpak-update", help="Update flatpak repositories")

    _add_pikman_parser(sub)
    _add_config_parser(sub)

    for name, kind in DIALOG_COMMANDS.items():
        p = sub.add_parser(name, help=f"Show the graphical {kind.value} dialog")
        p.add_argument("packages", nargs="+", help=f"Package names to {kind.value}")
        p.add_argument("--flatpak", action="store_true", help="Mark packages as flatpak")

    return parser


def _add_pikman_parser(sub) -> None:
    pk = sub.add_parser("pikman", help="Pikman-specific commands (containers, autoremove, purge)")
    pk_sub = pk.add_subparsers(dest="pikman_command", metavar="SUBCOMMAND", required=True)

    p = pk_sub.add_parser("autoremove", help="Remove all unused packages")
    _yes(p)

    p = pk_sub.add_parser("enter", help="Enter the container instance for a package manager")
    p.add_argument("name", help="Container name")

    p = pk_sub.add_parser("export", help="Export/recreate a program's desktop entry from the container")
    p.add_argument("package", help="Package name")
    p.add_argument("-n", "--name", help="Container name")

    p = pk_sub.add_parser("init", help="Initialize a managed container")
    p.add_argument("name", help="Container name")
    p.add_argument("-m", "--manager", choices=("arch", "fedora", "alpine"), help="Package manager type")

    pk_sub.add_parser("log", help="Show package manager logs")

    p = pk_sub.add_parser("purge", help="Fully purge a package")
    p.add_argument("packages", nargs="+", help="Package names to purge")
    _yes(p)

    p = pk_sub.add_parser("run", help="Run a command inside a managed container")
    p.add_argument("name", help="Container name")
    p.add_argument("cmd", nargs=argparse.REMAINDER, help="Command to run")

    pk_sub.add_parser("upgrades", help="List the available upgrades")

    p = pk_sub.add_parser("unexport", help="Unexport/remove a program's desktop entry")
    p.add_argument("package", help="Package name")
    p.add_argument("-n", "--name", help="Container name")


def _add_config_parser(sub) -> None:
    cfg = sub.add_parser("config", help="Show or change settings")
    cfg_sub = cfg.add_subparsers(dest="config_command", metavar="ACTION", required=True)
    cfg_sub.add_parser("show", help="Print the current settings")
    p = cfg_sub.add_parser("set", help="Change one setting")
    p.add_argument("key", choices=sorted(config_mod.DEFAULTS), help="Setting name")
    p.add_argument("value", help="New value")
    cfg_sub.add_parser("path", help="Print the config and log file locations")


def _pikman_operation(args: argparse.Namespace) -> Operation:
    sub = args.pikman_command
    if sub == "autoremove":
        return Operation(OperationKind.AUTOREMOVE, assume_yes=args.yes, system_backend=BackendKind.PIKMAN)
    if sub == "purge":
        return Operation(OperationKind.PURGE, tuple(args.packages), assume_yes=args.yes,
                         system_backend=BackendKind.PIKMAN)
    extra: tuple[str, ...] = ()
    if sub in ("enter", "init"):
        targets = (args.name,)
    elif sub in ("export", "unexport"):
        targets = (args.package,)
    elif sub == "run":
        if not args.cmd:
            raise InvalidOperation("No command specified")
        targets = (args.name, *args.cmd)
    else:
        targets = ()
    if getattr(args, "name", None) and sub in ("export", "unexport"):
        extra = ("--name", args.name)
    if getattr(args, "manager", None):
        extra = ("--manager", args.manager)
    return Operation(OperationKind.CONTAINER, targets, subcommand=sub, extra=extra,
                     system_backend=BackendKind.PIKMAN)


def operation_from_args(args: argparse.Namespace) -> Operation:
    """Translate parsed arguments into the Operation the dispatcher runs."""
    command = args.command
    if command == "pikman":
        return _pikman_operation(args)
    if command in DIALOG_COMMANDS:
        return Operation(DIALOG_COMMANDS[command], tuple(args.packages), flatpak=args.flatpak)

    kind, pinned = SHORTCUTS.get(command, (None, {}))
    kind = kind or OperationKind(command)
    if kind is OperationKind.SEARCH:
        targets = (args.query,)
    elif kind is OperationKind.SHOW:
        targets = (args.package,)
    else:
        targets = tuple(getattr(args, "packages", None) or ())
    fields = dict(
        flatpak=getattr(args, "flatpak", False),
        assume_yes=getattr(args, "yes", False),
        autoremove=getattr(args, "autoremove", False),
        upgradable_only=getattr(args, "upgradable", False),
        distro=getattr(args, "distro", None),
    )
    fields.update(pinned)
    return Operation(kind, targets, **fields)


def run_config(args: argparse.Namespace) -> int:
    path = config_mod.config_path(args.config)
    if args.config_command == "path":
        console.console.print(f"Config: {path}", soft_wrap=True)
        console.console.print(f"Log:    {get_log_path()}", soft_wrap=True)
        return EXIT_OK
    current = config_mod.load_config(path)
    if args.config_command == "show":
        for key, value in asdict(current).items():
            console.console.print(f"{key} = {str(value).lower() if isinstance(value, bool) else value}")
        return EXIT_OK
    updated = config_mod.with_value(current, args.key, args.value)
    config_mod.save_config(updated, path)
    console.print_success(f"{args.key} set to {getattr(updated, args.key)}")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)
    _log.debug("Arguments: %s", argv)

    if args.command is None:
        parser.print_help()
        return EXIT_USAGE

    try:
        if args.command == "config":
            return run_config(args)
        config = config_mod.load_config(args.config)
        operation = operation_from_args(args)
    except (ConfigError, InvalidOperation) as e:
        console.print_error(str(e))
        return e.exit_code

    if args.command in DIALOG_COMMANDS:
        from birdnest.app import run_dialog

        return run_dialog(operation, config).exit_code

    dispatcher = Dispatcher(config, console.TerminalPrompter())
    outcome = dispatcher.dispatch(operation)
    console.report(outcome)
    return outcome.exit_code
