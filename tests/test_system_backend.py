"""
Tests for SystemPackageBackend command mapping and failure handling.
"""

import pytest

from birdnest.core.errors import CommandFailed, UnsupportedOperation
from birdnest.core.executor import BUFFERED, INTERACTIVE, LIVE, LIVE_PRIVILEGED
from birdnest.core.models import BackendKind, Operation, OperationKind as K
from birdnest.core.system_backend import SystemPackageBackend, needs_privilege


@pytest.mark.parametrize("op, expected", [
    (Operation(K.INSTALL, ("vim", "git")), ["pikman", "install", "vim", "git", "-y"]),
    (Operation(K.INSTALL, ("yay",), distro="aur"), ["pikman", "install", "--aur", "yay", "-y"]),
    (Operation(K.REMOVE, ("vim",)), ["pikman", "remove", "vim", "-y"]),
    (Operation(K.REMOVE, ("vim",), autoremove=True), ["pikman", "remove", "vim", "-y", "--autoremove"]),
    (Operation(K.PURGE, ("vim",)), ["pikman", "purge", "vim", "-y"]),
    (Operation(K.AUTOREMOVE), ["pikman", "autoremove", "-y"]),
    (Operation(K.SEARCH, ("htop",)), ["pikman", "search", "htop"]),
    (Operation(K.UPDATE), ["pikman", "update"]),
    (Operation(K.UPGRADE), ["pikman", "upgrade", "-y"]),
    (Operation(K.UPGRADE, ("vim",)), ["pikman", "upgrade", "vim", "-y"]),
    (Operation(K.LIST), ["pikman", "list", "--installed"]),
    (Operation(K.LIST, upgradable_only=True), ["pikman", "list", "--upgradable"]),
    (Operation(K.SHOW, ("vim",)), ["pikman", "show", "vim"]),
    (Operation(K.CLEAN), ["pikman", "clean"]),
])
def test_pikman_argv(executor, op, expected):
    SystemPackageBackend(BackendKind.PIKMAN, executor).execute(op)
    assert executor.argvs == [expected]


@pytest.mark.parametrize("op, expected", [
    (Operation(K.INSTALL, ("vim", "git")), ["apt", "install", "-y", "vim", "git"]),
    (Operation(K.REMOVE, ("vim",)), ["apt", "remove", "-y", "vim"]),
    (Operation(K.REMOVE, ("vim",), autoremove=True), ["apt", "remove", "-y", "vim", "--autoremove"]),
    (Operation(K.PURGE, ("vim",)), ["apt", "purge", "-y", "vim"]),
    (Operation(K.AUTOREMOVE), ["apt", "autoremove", "-y"]),
    (Operation(K.SEARCH, ("htop",)), ["apt", "search", "htop"]),
    (Operation(K.UPDATE), ["apt", "update"]),
    (Operation(K.UPGRADE), ["apt", "upgrade", "-y"]),
    (Operation(K.UPGRADE, ("vim",)), ["apt", "install", "--only-upgrade", "-y", "vim"]),
    (Operation(K.LIST), ["dpkg", "-l"]),
    (Operation(K.LIST, upgradable_only=True), ["apt", "list", "--upgradable"]),
    (Operation(K.SHOW, ("vim",)), ["apt", "show", "vim"]),
])
def test_apt_argv(executor, op, expected):
    SystemPackageBackend(BackendKind.APT, executor).execute(op)
    assert executor.argvs == [expected]


class TestPrivilege:
    def test_pikman_never_escalates(self):
        for action in ("install", "remove", "update", "search"):
            assert not needs_privilege(BackendKind.PIKMAN, action)

    def test_apt_queries_run_unprivileged(self):
        for action in ("search", "list", "list_upgradable", "show"):
            assert not needs_privilege(BackendKind.APT, action)

    def test_apt_mutations_escalate(self):
        for action in ("install", "remove", "purge", "update", "upgrade", "clean", "autoremove"):
            assert needs_privilege(BackendKind.APT, action)

    def test_apt_install_uses_privileged_live_run(self, executor):
        SystemPackageBackend(BackendKind.APT, executor).install(["vim"])
        assert executor.calls[0][1] is LIVE_PRIVILEGED

    def test_apt_search_is_buffered(self, executor):
        SystemPackageBackend(BackendKind.APT, executor).search("vim")
        assert executor.calls[0][1] is BUFFERED

    def test_pikman_install_is_live_unprivileged(self, executor):
        SystemPackageBackend(BackendKind.PIKMAN, executor).install(["vim"])
        assert executor.calls[0][1] is LIVE


class TestQueries:
    def test_list_upgradable_parses_records(self, executor, sample):
        executor.respond(["apt", "list", "--upgradable"], stdout=sample("apt_list_upgradable.txt"))
        result = SystemPackageBackend(BackendKind.APT, executor).list_upgradable()
        assert [r.name for r in result.records] == ["firefox", "libssl3", "mesa-vulkan-drivers"]

    def test_apt_list_uses_dpkg_parser(self, executor, sample):
        executor.respond(["dpkg", "-l"], stdout=sample("dpkg_list.txt"))
        result = SystemPackageBackend(BackendKind.APT, executor).list_packages()
        assert [r.name for r in result.records] == ["adduser", "libc6", "pinned"]

    def test_search_joins_terms(self, executor):
        SystemPackageBackend(BackendKind.APT, executor).execute(Operation(K.SEARCH, ("text", "editor")))
        assert executor.argvs == [["apt", "search", "text editor"]]

    def test_show_parses_details(self, executor, sample):
        executor.respond(["apt", "show", "htop"], stdout=sample("apt_show.txt"))
        result = SystemPackageBackend(BackendKind.APT, executor).show("htop")
        assert result.records[0].version == "3.3.0-4build1"


class TestFailures:
    def test_nonzero_exit_raises_with_tool_code(self, executor):
        executor.respond(["apt", "install", "-y", "nope"], exit_code=100,
                         stderr="E: Unable to locate package nope\n")
        backend = SystemPackageBackend(BackendKind.APT, executor)
        with pytest.raises(CommandFailed) as exc:
            backend.install(["nope"])
        assert exc.value.tool_exit_code == 100
        assert exc.value.exit_code == 100
        assert "Unable to locate package nope" in str(exc.value)

    def test_reserved_exit_code_is_not_mirrored(self, executor):
        executor.respond(["pikman", "update"], exit_code=6)
        with pytest.raises(CommandFailed) as exc:
            SystemPackageBackend(BackendKind.PIKMAN, executor).refresh()
        assert exc.value.exit_code == 1

    def test_clean_runs_both_commands(self, executor):
        result = SystemPackageBackend(BackendKind.APT, executor).clean()
        assert executor.argvs == [["apt", "clean"], ["apt", "autoclean"]]
        assert result.success
        assert result.argv == ["apt", "autoclean"]

    def test_clean_stops_at_first_failure(self, executor):
        executor.respond(["apt", "clean"], exit_code=100)
        with pytest.raises(CommandFailed):
            SystemPackageBackend(BackendKind.APT, executor).clean()
        assert executor.argvs == [["apt", "clean"]]

    def test_distro_flag_needs_pikman(self, executor):
        with pytest.raises(UnsupportedOperation):
            SystemPackageBackend(BackendKind.APT, executor).install(["yay"], distro="aur")
        assert executor.calls == []

    def test_flatpak_is_not_a_system_backend(self, executor):
        with pytest.raises(ValueError):
            SystemPackageBackend(BackendKind.FLATPAK, executor)


class TestContainers:
    def test_enter_is_interactive(self, executor):
        backend = SystemPackageBackend(BackendKind.PIKMAN, executor)
        backend.execute(Operation(K.CONTAINER, ("arch",), subcommand="enter"))
        assert executor.calls == [(["pikman", "enter", "arch"], INTERACTIVE)]

    def test_run_passes_command_through(self, executor):
        backend = SystemPackageBackend(BackendKind.PIKMAN, executor)
        backend.execute(Operation(K.CONTAINER, ("arch", "ls", "-la"), subcommand="run"))
        assert executor.argvs == [["pikman", "run", "arch", "ls", "-la"]]

    def test_export_with_name(self, executor):
        backend = SystemPackageBackend(BackendKind.PIKMAN, executor)
        backend.execute(Operation(K.CONTAINER, ("firefox",), subcommand="export", extra=("--name", "arch")))
        assert executor.calls == [(["pikman", "export", "firefox", "--name", "arch"], LIVE)]

    def test_init_with_manager(self, executor):
        backend = SystemPackageBackend(BackendKind.PIKMAN, executor)
        backend.execute(Operation(K.CONTAINER, ("box",), subcommand="init", extra=("--manager", "fedora")))
        assert executor.argvs == [["pikman", "init", "box", "--manager", "fedora"]]

    def test_log_takes_no_arguments(self, executor):
        backend = SystemPackageBackend(BackendKind.PIKMAN, executor)
        backend.execute(Operation(K.CONTAINER, subcommand="log"))
        assert executor.argvs == [["pikman", "log"]]

    def test_containers_need_pikman(self, executor):
        backend = SystemPackageBackend(BackendKind.APT, executor)
        with pytest.raises(UnsupportedOperation):
            backend.execute(Operation(K.CONTAINER, subcommand="upgrades"))
        assert executor.calls == []
