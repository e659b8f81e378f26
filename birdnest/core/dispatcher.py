"""Command dispatcher — resolves the backend, gates mutations, runs and reports.

Each dispatch walks a small state machine:

    PARSED -> BACKEND_RESOLVED -> [CONFIRMATION_PENDING] -> EXECUTING -> REPORTED

Resolution failures and declined confirmations jump straight to REPORTED.
This is the only place where errors become user-facing messages and exit
codes; everything below it raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from birdnest.core.config import Config
from birdnest.core.detector import BackendDetector
from birdnest.core.errors import (
    EXIT_CANCELLED, EXIT_OK, BirdNestError, CommandFailed, NoBackendFound, UnsupportedOperation,
    UserCancelled,
)
from birdnest.core.executor import ProcessExecutor
from birdnest.core.flatpak_backend import FlatpakBackend
from birdnest.core.logger import get_logger
from birdnest.core.models import (
    BackendKind, ExecutionResult, Operation, OperationKind, PackageRecord, UpdateReport,
)
from birdnest.core.system_backend import SystemPackageBackend
from birdnest.core.updates import UpdateOrchestrator

_log = get_logger("dispatcher")


class State(Enum):
    PARSED = "parsed"
    BACKEND_RESOLVED = "backend_resolved"
    CONFIRMATION_PENDING = "confirmation_pending"
    EXECUTING = "executing"
    REPORTED = "reported"


class OutcomeStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"        # the package tool ran and failed
    CANCELLED = "cancelled"  # the user said no
    ERROR = "error"          # BirdNest could not run the operation


class Prompter(Protocol):
    def confirm(self, message: str) -> bool: ...


@dataclass
class Outcome:
    operation: Operation
    status: OutcomeStatus
    exit_code: int = EXIT_OK
    backend: BackendKind | None = None
    result: ExecutionResult | None = None
    report: UpdateReport | None = None
    error: BirdNestError | None = None
    message: str = ""
    hint: str = ""
    history: list[State] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def records(self) -> list[PackageRecord]:
        if self.report is not None:
            return self.report.upgradable
        if self.result is not None:
            return self.result.records
        return []


class Dispatcher:
    """Runs one Operation per call against the backend it needs."""

    def __init__(
        self,
        config: Config,
        prompter: Prompter,
        executor: ProcessExecutor | None = None,
        detector: BackendDetector | None = None,
    ) -> None:
        self.config = config
        self.prompter = prompter
        self.executor = executor or ProcessExecutor()
        self.detector = detector or BackendDetector(config)
        self.history: list[State] = []
        self._system: SystemPackageBackend | None = None
        self._flatpak: FlatpakBackend | None = None
        self._named: dict[BackendKind, SystemPackageBackend] = {}

    @property
    def state(self) -> State | None:
        return self.history[-1] if self.history else None

    def _enter(self, state: State) -> None:
        _log.debug("state: %s", state.value)
        self.history.append(state)

    # ── Backend resolution ──

    def system_backend(self) -> SystemPackageBackend:
        if self._system is None:
            kind = self.detector.detect_system_backend()
            self._system = SystemPackageBackend(kind, self.executor)
        return self._system

    def flatpak_backend(self) -> FlatpakBackend:
        if self._flatpak is None:
            self.detector.detect_sandboxed_app_backend()
            self._flatpak = FlatpakBackend(
                self.executor,
                enabled=self.config.flatpak_enabled,
                available=lambda: self.detector.is_present(BackendKind.FLATPAK),
            )
        return self._flatpak

    def named_backend(self, kind: BackendKind) -> SystemPackageBackend:
        """A system backend the user picked by name, bypassing the priority list."""
        if self._system is not None and self._system.kind is kind:
            return self._system
        if kind not in self._named:
            if not self.detector.is_present(kind):
                raise NoBackendFound(f"{kind.value} is not installed")
            self._named[kind] = SystemPackageBackend(kind, self.executor)
        return self._named[kind]

    def resolve_backend(self, op: Operation):
        if op.flatpak:
            backend = self.flatpak_backend()
        elif op.system_backend is not None:
            backend = self.named_backend(op.system_backend)
        else:
            backend = self.system_backend()
        self._validate(op, backend)
        return backend

    @staticmethod
    def _validate(op: Operation, backend) -> None:
        caps = backend.capabilities
        if op.kind is OperationKind.SEARCH and not caps.supports_search:
            raise UnsupportedOperation(f"{backend.kind.value} cannot search")
        if (op.autoremove or op.kind is OperationKind.AUTOREMOVE) and not caps.supports_autoremove:
            raise UnsupportedOperation(f"{backend.kind.value} cannot remove unused packages")
        if op.upgradable_only and not caps.supports_list_upgradable:
            raise UnsupportedOperation(f"{backend.kind.value} cannot list upgradable packages")
        if op.distro and not caps.supports_distro_targets:
            raise UnsupportedOperation(
                "Distro-specific flags (--aur, --fedora, --alpine) only work with pikman"
            )
        if op.kind is OperationKind.CONTAINER and not caps.supports_containers:
            raise UnsupportedOperation(
                f"'pikman {op.subcommand}' needs pikman, but the backend is {backend.kind.value}"
            )

    # ── Confirmation gate ──

    def requires_confirmation(self, op: Operation) -> bool:
        return op.is_mutating and not (self.config.auto_confirm or op.assume_yes)

    def _confirm(self, op: Operation, kind: BackendKind) -> bool:
        try:
            return bool(self.prompter.confirm(op.summary(kind)))
        except (EOFError, KeyboardInterrupt):
            return False

    # ── Execution ──

    def _execute(self, op: Operation, backend) -> tuple[ExecutionResult | None, UpdateReport | None]:
        orchestrator = UpdateOrchestrator(backend)
        if op.kind is OperationKind.STATUS:
            return None, orchestrator.check_updates()
        if op.kind is OperationKind.UPGRADE:
            return orchestrator.apply_updates(op.targets), None
        return backend.execute(op), None

    def dispatch(self, op: Operation) -> Outcome:
        self.history = []
        self._enter(State.PARSED)
        _log.info("dispatch %s targets=%s flatpak=%s", op.kind.value, list(op.targets), op.flatpak)

        try:
            backend = self.resolve_backend(op)
        except BirdNestError as e:
            return self._report_error(op, e, None)
        self._enter(State.BACKEND_RESOLVED)

        if self.requires_confirmation(op):
            self._enter(State.CONFIRMATION_PENDING)
            if not self._confirm(op, backend.kind):
                _log.info("%s cancelled at confirmation", op.kind.value)
                return self._report(Outcome(
                    op, OutcomeStatus.CANCELLED, exit_code=EXIT_CANCELLED, backend=backend.kind,
                    error=UserCancelled(), message=f"{op.kind.value.capitalize()} cancelled",
                ))

        self._enter(State.EXECUTING)
        try:
            result, report = self._execute(op, backend)
        except BirdNestError as e:
            return self._report_error(op, e, backend.kind)
        return self._report(Outcome(
            op, OutcomeStatus.SUCCESS, backend=backend.kind, result=result, report=report,
        ))

    def _report_error(self, op: Operation, error: BirdNestError, kind: BackendKind | None) -> Outcome:
        status = OutcomeStatus.FAILED if isinstance(error, CommandFailed) else OutcomeStatus.ERROR
        _log.error("%s failed: %s", op.kind.value, error)
        return self._report(Outcome(
            op, status, exit_code=error.exit_code, backend=kind,
            result=getattr(error, "result", None), error=error,
            message=str(error), hint=error.hint,
        ))

    def _report(self, outcome: Outcome) -> Outcome:
        self._enter(State.REPORTED)
        outcome.history = list(self.history)
        return outcome
