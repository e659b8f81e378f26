"""Graphical confirmation and progress dialogs used by install-dialog/remove-dialog."""

from __future__ import annotations

from typing import Sequence

from PyQt6.QtWidgets import (
    QDialog, QHBoxLayout, QLabel, QMessageBox, QProgressBar, QPushButton, QTextEdit, QVBoxLayout,
)

from birdnest.core.errors import SpawnError
from birdnest.core.executor import BUFFERED, ProcessExecutor, RunOptions
from birdnest.core.logger import get_logger
from birdnest.core.models import ExecutionResult
from birdnest.core.worker import CommandWorker

_log = get_logger("dialogs")


class DialogPrompter:
    """Confirmation gate backed by a Yes/No message box (No is the default)."""

    def __init__(self, title: str = "BirdNest", parent=None) -> None:
        self.title = title
        self.parent = parent

    def confirm(self, message: str) -> bool:
        answer = QMessageBox.question(
            self.parent,
            self.title,
            message,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes


class ProgressDialog(QDialog):
    """Modal dialog that runs one command and shows its output as it arrives.

    The command cannot be cancelled once started; the dialog only closes
    after it exits.
    """

    def __init__(self, title: str, cmd: Sequence[str], cwd: str | None = None, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setMinimumSize(560, 340)
        self.setModal(True)
        self._running = True

        layout = QVBoxLayout(self)
        layout.setSpacing(12)

        self._status_label = QLabel("Preparing...")
        layout.addWidget(self._status_label)

        self._progress = QProgressBar()
        self._progress.setRange(0, 0)  # Indeterminate
        layout.addWidget(self._progress)

        self._log = QTextEdit()
        self._log.setReadOnly(True)
        self._log.setStyleSheet("font-family: monospace; font-size: 12px;")
        layout.addWidget(self._log)

        btn_row = QHBoxLayout()
        btn_row.addStretch()
        self._close_btn = QPushButton("Close")
        self._close_btn.setEnabled(False)
        self._close_btn.clicked.connect(self.accept)
        btn_row.addWidget(self._close_btn)
        layout.addLayout(btn_row)

        self.worker = CommandWorker(cmd, cwd=cwd)
        self.worker.status.connect(self._status_label.setText)
        self.worker.log_line.connect(self._log.append)
        self.worker.finished_sig.connect(self._on_finished)
        _log.info("ProgressDialog: starting %s", title)
        self.worker.start()

    def _on_finished(self, code: int, msg: str) -> None:
        self._running = False
        self._status_label.setText(msg)
        self._progress.setRange(0, 100)
        self._progress.setValue(100 if code == 0 else 0)
        self._close_btn.setEnabled(True)
        _log.info("ProgressDialog: %s", "completed" if code == 0 else f"failed: {msg}")

    def reject(self) -> None:
        # Escape / window close while the command is still running
        if not self._running:
            super().reject()

    def closeEvent(self, event) -> None:
        if self._running:
            event.ignore()
        else:
            super().closeEvent(event)


class DialogExecutor(ProcessExecutor):
    """Executor whose long-running commands show up in a ProgressDialog."""

    def __init__(self, title: str = "BirdNest", parent=None) -> None:
        super().__init__()
        self.title = title
        self.parent = parent

    def run(self, command: str, args: Sequence[str] = (), options: RunOptions = BUFFERED) -> ExecutionResult:
        if not options.stream_live:
            return super().run(command, args, options)
        argv = self.build_argv(command, args, options)
        cwd = str(options.working_dir) if options.working_dir else None
        dialog = ProgressDialog(self.title, argv, cwd=cwd, parent=self.parent)
        dialog.exec()
        worker = dialog.worker
        worker.wait()
        if worker.spawn_error is not None:
            raise SpawnError(argv[0], worker.spawn_error.strerror or str(worker.spawn_error))
        return ExecutionResult(
            argv=argv,
            exit_code=worker.exit_code if worker.exit_code is not None else -1,
            stdout="".join(worker.output),
            duration=worker.duration,
        )
