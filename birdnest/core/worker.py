"""QThread worker that runs a package command and streams its output."""

from __future__ import annotations

import subprocess
import time
from typing import Sequence

from PyQt6.QtCore import QThread, pyqtSignal

from birdnest.core.logger import get_logger

_log = get_logger("worker")


class CommandWorker(QThread):
    """Runs a command in a thread, streaming output line by line.

    Signals:
        status(str)              - human-readable status message
        log_line(str)            - single line of stdout/stderr
        finished_sig(int, str)   - (exit code, message)
    """

    status = pyqtSignal(str)
    log_line = pyqtSignal(str)
    finished_sig = pyqtSignal(int, str)

    def __init__(self, cmd: Sequence[str], cwd: str | None = None, parent=None) -> None:
        super().__init__(parent)
        self.cmd = list(cmd)
        self.cwd = cwd
        self.output: list[str] = []
        self.exit_code: int | None = None
        self.spawn_error: OSError | None = None
        self.duration = 0.0

    def run(self) -> None:
        _log.info("CommandWorker: starting %s", " ".join(self.cmd[:5]))
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                self.cmd,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            self.spawn_error = e
            _log.warning("CommandWorker: cannot start %s: %s", self.cmd[0], e)
            self.exit_code = -1
            self.finished_sig.emit(-1, f"Cannot run {self.cmd[0]}: {e}")
            return

        self.status.emit(f"Running: {' '.join(self.cmd[:3])}...")
        for line in iter(proc.stdout.readline, ""):
            self.output.append(line)
            self.log_line.emit(line.rstrip("\n"))
        proc.stdout.close()
        proc.wait()
        self.duration = time.monotonic() - start
        self.exit_code = proc.returncode

        if proc.returncode == 0:
            _log.info("CommandWorker: completed successfully")
            self.finished_sig.emit(0, "Completed successfully")
        else:
            _log.warning("CommandWorker: exited with code %s", proc.returncode)
            self.finished_sig.emit(proc.returncode, f"Exited with code {proc.returncode}")
