"""QApplication subclass and the runner behind install-dialog / remove-dialog."""

from __future__ import annotations

import sys

from PyQt6.QtWidgets import QApplication, QMessageBox

from birdnest import __app_name__, __version__
from birdnest.core.config import Config
from birdnest.core.dispatcher import Dispatcher, Outcome, OutcomeStatus
from birdnest.core.models import Operation
from birdnest.ui.dialogs import DialogExecutor, DialogPrompter


class BirdNestApp(QApplication):
    """Minimal application object for the standalone dialogs."""

    def __init__(self, argv: list[str]) -> None:
        super().__init__(argv)
        self.setApplicationName(__app_name__)
        self.setApplicationVersion(__version__)
        self.setDesktopFileName("birdnest")


def run_dialog(operation: Operation, config: Config) -> Outcome:
    """Dispatch one operation with graphical confirmation and progress."""
    app = QApplication.instance() or BirdNestApp(sys.argv[:1])
    title = f"{__app_name__} - {operation.kind.value.capitalize()}"
    dispatcher = Dispatcher(config, DialogPrompter(title), executor=DialogExecutor(title))
    outcome = dispatcher.dispatch(operation)

    if outcome.ok:
        QMessageBox.information(None, title, f"{operation.kind.value.capitalize()} completed: "
                                             f"{', '.join(operation.targets)}")
    elif outcome.status is not OutcomeStatus.CANCELLED:
        text = outcome.message
        if outcome.hint:
            text += f"\n\n{outcome.hint}"
        QMessageBox.critical(None, title, text)
    app.processEvents()
    return outcome
