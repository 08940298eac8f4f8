import sys
from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QMessageBox,
)
from sw.common.logger import log
from sw.core import config
from sw.core.engine import TimerEngine
from sw.core.store import JsonFileStore
from sw.ui.widgets import build_stopwatch_view, build_stylesheet


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# The stopwatch screen. All timing lives in TimerEngine, this only draws what the engine reports.
class MainWindow(QMainWindow):

    def __init__(self, settings=None, store=None):
        super().__init__()
        self.setWindowTitle("Stopwatch")

        self.settings = settings or config.load_settings()
        self.confirm_reset = self.settings.get("confirm_reset", False)
        if self.settings.get("always_on_top", False):
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # -- Engine --
        self.engine = TimerEngine(store or JsonFileStore(config.STORE_PATH), self.settings, parent=self)
        self.engine.elapsedChanged.connect(self._update_display)
        self.engine.runningChanged.connect(self._update_running)

        # -- Build UI --
        self.setStyleSheet(build_stylesheet())
        central, self._widgets = build_stopwatch_view(self.font().family(), self.engine.toggle, self._on_reset)
        self.setCentralWidget(central)

        # -- Foreground/background tracking, then cold load --
        app = QApplication.instance()
        if app is not None:
            self.engine.subscribe_lifecycle(app.applicationStateChanged)
        self.engine.reconcile()

    # ------------------------------------------------------------------ #
    #  Button handlers                                                     #
    # ------------------------------------------------------------------ #

    def _on_reset(self):
        if self.confirm_reset and QMessageBox.question(
                self, "Confirm", "Reset the timer to zero?"
        ) != QMessageBox.Yes:
            return
        self.engine.reset()

    # ------------------------------------------------------------------ #
    #  Display helpers                                                     #
    # ------------------------------------------------------------------ #

    def _update_display(self, _elapsed=None):
        view = self.engine.view()
        self._widgets["time"].setText(view.text)
        self._widgets["status"].setText(view.status)
        self._widgets["reset"].setVisible(view.show_reset)

    def _update_running(self, running):
        self._widgets["toggle"].setText("Pause" if running else "Start")
        self._update_display()

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    def closeEvent(self, event):
        self.engine.close()
        log.info(f"Closing with timer {'running' if self.engine.running else 'stopped'} at {self.engine.elapsed_ms}ms")
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
