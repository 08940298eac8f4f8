"""Widget builder for the stopwatch screen.

build_stopwatch_view() returns a (container, widget_dict) tuple. The
container is a QWidget with objectName "stopwatchBg"; the widget_dict maps
logical names to sub-widgets for later updates.
"""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

BACKGROUND = "#f5f5f5"
PRIMARY = "#007BFF"
SECONDARY = "#808080"


def build_stylesheet():
    """Qt stylesheet for the whole window."""
    return (
        f"QMainWindow, QWidget#stopwatchBg {{ background-color: {BACKGROUND}; }}"
        f"QPushButton {{ color: #fff; border: none; border-radius: 5px;"
        f" padding: 10px 20px; }}"
        f"QPushButton#toggle {{ background-color: {PRIMARY}; }}"
        f"QPushButton#reset {{ background-color: {SECONDARY}; }}"
    )


def build_stopwatch_view(font_family, on_toggle, on_reset):
    """Build the time label, status label and the two buttons.

    Returns (container, widget_dict).
    """
    container = QWidget()
    container.setObjectName("stopwatchBg")
    lay = QVBoxLayout(container)
    lay.setAlignment(Qt.AlignCenter)
    lay.setSpacing(10)

    time_lbl = QLabel("0:00:00.000")
    time_lbl.setFont(QFont(font_family, 40))
    time_lbl.setAlignment(Qt.AlignCenter)
    lay.addWidget(time_lbl)

    status_lbl = QLabel("Ready")
    status_lbl.setFont(QFont(font_family, 12))
    status_lbl.setAlignment(Qt.AlignCenter)
    lay.addWidget(status_lbl)

    toggle_btn = QPushButton("Start")
    toggle_btn.setObjectName("toggle")
    toggle_btn.setFont(QFont(font_family, 20))
    toggle_btn.clicked.connect(on_toggle)
    lay.addWidget(toggle_btn, alignment=Qt.AlignCenter)

    reset_btn = QPushButton("Reset")
    reset_btn.setObjectName("reset")
    reset_btn.setFont(QFont(font_family, 20))
    reset_btn.clicked.connect(on_reset)
    reset_btn.setVisible(False)
    lay.addWidget(reset_btn, alignment=Qt.AlignCenter)

    return container, {
        "time": time_lbl,
        "status": status_lbl,
        "toggle": toggle_btn,
        "reset": reset_btn,
    }
