"""App window: hosts the refinement view and its status bar.

Keyboard: Space starts/pauses the simulation, R resets, Q closes.
"""

import logging

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QMainWindow, QStatusBar, QLabel

from refine.view import RefineView

logger = logging.getLogger(__name__)


class AppWindow(QMainWindow):
    """Top-level window for the adaptive flip fractal."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Flip Fractal")
        self.resize(1100, 750)

        self.view = RefineView()
        self.setCentralWidget(self.view)

        # --- Status bar ---
        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)

        self._stats_label = QLabel()
        self._inspect_label = QLabel()
        self._status_bar.addWidget(self._stats_label)
        self._status_bar.addWidget(self._inspect_label)

        self.view.stats_changed.connect(self._stats_label.setText)
        self.view.inspect_changed.connect(self._inspect_label.setText)
        # The view emitted its first stats before the labels were connected
        self.view.reset()

    def closeEvent(self, event):
        self.view.shutdown()
        super().closeEvent(event)

    def keyPressEvent(self, event):
        key = event.key()
        if key == Qt.Key.Key_Space:
            self.view.toggle_run()
        elif key == Qt.Key.Key_R:
            self.view.reset()
        elif key == Qt.Key.Key_Q:
            logger.info("Quit requested")
            self.close()
        else:
            super().keyPressEvent(event)
