"""Entry point for the Flip Fractal application.

Renders the double pendulum flip-time fractal by simulating one pendulum
per canvas region and refining regions whose neighbours flip at similar
times.
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from app_window import AppWindow


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    app = QApplication(sys.argv)
    window = AppWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
