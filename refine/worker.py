"""Reference flip worker: QThread running the DOP853 flip time for one seed.

A click on the canvas asks for the high-accuracy flip time of the
clicked region's seed. The integration can take a while out to
max_time, so it runs here instead of on the GUI thread.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from simulation import DoublePendulumParams, reference_flip_time

logger = logging.getLogger(__name__)


class ReferenceFlipWorker(QThread):
    """Background computation of reference_flip_time for one region."""

    # handle, flip time (float) or None
    result_ready = pyqtSignal(int, object)

    def __init__(
        self,
        handle: int,
        params: DoublePendulumParams,
        theta1: float,
        theta2: float,
        t_max: float,
    ):
        super().__init__()
        self.handle = handle
        self._params = params
        self._theta1 = theta1
        self._theta2 = theta2
        self._t_max = t_max

    def run(self) -> None:
        try:
            t_ref = reference_flip_time(
                self._params, self._theta1, self._theta2, t_max=self._t_max,
            )
        except Exception:
            logger.exception("Reference flip time failed for region %d", self.handle)
            return
        self.result_ready.emit(self.handle, t_ref)
