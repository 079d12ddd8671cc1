"""Refinement view: orchestrates engine, canvas and controls.

A QTimer on the GUI thread drives RefinementEngine.tick(); after each
tick the live colors of running regions are pulled into the canvas.
The engine is the only writer of the region grid, and it is only
touched from this thread.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtWidgets import QWidget, QHBoxLayout, QSplitter

from refine.canvas import RefineCanvas
from refine.config import DEFAULT_CANVAS_SIZE
from refine.controls import RefineControls
from refine.engine import RefinementEngine
from refine.region import RegionStatus
from refine.worker import ReferenceFlipWorker

logger = logging.getLogger(__name__)


class RefineView(QWidget):
    """Complete adaptive flip fractal: canvas + controls + tick loop."""

    FPS = 60

    # Status text for AppWindow's status bar
    stats_changed = pyqtSignal(str)
    inspect_changed = pyqtSignal(str)

    def __init__(self, size: float = DEFAULT_CANVAS_SIZE, parent=None):
        super().__init__(parent)
        self._size = size

        self.canvas = RefineCanvas(int(size), int(size))
        self.controls = RefineControls()

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.canvas)
        splitter.addWidget(self.controls)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(splitter)

        self.engine: RefinementEngine | None = None

        # Reference flip workers, kept referenced until their thread stops
        self._reference_workers: list[ReferenceFlipWorker] = []

        # Timer
        self.timer = QTimer()
        self.timer.setInterval(int(1000 / self.FPS))
        self.timer.timeout.connect(self._on_timer)

        # Wire signals
        self.controls.run_toggled.connect(self._on_run_toggled)
        self.controls.reset_clicked.connect(self.reset)
        self.controls.overlay_toggled.connect(self._on_overlay_toggled)
        self.canvas.hover_moved.connect(self._on_hover)
        self.canvas.region_clicked.connect(self._on_region_clicked)

        self.reset()

    # -- Public interface --

    def reset(self) -> None:
        """Discard the current run and start a new grid from the controls."""
        self.pause()
        config = self.controls.get_config(self._size, self._size)
        params = self.controls.get_params()

        self.canvas.reset(int(config.width), int(config.height), params)
        self.engine = RefinementEngine(config, params, sink=self.canvas)
        self.engine.paint_all()
        self.canvas.set_overlay(self.engine.grid.running())
        logger.info(
            "Reset: %d regions, threshold=%.2f, max_time=%.0f, min_split=%.0f",
            len(self.engine.grid), config.flip_threshold,
            config.max_time, config.min_split_size,
        )
        self._emit_stats()

    def toggle_run(self) -> None:
        self.controls.toggle_run()

    def pause(self) -> None:
        self.timer.stop()
        self.controls.set_running(False)

    # -- Tick loop --

    def _on_run_toggled(self, running: bool) -> None:
        if running and self.engine is not None and not self.engine.done:
            self.timer.start()
        else:
            self.pause()

    def _on_timer(self) -> None:
        engine = self.engine
        try:
            engine.tick()
        except FloatingPointError:
            logger.exception("Simulation diverged; stopping")
            self.pause()
            return

        engine.paint_running()
        running = engine.grid.running()
        self.canvas.set_overlay(running)
        self.canvas.refresh()
        self._emit_stats()

        if not running:
            logger.info(
                "All regions stopped after %d ticks (%d regions, %d splits)",
                engine.ticks, len(engine.grid), engine.controller.splits,
            )
            self.pause()

    def _on_overlay_toggled(self, checked: bool) -> None:
        self.canvas.show_pendulums = checked
        self.canvas.update()

    # -- Status --

    def _emit_stats(self) -> None:
        counts = self.engine.grid.counts()
        self.stats_changed.emit(
            f"  Running: {counts[RegionStatus.RUNNING]}  "
            f"Flipped: {counts[RegionStatus.FLIPPED]}  "
            f"Timed out: {counts[RegionStatus.TIMED_OUT]}  "
            f"t={self.engine.max_simulated_time:.1f}  "
        )

    def _on_hover(self, x: float, y: float) -> None:
        region = self.engine.grid.find(x, y) if self.engine is not None else None
        if region is None:
            self.inspect_changed.emit("")
            return
        text = (
            f"  {region.rect.width:g}px depth {region.depth}  "
            f"θ1={region.state[0]:.3f}  θ2={region.state[1]:.3f}  "
        )
        if region.status is RegionStatus.FLIPPED:
            text += f"flip t={region.flip_time:.2f}  "
        else:
            text += f"{region.status.value}  "
        self.inspect_changed.emit(text)

    def _on_region_clicked(self, x: float, y: float) -> None:
        """Start a background reference flip time for the clicked region's seed."""
        region = self.engine.grid.find(x, y) if self.engine is not None else None
        if region is None:
            return
        seed = self.engine.grid.seed(region.rect)
        logger.info(
            "Region %d (theta1=%.4f, theta2=%.4f): %s, computing reference flip time",
            region.handle, seed[0], seed[1], region.status.value,
        )
        worker = ReferenceFlipWorker(
            region.handle, self.engine.params, float(seed[0]), float(seed[1]),
            self.engine.config.max_time,
        )
        worker.result_ready.connect(self._on_reference_ready)
        worker.finished.connect(lambda w=worker: self._cleanup_worker(w))
        self._reference_workers.append(worker)
        worker.start()

    def _on_reference_ready(self, handle: int, t_ref) -> None:
        logger.info(
            "Region %d: reference flip time %s",
            handle, "none" if t_ref is None else f"{t_ref:.3f}",
        )

    def _cleanup_worker(self, worker: ReferenceFlipWorker) -> None:
        """Drop a reference worker after its thread has fully stopped."""
        try:
            self._reference_workers.remove(worker)
        except ValueError:
            pass  # Already removed

    def shutdown(self) -> None:
        """Stop the tick loop and wait for reference workers (window close)."""
        self.pause()
        for worker in self._reference_workers:
            worker.wait(3000)
        self._reference_workers.clear()
