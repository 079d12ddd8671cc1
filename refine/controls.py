"""Refinement controls: run/pause/reset, subdivision settings, physics params.

Settings other than run/pause take effect on Reset, which builds a new
RefineConfig from the current widget values.
"""

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QLabel, QPushButton, QComboBox, QGroupBox, QCheckBox,
)

from refine.config import (
    DEFAULT_MAX_TIME, DEFAULT_MIN_SPLIT_SIZE, FLIP_TIME_THRESHOLD,
    RefineConfig,
)
from ui_common import PhysicsParamsWidget, add_slider_row, make_slider, slider_value


class RefineControls(QWidget):
    """Control panel for the adaptive flip fractal."""

    # Signals
    run_toggled = pyqtSignal(bool)
    reset_clicked = pyqtSignal()
    overlay_toggled = pyqtSignal(bool)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._running = False
        self._init_ui()

    def _init_ui(self):
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(8, 8, 8, 8)

        # --- Run ---
        run_group = QGroupBox("Simulation")
        run_layout = QVBoxLayout()
        run_group.setLayout(run_layout)

        button_row = QHBoxLayout()
        self.run_btn = QPushButton("Start")
        self.reset_btn = QPushButton("Reset")
        button_row.addWidget(self.run_btn)
        button_row.addWidget(self.reset_btn)
        button_row.addStretch()
        run_layout.addLayout(button_row)

        self.overlay_checkbox = QCheckBox("Draw pendulums")
        self.overlay_checkbox.setChecked(True)
        run_layout.addWidget(self.overlay_checkbox)

        self.run_hint = QLabel("Space: start/pause")
        self.run_hint.setStyleSheet(
            "color: #888; font-style: italic; font-size: 11px;"
        )
        run_layout.addWidget(self.run_hint)

        main_layout.addWidget(run_group)

        # --- Refinement ---
        refine_group = QGroupBox("Refinement")
        refine_layout = QGridLayout()
        refine_group.setLayout(refine_layout)

        self.threshold_slider = make_slider(0.05, 3.0, FLIP_TIME_THRESHOLD)
        add_slider_row(refine_layout, 0, "Flip threshold", self.threshold_slider, " s")

        self.max_time_slider = make_slider(5.0, 200.0, DEFAULT_MAX_TIME, resolution=1)
        add_slider_row(refine_layout, 1, "Max time", self.max_time_slider, " s", fmt="{:.0f}")

        refine_layout.addWidget(QLabel("Min split size:"), 2, 0)
        self.min_size_combo = QComboBox()
        for size in [2, 4, 8, 16, 32, 64]:
            self.min_size_combo.addItem(f"{size} px", float(size))
        self.min_size_combo.setCurrentIndex(
            self.min_size_combo.findData(DEFAULT_MIN_SPLIT_SIZE)
        )
        refine_layout.addWidget(self.min_size_combo, 2, 1, 1, 2)

        refine_layout.addWidget(QLabel("Initial depth:"), 3, 0)
        self.depth_combo = QComboBox()
        for depth in range(0, 7):
            self.depth_combo.addItem(f"{depth} ({4 ** depth} regions)", depth)
        self.depth_combo.setCurrentIndex(3)
        refine_layout.addWidget(self.depth_combo, 3, 1, 1, 2)

        refine_layout.addWidget(QLabel("Max active:"), 4, 0)
        self.active_combo = QComboBox()
        for cap in [0, 500, 2000, 10000]:
            self.active_combo.addItem("unlimited" if cap == 0 else str(cap), cap)
        self.active_combo.setCurrentIndex(2)
        refine_layout.addWidget(self.active_combo, 4, 1, 1, 2)

        main_layout.addWidget(refine_group)

        # --- Physics Parameters ---
        physics_group = QGroupBox("Physics Parameters")
        physics_layout = QVBoxLayout()
        physics_group.setLayout(physics_layout)

        self.settings_hint = QLabel("Settings apply on Reset")
        self.settings_hint.setStyleSheet(
            "color: #888; font-style: italic; font-size: 11px;"
        )
        physics_layout.addWidget(self.settings_hint)

        self.physics_params = PhysicsParamsWidget()
        physics_layout.addWidget(self.physics_params)

        main_layout.addWidget(physics_group)
        main_layout.addStretch()

        # --- Wire signals ---
        self.run_btn.clicked.connect(self.toggle_run)
        self.reset_btn.clicked.connect(self.reset_clicked.emit)
        self.overlay_checkbox.toggled.connect(self.overlay_toggled.emit)

    # -- Public accessors --

    @property
    def running(self) -> bool:
        return self._running

    def set_running(self, running: bool) -> None:
        """Update the run button without emitting run_toggled."""
        self._running = running
        self.run_btn.setText("Pause" if running else "Start")

    def toggle_run(self) -> None:
        self.set_running(not self._running)
        self.run_toggled.emit(self._running)

    def get_params(self):
        return self.physics_params.get_params()

    def get_config(self, width: float, height: float) -> RefineConfig:
        """Build a RefineConfig from the current control values."""
        return RefineConfig(
            width=width,
            height=height,
            max_time=slider_value(self.max_time_slider),
            flip_threshold=slider_value(self.threshold_slider),
            min_split_size=self.min_size_combo.currentData(),
            initial_depth=self.depth_combo.currentData(),
            max_active=self.active_combo.currentData(),
        )
