"""Shared UI widgets: slider helpers and the arm mass/length widget."""

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QWidget, QGridLayout, QSlider, QLabel

from simulation import DoublePendulumParams


# ---------------------------------------------------------------------------
# Slider helpers
# ---------------------------------------------------------------------------

def make_slider(minimum, maximum, value, resolution=100):
    """Create an integer QSlider that maps to float values.

    The slider range is [minimum*resolution, maximum*resolution].
    """
    slider = QSlider(Qt.Orientation.Horizontal)
    slider.setMinimum(int(minimum * resolution))
    slider.setMaximum(int(maximum * resolution))
    slider.setValue(int(value * resolution))
    slider.resolution = resolution
    return slider


def slider_value(slider):
    """Read the float value from a slider created by make_slider."""
    return slider.value() / slider.resolution


def add_slider_row(layout, row, label_text, slider, unit="", fmt="{:.2f}"):
    """Add a label | slider | live value row to a grid layout."""
    label = QLabel(label_text)
    value_label = QLabel()
    value_label.setMinimumWidth(55)
    value_label.setAlignment(
        Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
    )
    layout.addWidget(label, row, 0)
    layout.addWidget(slider, row, 1)
    layout.addWidget(value_label, row, 2)

    def _update(_val, vl=value_label, sl=slider, u=unit):
        vl.setText(fmt.format(slider_value(sl)) + u)

    slider.valueChanged.connect(_update)
    _update(slider.value())


# ---------------------------------------------------------------------------
# PhysicsParamsWidget
# ---------------------------------------------------------------------------

class PhysicsParamsWidget(QWidget):
    """Sliders for the arm mass and length shared by both arms.

    Emits no signals itself; call get_params() to read current values.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QGridLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.mass_slider = make_slider(0.1, 5.0, 1.0)
        self.length_slider = make_slider(0.1, 3.0, 1.0)

        add_slider_row(layout, 0, "m", self.mass_slider, " kg")
        add_slider_row(layout, 1, "l", self.length_slider, " m")

    def get_params(self):
        """Return equal-arm DoublePendulumParams from the slider values."""
        return DoublePendulumParams.uniform(
            mass=slider_value(self.mass_slider),
            length=slider_value(self.length_slider),
        )
