"""Color mapping: HSV hue LUT, region color policy, BGRA pixel buffer.

Region colors are (r, g, b) tuples taken from a pre-computed hue wheel
lookup table:
  - running: hue follows the second arm angle theta2 (live animation)
  - flipped: hue follows the flip time, one full turn per hue period
  - timed out: neutral gray

PixelBuffer is the paint target behind the canvas widget. It stores
pixels in BGRA order so the render adapter can wrap it in a QImage
(Format_ARGB32 on little-endian) without copying.
"""

from __future__ import annotations

import math

import numpy as np

from refine.config import DEFAULT_HUE_PERIOD


# Default LUT size. 4096 avoids visible banding; 16 KB fits in L1 cache.
DEFAULT_LUT_SIZE = 4096

TIMEOUT_COLOR = (128, 128, 128)
BACKGROUND_COLOR = (20, 20, 30)


def build_hue_lut(size: int = DEFAULT_LUT_SIZE) -> np.ndarray:
    """Build a 360-degree HSV hue wheel lookup table.

    Returns:
        (size, 4) uint8 array in BGRA order.
    """
    hues = np.linspace(0, 360, size, endpoint=False, dtype=np.float32)

    # HSV to RGB at full saturation and value
    h_sector = hues / 60.0
    sector = h_sector.astype(np.int32) % 6
    f = h_sector - np.floor(h_sector)

    # p = 0 (saturation = 1), q = 1-f, t = f (value = 1)
    v = np.full(size, 255, dtype=np.uint8)
    p = np.zeros(size, dtype=np.uint8)
    q = ((1.0 - f) * 255).astype(np.uint8)
    t = (f * 255).astype(np.uint8)

    # (r, g, b) source per sector
    channels = [
        (v, t, p),
        (q, v, p),
        (p, v, t),
        (p, q, v),
        (t, p, v),
        (v, p, q),
    ]

    lut = np.empty((size, 4), dtype=np.uint8)
    for s, (r, g, b) in enumerate(channels):
        mask = sector == s
        lut[mask, 0] = b[mask]
        lut[mask, 1] = g[mask]
        lut[mask, 2] = r[mask]
    lut[:, 3] = 255  # alpha

    return lut


_HUE_LUT = build_hue_lut()


def hue_color(fraction: float, lut: np.ndarray = _HUE_LUT) -> tuple[int, int, int]:
    """Look up the (r, g, b) color at a position on the hue wheel.

    Args:
        fraction: Position in turns; wrapped to [0, 1).
    """
    size = lut.shape[0]
    index = int(math.floor((fraction % 1.0) * size)) % size
    b, g, r, _a = lut[index]
    return int(r), int(g), int(b)


def running_color(theta2: float) -> tuple[int, int, int]:
    """Live color of a running region, from the second arm angle."""
    return hue_color((theta2 % (2.0 * math.pi)) / (2.0 * math.pi))


def flip_color(flip_time: float, hue_period: float = DEFAULT_HUE_PERIOD) -> tuple[int, int, int]:
    """Frozen color of a region whose second arm flipped at flip_time."""
    return hue_color((flip_time % hue_period) / hue_period)


def inverse_color(color: tuple[int, int, int]) -> tuple[int, int, int]:
    """Complementary color, used to draw pendulum arms over a region."""
    r, g, b = color
    return 255 - r, 255 - g, 255 - b


class PixelBuffer:
    """(height, width, 4) uint8 BGRA buffer accepting rectangle paints.

    Rectangle edges are snapped by rounding each edge coordinate, so two
    rectangles sharing an edge share the same pixel column/row boundary
    and never leave gaps or overlap.
    """

    def __init__(self, width: int, height: int,
                 background: tuple[int, int, int] = BACKGROUND_COLOR):
        self.width = int(width)
        self.height = int(height)
        self.pixels = np.empty((self.height, self.width, 4), dtype=np.uint8)
        self.paint_count = 0
        self.clear(background)

    def clear(self, color: tuple[int, int, int] = BACKGROUND_COLOR) -> None:
        r, g, b = color
        self.pixels[:, :] = (b, g, r, 255)

    def paint(self, rect, color: tuple[int, int, int]) -> None:
        """Fill a canvas rectangle (anything with x, y, width, height)."""
        x0 = max(0, min(self.width, round(rect.x)))
        x1 = max(0, min(self.width, round(rect.x + rect.width)))
        y0 = max(0, min(self.height, round(rect.y)))
        y1 = max(0, min(self.height, round(rect.y + rect.height)))
        if x1 <= x0 or y1 <= y0:
            return
        r, g, b = color
        self.pixels[y0:y1, x0:x1] = (b, g, r, 255)
        self.paint_count += 1

    def color_at(self, px: int, py: int) -> tuple[int, int, int]:
        """(r, g, b) of the pixel at column px, row py."""
        b, g, r, _a = self.pixels[py, px]
        return int(r), int(g), int(b)
