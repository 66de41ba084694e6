"""Тепловая карта попиксельных различий двух растров.

Цвет кодирует среднюю абсолютную разницу по R, G, B через пятиступенчатую шкалу
синий → голубой → зелёный → жёлтый → красный; альфа растёт с величиной различия
и не опускается ниже порога, чтобы сравниваемые области оставались видны.
"""
from __future__ import annotations

import numpy as np

from imagify.models.image_model import Bitmap, HeatMap
from imagify.services.metric_service import ensure_same_size

COLOR_STOPS = np.array(
    [
        (0, 0, 255),
        (0, 255, 255),
        (0, 255, 0),
        (255, 255, 0),
        (255, 0, 0),
    ],
    dtype=np.float64,
)
ALPHA_FLOOR = 30
ALPHA_SCALE = 225


def ramp_color(intensity: np.ndarray) -> np.ndarray:
    """Кусочно-линейная интерполяция по COLOR_STOPS; intensity в [0, 1], результат (..., 3) uint8."""
    clipped = np.clip(np.asarray(intensity, dtype=np.float64), 0.0, 1.0)
    pos = clipped * (len(COLOR_STOPS) - 1)
    lo = np.floor(pos).astype(np.intp)
    hi = np.minimum(lo + 1, len(COLOR_STOPS) - 1)
    t = (pos - lo)[..., None]
    rgb = COLOR_STOPS[lo] * (1.0 - t) + COLOR_STOPS[hi] * t
    return np.floor(rgb + 0.5).astype(np.uint8)


class HeatMapService:
    def diff(self, reference: Bitmap, compressed: Bitmap) -> HeatMap:
        """Строит карту различий.

        Пиксели с альфой эталона ниже 255 становятся полностью прозрачными,
        как и в метриках.

        Raises:
            DimensionMismatch: размеры растров не совпадают.
        """
        ensure_same_size(reference, compressed)
        ref = reference.as_array()
        cmp_ = compressed.as_array()

        delta = np.abs(ref[..., :3].astype(np.int16) - cmp_[..., :3].astype(np.int16))
        intensity = np.minimum(1.0, delta.mean(axis=2) / 255.0)

        out = np.zeros(ref.shape, dtype=np.uint8)
        out[..., :3] = ramp_color(intensity)
        alpha = np.maximum(ALPHA_FLOOR, intensity * ALPHA_SCALE)
        out[..., 3] = np.floor(alpha + 0.5).astype(np.uint8)

        excluded = ref[..., 3] < 255
        out[excluded] = 0
        return HeatMap(width=reference.width, height=reference.height, pixels=out.tobytes())
