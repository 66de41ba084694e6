"""Расчёт целевых размеров и пересэмплирование растров.

Принципы:
- Расчёт размеров — чистая функция без побочных эффектов.
- Изображение никогда не увеличивается: масштаб ограничен сверху единицей.
"""
from __future__ import annotations

from typing import Optional, Tuple

from PIL import Image

from imagify.models.image_model import Bitmap

WHITE = (255, 255, 255)


class ResizeService:
    def compute_target_size(
        self,
        source_width: Optional[int],
        source_height: Optional[int],
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Целевые размеры с сохранением пропорций.

        Returns:
            (0, 0), если исходный размер неизвестен или нулевой: продолжать нельзя.
            Иначе round(source × scale) по каждой оси, не меньше 1,
            где scale = min(max_w / w, max_h / h, 1).
        """
        if not source_width or not source_height:
            return 0, 0
        limit_w = max_width or source_width
        limit_h = max_height or source_height
        scale = min(limit_w / source_width, limit_h / source_height, 1.0)
        return (
            max(1, _round_half_up(source_width * scale)),
            max(1, _round_half_up(source_height * scale)),
        )

    def resize(self, bitmap: Bitmap, width: int, height: int) -> Bitmap:
        """Возвращает растр нужного размера; при совпадении размеров — тот же объект."""
        if bitmap.size == (width, height):
            return bitmap
        resized = bitmap.to_pil().resize((width, height), Image.Resampling.LANCZOS)
        return Bitmap.from_pil(resized)

    def flatten(self, bitmap: Bitmap, background: Tuple[int, int, int] = WHITE) -> Bitmap:
        """Накладывает растр на непрозрачный фон (белый по умолчанию); альфа результата = 255."""
        rgba = bitmap.to_pil()
        canvas = Image.new("RGBA", rgba.size, background + (255,))
        canvas.alpha_composite(rgba)
        return Bitmap.from_pil(canvas)


def _round_half_up(value: float) -> int:
    # round() в Python банковский, здесь нужна обычная половина вверх
    return int(value + 0.5)
