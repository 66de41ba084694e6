"""Производные значения для отображения: размеры файлов, степень сжатия, мёртвая зона."""
from __future__ import annotations

import math

from imagify.models.compression_model import MAX_QUALITY

_UNITS = ("B", "KB", "MB", "GB")
_K = 1024


def format_file_size(size_bytes: int | None) -> str:
    """Человекочитаемый размер по степеням 1024, один знак после запятой, без хвостового «.0»."""
    if not size_bytes or size_bytes <= 0:
        return "0 B"
    exp = min(int(math.floor(math.log(size_bytes, _K))), len(_UNITS) - 1)
    # log() с плавающей точкой может дать 0.999… на точных степенях 1024
    if exp + 1 < len(_UNITS) and size_bytes >= _K ** (exp + 1):
        exp += 1
    # половина вверх
    value = math.floor(size_bytes / _K ** exp * 10 + 0.5) / 10
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[exp]}"


def compression_ratio(reference_size: int, current_size: int) -> float:
    """Во сколько раз результат меньше эталона; 1, если размеры неизвестны."""
    if reference_size > 0 and current_size > 0:
        return reference_size / current_size
    return 1.0


def size_reduction(reference_size: int, current_size: int) -> float:
    """Уменьшение размера в процентах, не меньше нуля."""
    if reference_size <= 0:
        return 0.0
    return max(0.0, (reference_size - current_size) / reference_size * 100.0)


def dead_zone_width(threshold: int) -> int:
    """Ширина полосы предупреждения на шкале качества, %: (100 − порог) + 1, либо 0 без мёртвой зоны."""
    if threshold <= MAX_QUALITY:
        return (MAX_QUALITY - threshold) + 1
    return 0
