"""Типизированные ошибки ядра сжатия.

Принципы:
- Каждая стадия конвейера сообщает о сбое своим типом, UI решает, как его показать.
- Ошибки входных данных наследуют `ValueError`, чтобы их можно было ловить привычным образом.
"""
from __future__ import annotations


class ImagifyError(Exception):
    """Базовая ошибка приложения."""


class InputInvalid(ImagifyError, ValueError):
    """Некорректный файл, размер, параметры или настройки. Отклоняется до запуска ядра."""


class EncodeFailure(ImagifyError):
    """Кодировщик не смог выдать результат."""


class DecodeFailure(ImagifyError):
    """Закодированный буфер не удалось декодировать обратно в растр."""


class DimensionMismatch(ImagifyError, ValueError):
    """Два растра для сравнения имеют разные размеры."""

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int]) -> None:
        super().__init__(f"Размеры не совпадают: {expected[0]}×{expected[1]} и {actual[0]}×{actual[1]}")
        self.expected = expected
        self.actual = actual


class PipelineBusy(ImagifyError):
    """Конвейер сжатия уже выполняется."""
