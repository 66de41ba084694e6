"""Модели данных для растров и закодированных изображений.

Принципы:
- SRP: только структура данных и преобразования формы, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) для предсказуемости; каждое преобразование
  создаёт новый объект.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from imagify.models.errors import InputInvalid


@dataclass(frozen=True)
class Bitmap:
    """Неизменяемый RGBA-растр.

    Fields:
        width: Ширина, px (> 0).
        height: Высота, px (> 0).
        pixels: RGBA-байты построчно от левого верхнего угла, длина = width × height × 4.
    """
    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InputInvalid(f"Некорректные размеры растра: {self.width}×{self.height}")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise InputInvalid(f"Длина буфера {len(self.pixels)} не равна {expected} (RGBA)")

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_pil(cls, image: Image.Image) -> "Bitmap":
        """Создаёт растр из изображения PIL любого режима (приводится к RGBA)."""
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        width, height = rgba.size
        return cls(width=width, height=height, pixels=rgba.tobytes())

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Bitmap":
        """Создаёт растр из массива формы (H, W, 4) с dtype uint8."""
        if array.ndim != 3 or array.shape[2] != 4:
            raise InputInvalid(f"Ожидался массив (H, W, 4), получено {array.shape}")
        height, width = array.shape[:2]
        return cls(width=width, height=height, pixels=np.ascontiguousarray(array, dtype=np.uint8).tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes("RGBA", self.size, self.pixels)

    def as_array(self) -> np.ndarray:
        """Возвращает представление (H, W, 4) uint8 только для чтения."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)


@dataclass(frozen=True)
class HeatMap(Bitmap):
    """Растр той же формы, что и сравниваемые изображения: цвет = величина различия, альфа = видимость."""


class EncodedKind(Enum):
    ORIGINAL = "original"
    REENCODED = "reencoded"


@dataclass(frozen=True, eq=False)
class EncodedImage:
    """Закодированный буфер изображения.

    Сравнение выполняется по идентичности объекта: «это тот же самый исходный буфер»
    проверяется через `is`, а не через равенство содержимого.

    Fields:
        data: Байты файла.
        kind: Исходный файл или результат повторного кодирования.
        mime_type: MIME-тип содержимого, например "image/jpeg".
    """
    data: bytes
    kind: EncodedKind
    mime_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)

    def is_original(self) -> bool:
        return self.kind is EncodedKind.ORIGINAL


@dataclass(frozen=True)
class SourceImage:
    """Исходное изображение сессии и его метаданные.

    Fields:
        name: Имя файла (для информации и формирования имени при сохранении).
        bitmap: Декодированный растр в натуральном размере.
        original: Исходные байты файла; на них ссылается результат при «быстром пути».
        has_alpha: Формат источника поддерживает прозрачность (PNG, WebP, GIF ...).
        mode: Режим PIL исходного файла, например "RGBA".
        format: Формат PIL исходного файла, например "PNG".
        path: Путь к файлу, если источник загружен с диска.
    """
    name: str
    bitmap: Bitmap
    original: EncodedImage
    has_alpha: bool
    mode: str
    format: str
    path: Optional[Path] = None

    @property
    def width(self) -> int:
        return self.bitmap.width

    @property
    def height(self) -> int:
        return self.bitmap.height

    @property
    def size_bytes(self) -> int:
        return self.original.size
