"""Загрузка исходных изображений с диска или из памяти и упаковка метаданных.

Принципы:
- SRP: класс отвечает только за загрузку, проверку входа и извлечение свойств.
- OCP: новые источники (стрим, URL) можно добавить отдельными методами.
- Все отказы на этом этапе — `InputInvalid`: ядро никогда не видит некорректный вход.
"""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from imagify.models.errors import InputInvalid
from imagify.models.image_model import Bitmap, EncodedImage, EncodedKind, SourceImage

logger = logging.getLogger(__name__)

# форматы, которые в принципе умеют хранить прозрачность
ALPHA_FORMATS = frozenset({"PNG", "WEBP", "GIF", "TIFF"})
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024


class ImageService:
    def __init__(self, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self._max_file_bytes = max_file_bytes

    def load_image(self, file_path: str | Path) -> SourceImage:
        """Загружает изображение с диска и возвращает его вместе с метаданными.

        Args:
            file_path: Путь до файла изображения.

        Returns:
            `SourceImage` с растром RGBA, исходными байтами и признаком прозрачности формата.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
            InputInvalid: если файл слишком большой, пустой или не распознан как изображение.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")

        size = path.stat().st_size
        self._check_size(size, path.name)
        source = self.load_bytes(path.read_bytes(), name=path.name)
        return SourceImage(
            name=source.name,
            bitmap=source.bitmap,
            original=source.original,
            has_alpha=source.has_alpha,
            mode=source.mode,
            format=source.format,
            path=path,
        )

    def load_bytes(self, data: bytes, name: str = "image") -> SourceImage:
        """Декодирует изображение из байтов. Исходный буфер сохраняется без копирования."""
        self._check_size(len(data), name)
        try:
            with Image.open(BytesIO(data)) as im:
                fmt = (im.format or "").upper()
                mode = im.mode
                has_alpha = self._format_has_alpha(im)
                # для анимаций берём только первый кадр
                bitmap = Bitmap.from_pil(im.convert("RGBA"))
        except InputInvalid:
            raise
        except UnidentifiedImageError as exc:
            raise InputInvalid(f"Файл не является изображением: {name}") from exc
        except (OSError, ValueError) as exc:
            raise InputInvalid(f"Не удалось прочитать изображение {name}: {exc}") from exc

        logger.info("Загружено %s: %dx%d, %s, %d байт", name, bitmap.width, bitmap.height, fmt, len(data))
        return SourceImage(
            name=name,
            bitmap=bitmap,
            original=EncodedImage(data=data, kind=EncodedKind.ORIGINAL, mime_type=Image.MIME.get(fmt, "application/octet-stream")),
            has_alpha=has_alpha,
            mode=mode,
            format=fmt,
        )

    def _check_size(self, size: int, name: str) -> None:
        if size <= 0:
            raise InputInvalid(f"Файл пуст: {name}")
        if size > self._max_file_bytes:
            limit_mb = self._max_file_bytes / (1024 * 1024)
            raise InputInvalid(f"Размер файла должен быть меньше {limit_mb:g} МБ: {name}")

    @staticmethod
    def _format_has_alpha(im: Image.Image) -> bool:
        if (im.format or "").upper() in ALPHA_FORMATS:
            return True
        return im.mode in ("RGBA", "LA", "PA", "RGBa", "La") or "transparency" in im.info
