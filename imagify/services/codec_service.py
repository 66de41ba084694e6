"""Кодирование растра в baseline JPEG и обратное декодирование.

Принципы:
- SRP: единственный формат с потерями, единственная точка обращения к кодировщику.
- Прозрачность: если формат источника поддерживает альфа-канал, растр сначала
  накладывается на белый фон, иначе прозрачные области станут чёрными.
- Кодирование не обязано уменьшать размер: на высоком качестве результат может
  быть больше исходного файла, это не ошибка.
"""
from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image

from imagify.models.compression_model import MAX_QUALITY, MIN_QUALITY
from imagify.models.errors import DecodeFailure, EncodeFailure, InputInvalid
from imagify.models.image_model import Bitmap, EncodedImage, EncodedKind
from imagify.services.resize_service import ResizeService

logger = logging.getLogger(__name__)

JPEG_MIME = "image/jpeg"


class CodecService:
    def __init__(self, resize_service: ResizeService | None = None) -> None:
        self._resize = resize_service or ResizeService()

    def encode(self, bitmap: Bitmap, quality: int, has_alpha: bool = False) -> EncodedImage:
        """Кодирует растр в JPEG.

        Args:
            bitmap: Растр в целевом размере.
            quality: Качество 1–100, передаётся кодировщику линейно.
            has_alpha: Формат источника поддерживает прозрачность (включает наложение на белый).

        Raises:
            InputInvalid: качество вне диапазона.
            EncodeFailure: кодировщик не выдал результат.
        """
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise InputInvalid(f"Качество вне диапазона [{MIN_QUALITY}, {MAX_QUALITY}]: {quality}")
        if bitmap is None:
            raise EncodeFailure("Нет растра для кодирования")

        prepared = self._resize.flatten(bitmap) if has_alpha else bitmap
        buf = BytesIO()
        try:
            prepared.to_pil().convert("RGB").save(
                buf, format="JPEG", quality=int(quality), optimize=False, progressive=False
            )
        except (OSError, ValueError) as exc:
            raise EncodeFailure(f"Ошибка кодирования JPEG (качество {quality}): {exc}") from exc

        data = buf.getvalue()
        if not data:
            raise EncodeFailure(f"Кодировщик вернул пустой буфер (качество {quality})")
        logger.debug("JPEG %dx%d q=%d -> %d байт", bitmap.width, bitmap.height, quality, len(data))
        return EncodedImage(data=data, kind=EncodedKind.REENCODED, mime_type=JPEG_MIME)

    def decode(self, encoded: EncodedImage) -> Bitmap:
        """Декодирует буфер в RGBA-растр. Ресурсы PIL освобождаются на любом пути выхода."""
        try:
            with Image.open(BytesIO(encoded.data)) as im:
                im.load()
                return Bitmap.from_pil(im)
        except (OSError, ValueError) as exc:
            raise DecodeFailure(f"Не удалось декодировать {encoded.mime_type} ({encoded.size} байт): {exc}") from exc
