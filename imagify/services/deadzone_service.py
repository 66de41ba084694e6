"""Поиск «мёртвой зоны» качества.

Мёртвая зона — диапазон качеств, на которых повторное кодирование даёт файл
больше исходного. Проверяется фиксированная убывающая лестница качеств,
плотнее у 100: зона обычно узкая и находится у верхней границы.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from imagify.models.compression_model import MIN_QUALITY, NO_DEAD_ZONE, CompressionSettings, DeadZoneResult
from imagify.models.errors import ImagifyError
from imagify.models.image_model import Bitmap, SourceImage
from imagify.services.codec_service import CodecService
from imagify.services.resize_service import ResizeService

logger = logging.getLogger(__name__)

DEAD_ZONE_LADDER: Sequence[int] = (99, 98, 97, 96, 95, 94, 93, 92, 91, 90, 88, 85, 80, 75, 70)


class DeadZoneService:
    def __init__(
        self,
        codec_service: Optional[CodecService] = None,
        resize_service: Optional[ResizeService] = None,
        ladder: Sequence[int] = DEAD_ZONE_LADDER,
    ) -> None:
        self._resize = resize_service or ResizeService()
        self._codec = codec_service or CodecService(self._resize)
        self._ladder = tuple(sorted(ladder, reverse=True))

    def find_threshold(
        self,
        bitmap: Optional[Bitmap],
        reference_size: int,
        target_width: int,
        target_height: int,
        has_alpha: bool = False,
    ) -> int:
        """Возвращает порог Q* в [1, 101].

        Сверху вниз: первое качество, чей размер не превышает `reference_size`,
        останавливает поиск, порог = это качество + 1. Если все проверенные
        качества превышают эталон, порог = минимальное качество лестницы + 1.
        Ошибка отдельной пробы считается «не превышает» и тоже останавливает поиск.
        Вырожденный вход (нет растра, нулевой эталон или размеры) даёт 101 без кодирования.
        """
        if bitmap is None or reference_size <= 0 or target_width <= 0 or target_height <= 0:
            logger.warning(
                "Поиск мёртвой зоны пропущен: растр=%s, эталон=%s, размеры=%sx%s",
                bitmap is not None, reference_size, target_width, target_height,
            )
            return NO_DEAD_ZONE
        if not self._ladder:
            return NO_DEAD_ZONE

        target = self._resize.resize(bitmap, target_width, target_height)
        threshold = self._ladder[-1] + 1
        for quality in self._ladder:
            try:
                size = self._codec.encode(target, quality, has_alpha=has_alpha).size
            except ImagifyError as exc:
                logger.warning("Проба q=%d не удалась (%s), считаем размер непревышенным", quality, exc)
                threshold = quality + 1
                break

            if size > reference_size:
                logger.debug("Проба q=%d: %d > %d, продолжаем", quality, size, reference_size)
                continue
            logger.debug("Проба q=%d: %d <= %d, мёртвая зона начинается с %d", quality, size, reference_size, quality + 1)
            threshold = quality + 1
            break

        return max(MIN_QUALITY, min(threshold, NO_DEAD_ZONE))

    def find(self, source: SourceImage, settings: CompressionSettings, reference_size: Optional[int] = None) -> DeadZoneResult:
        """Порог для источника при текущих ограничениях размеров."""
        width, height = self._resize.compute_target_size(
            source.width, source.height, settings.max_width, settings.max_height
        )
        ref_size = source.size_bytes if reference_size is None else reference_size
        threshold = self.find_threshold(source.bitmap, ref_size, width, height, has_alpha=source.has_alpha)
        logger.info("Мёртвая зона для %dx%d: порог %d", width, height, threshold)
        return DeadZoneResult(threshold=threshold, target_size=(width, height))

