"""Модели настроек и результатов сжатия.

Принципы:
- SRP: только структуры данных; валидация настроек выполняется при создании снимка.
- Снимок настроек передаётся в ядро по значению, ядро его не изменяет.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from imagify.models.errors import InputInvalid
from imagify.models.image_model import Bitmap, EncodedImage, HeatMap

MIN_QUALITY = 1
MAX_QUALITY = 100
NO_DEAD_ZONE = 101


@dataclass(frozen=True)
class CompressionSettings:
    """Снимок пользовательских настроек.

    Fields:
        quality: Качество 1–100 включительно.
        max_width: Ограничение ширины, px; None — без ограничения.
        max_height: Ограничение высоты, px; None — без ограничения.
    """
    quality: int = MAX_QUALITY
    max_width: Optional[int] = None
    max_height: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.quality, bool) or not isinstance(self.quality, int):
            raise InputInvalid(f"Качество должно быть целым числом: {self.quality!r}")
        if not MIN_QUALITY <= self.quality <= MAX_QUALITY:
            raise InputInvalid(f"Качество вне диапазона [{MIN_QUALITY}, {MAX_QUALITY}]: {self.quality}")
        for name in ("max_width", "max_height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InputInvalid(f"{name} должно быть положительным: {value}")

    def same_dimensions(self, other: "CompressionSettings") -> bool:
        return (self.max_width, self.max_height) == (other.max_width, other.max_height)


@dataclass(frozen=True)
class MetricResult:
    """PSNR в дБ (≥ 0, не более 100) и SSIM в [0, 1]."""
    psnr: float
    ssim: float


@dataclass(frozen=True)
class DeadZoneResult:
    """Порог «мёртвой зоны» для конкретных целевых размеров.

    Качества в полуинтервале (threshold, 100] ожидаемо дают файл больше исходного.
    threshold = 101 означает, что мёртвой зоны в проверенном диапазоне нет.
    """
    threshold: int
    target_size: Tuple[int, int]

    @property
    def exists(self) -> bool:
        return self.threshold <= MAX_QUALITY


class PipelineState(Enum):
    IDLE = "idle"
    RESIZING = "resizing"
    ENCODING = "encoding"
    DECODING = "decoding"
    COMPUTING_METRICS = "computing_metrics"
    COMPUTING_HEAT_MAP = "computing_heat_map"


@dataclass(frozen=True)
class CompressionResult:
    """Результат одного прогона конвейера.

    Fields:
        encoded: Закодированный результат или сам исходный буфер (быстрый путь).
        is_original_alias: `encoded` является тем же объектом, что и исходный файл.
        metrics: PSNR/SSIM относительно источника того же размера.
        heat_map: Карта различий в натуральном размере результата.
        bitmap: Декодированный результат (для превью).
        settings: Снимок настроек, с которыми выполнен прогон.
        reference_size: Размер эталона в байтах для расчёта степени сжатия.
    """
    encoded: EncodedImage
    is_original_alias: bool
    metrics: MetricResult
    heat_map: HeatMap
    bitmap: Bitmap
    settings: CompressionSettings
    reference_size: int = 0

    @property
    def size(self) -> int:
        return self.encoded.size

    @property
    def target_size(self) -> Tuple[int, int]:
        return self.bitmap.size


@dataclass(frozen=True)
class CompressionFailure:
    """Причина сбоя прогона: стадия, на которой он произошёл, и исходная ошибка."""
    stage: PipelineState
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


@dataclass(frozen=True)
class DownloadChoice:
    """Что и под каким именем сохранять.

    Fields:
        encoded: Буфер для записи.
        filename: Предлагаемое имя файла.
        warning: Предупреждение для пользователя, если вместо результата отдаётся оригинал.
    """
    encoded: EncodedImage
    filename: str
    warning: Optional[str] = None
