"""Оркестратор одного прогона сжатия.

Последовательность стадий:
    Idle → Resizing → Encoding → Decoding → ComputingMetrics → ComputingHeatMap → Idle

При ошибке на любой стадии оркестратор запоминает причину (`last_failure`),
возвращается в Idle и пробрасывает типизированное исключение дальше.
Одновременно активен не более одного прогона; повторный вход — `PipelineBusy`.
Очередь и устаревание запросов — забота `CompressionSession`.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from imagify.models.compression_model import (
    MAX_QUALITY,
    CompressionFailure,
    CompressionResult,
    CompressionSettings,
    PipelineState,
)
from imagify.models.errors import InputInvalid, PipelineBusy
from imagify.models.image_model import Bitmap, EncodedImage, SourceImage
from imagify.services.codec_service import CodecService
from imagify.services.deadzone_service import DeadZoneService
from imagify.services.heatmap_service import HeatMapService
from imagify.services.metric_service import MetricService
from imagify.services.resize_service import ResizeService

logger = logging.getLogger(__name__)


class CompressionOrchestrator:
    def __init__(
        self,
        resize_service: Optional[ResizeService] = None,
        codec_service: Optional[CodecService] = None,
        metric_service: Optional[MetricService] = None,
        heatmap_service: Optional[HeatMapService] = None,
        deadzone_service: Optional[DeadZoneService] = None,
    ) -> None:
        self._resize = resize_service or ResizeService()
        self._codec = codec_service or CodecService(self._resize)
        self._metrics = metric_service or MetricService()
        self._heatmap = heatmap_service or HeatMapService()
        self._deadzone = deadzone_service or DeadZoneService(self._codec, self._resize)

        self._lock = threading.Lock()
        self._state = PipelineState.IDLE
        self._last_failure: Optional[CompressionFailure] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def last_failure(self) -> Optional[CompressionFailure]:
        return self._last_failure

    def compress(
        self,
        source: SourceImage,
        settings: CompressionSettings,
        reference_size: Optional[int] = None,
    ) -> CompressionResult:
        """Сжимает источник по снимку настроек.

        Быстрый путь: качество 100 без изменения размеров — кодирование и
        декодирование пропускаются, результатом становится сам исходный буфер
        (`is_original_alias=True`).

        Raises:
            PipelineBusy: другой прогон ещё не завершён.
            InputInvalid: целевые размеры вычислить нельзя.
            EncodeFailure, DecodeFailure, DimensionMismatch: сбой соответствующей стадии.
        """
        if not self._lock.acquire(blocking=False):
            raise PipelineBusy("Сжатие уже выполняется")
        self._last_failure = None
        try:
            return self._run(source, settings, reference_size)
        except Exception as exc:
            self._last_failure = CompressionFailure(stage=self._state, error=exc)
            logger.warning("Сжатие прервано на стадии %s: %s", self._state.value, exc)
            raise
        finally:
            self._set_state(PipelineState.IDLE)
            self._lock.release()

    def find_dead_zone_threshold(
        self,
        source: SourceImage,
        settings: CompressionSettings,
        reference_size: Optional[int] = None,
    ) -> int:
        """Порог мёртвой зоны для текущих ограничений размеров; на превью не влияет."""
        return self._deadzone.find(source, settings, reference_size).threshold

    # ---- Stages ----
    def _run(self, source: SourceImage, settings: CompressionSettings, reference_size: Optional[int]) -> CompressionResult:
        self._set_state(PipelineState.RESIZING)
        width, height = self._resize.compute_target_size(
            source.width, source.height, settings.max_width, settings.max_height
        )
        if width == 0 or height == 0:
            raise InputInvalid("Целевые размеры равны нулю")
        is_resized = (width, height) != source.bitmap.size

        if settings.quality == MAX_QUALITY and not is_resized:
            logger.debug("Качество 100 без изменения размеров: используется исходный файл")
            encoded: EncodedImage = source.original
            preview = source.bitmap
            compressed = self._opaque(source, source.bitmap)
            reference = compressed
        else:
            target = self._resize.resize(source.bitmap, width, height)

            self._set_state(PipelineState.ENCODING)
            encoded = self._codec.encode(target, settings.quality, has_alpha=source.has_alpha)

            self._set_state(PipelineState.DECODING)
            compressed = self._codec.decode(encoded)
            preview = compressed
            reference = None

        self._set_state(PipelineState.COMPUTING_METRICS)
        if reference is None:
            # эталон всегда в натуральном размере результата
            reference = self._opaque(source, self._resize.resize(source.bitmap, *compressed.size))
        metrics = self._metrics.compare(reference, compressed)

        self._set_state(PipelineState.COMPUTING_HEAT_MAP)
        heat_map = self._heatmap.diff(reference, compressed)

        ref_size = source.size_bytes if reference_size is None else reference_size
        logger.info(
            "Сжатие q=%d %dx%d: %d байт (эталон %d), PSNR %.2f, SSIM %.4f",
            settings.quality, preview.width, preview.height, encoded.size, ref_size, metrics.psnr, metrics.ssim,
        )
        return CompressionResult(
            encoded=encoded,
            is_original_alias=encoded is source.original,
            metrics=metrics,
            heat_map=heat_map,
            bitmap=preview,
            settings=settings,
            reference_size=ref_size,
        )

    def _opaque(self, source: SourceImage, bitmap: Bitmap) -> Bitmap:
        return self._resize.flatten(bitmap) if source.has_alpha else bitmap

    def _set_state(self, state: PipelineState) -> None:
        if state is not self._state:
            logger.debug("Конвейер: %s → %s", self._state.value, state.value)
        self._state = state
