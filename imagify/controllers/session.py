"""Сессия сжатия: один логический исполнитель на одно изображение.

Принципы:
- Быстрые изменения настроек схлопываются: после окна тишины выполняется только
  последний снимок, промежуточные отбрасываются, а не ставятся в очередь.
- Каждый снимок получает номер версии; результат прогона, версия которого уже
  не последняя, отбрасывается при получении.
- Мёртвая зона пересчитывается до сжатия, если изменились ограничения размеров,
  чтобы полоса предупреждения соответствовала показанному результату.
- Колбэки вызываются в потоке исполнителя и получают номер версии прогона; UI сам
  переносит их в свой поток и там повторно проверяет актуальность через `is_current`.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from imagify.models.compression_model import (
    NO_DEAD_ZONE,
    CompressionFailure,
    CompressionResult,
    CompressionSettings,
    PipelineState,
)
from imagify.models.errors import InputInvalid
from imagify.models.image_model import SourceImage
from imagify.services.compression_service import CompressionOrchestrator

logger = logging.getLogger(__name__)

DimensionKey = Tuple[Optional[int], Optional[int]]


@dataclass(frozen=True)
class _Request:
    version: int
    source: SourceImage
    settings: CompressionSettings
    force_dead_zone: bool
    deadline: float


class CompressionSession:
    def __init__(
        self,
        orchestrator: Optional[CompressionOrchestrator] = None,
        debounce_s: float = 0.2,
        on_result: Optional[Callable[[CompressionResult, int], None]] = None,
        on_dead_zone: Optional[Callable[[int, int], None]] = None,
        on_failure: Optional[Callable[[CompressionFailure, int], None]] = None,
        on_busy_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._orchestrator = orchestrator or CompressionOrchestrator()
        self._debounce_s = max(0.0, debounce_s)
        self.on_result = on_result
        self.on_dead_zone = on_dead_zone
        self.on_failure = on_failure
        self.on_busy_change = on_busy_change

        self._cond = threading.Condition()
        self._version = 0
        self._source: Optional[SourceImage] = None
        self._settings = CompressionSettings()
        self._pending: Optional[_Request] = None
        self._running = False
        self._closed = False
        # ограничения размеров, для которых показан текущий порог мёртвой зоны
        self._dead_zone_dims: Optional[DimensionKey] = None

        self._thread = threading.Thread(target=self._worker, name="imagify-session", daemon=True)
        self._thread.start()

    # ---- Public API ----
    @property
    def version(self) -> int:
        with self._cond:
            return self._version

    @property
    def source(self) -> Optional[SourceImage]:
        with self._cond:
            return self._source

    @property
    def settings(self) -> CompressionSettings:
        with self._cond:
            return self._settings

    def load(self, source: SourceImage, settings: Optional[CompressionSettings] = None) -> int:
        """Начинает работу с новым источником: мёртвая зона и сжатие запускаются сразу."""
        with self._cond:
            self._source = source
            self._dead_zone_dims = None
            return self._enqueue(settings or CompressionSettings(), force_dead_zone=True, delay=0.0)

    def submit(self, settings: CompressionSettings, immediate: bool = False) -> int:
        """Ставит снимок настроек как единственный ожидающий запрос (вытесняя предыдущий).

        Returns:
            Номер версии снимка; 0, если источник ещё не загружен.
        """
        with self._cond:
            if self._source is None:
                self._settings = settings
                return 0
            return self._enqueue(settings, force_dead_zone=False, delay=0.0 if immediate else self._debounce_s)

    def reset(self) -> int:
        """Возврат к оригиналу: качество 100 без ограничений, без ожидания окна тишины."""
        with self._cond:
            if self._source is None:
                self._settings = CompressionSettings()
                return 0
            return self._enqueue(CompressionSettings(), force_dead_zone=True, delay=0.0)

    def is_current(self, version: int) -> bool:
        with self._cond:
            return version == self._version

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Ждёт, пока не останется ни ожидающих, ни выполняющихся запросов."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending is None and not self._running, timeout)

    def close(self, timeout: Optional[float] = 2.0) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()
        self._thread.join(timeout)

    # ---- Internals ----
    def _enqueue(self, settings: CompressionSettings, force_dead_zone: bool, delay: float) -> int:
        # вызывается под self._cond
        if self._source is None:
            raise InputInvalid("Источник не загружен")
        self._version += 1
        self._settings = settings
        if self._pending is not None:
            logger.debug("Запрос v%d вытеснен v%d", self._pending.version, self._version)
            force_dead_zone = force_dead_zone or self._pending.force_dead_zone
        self._pending = _Request(
            version=self._version,
            source=self._source,
            settings=settings,
            force_dead_zone=force_dead_zone,
            deadline=time.monotonic() + delay,
        )
        self._cond.notify_all()
        return self._version

    def _next_request(self) -> Optional[_Request]:
        with self._cond:
            while True:
                if self._closed:
                    return None
                if self._pending is None:
                    self._cond.wait()
                    continue
                remaining = self._pending.deadline - time.monotonic()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                request, self._pending = self._pending, None
                self._running = True
                return request

    def _worker(self) -> None:
        while True:
            request = self._next_request()
            if request is None:
                return
            self._emit(self.on_busy_change, True)
            try:
                self._process(request)
            finally:
                with self._cond:
                    self._running = False
                    idle = self._pending is None
                    self._cond.notify_all()
                if idle:
                    self._emit(self.on_busy_change, False)

    def _process(self, request: _Request) -> None:
        settings = request.settings
        dims = (settings.max_width, settings.max_height)

        with self._cond:
            need_dead_zone = request.force_dead_zone or dims != self._dead_zone_dims
        if need_dead_zone:
            threshold = self._find_dead_zone(request)
            with self._cond:
                if request.version != self._version:
                    logger.debug("Мёртвая зона v%d устарела, сжатие пропущено", request.version)
                    return
                self._dead_zone_dims = dims
            self._emit(self.on_dead_zone, threshold, request.version)

        try:
            result = self._orchestrator.compress(request.source, settings)
        except Exception as exc:
            failure = self._orchestrator.last_failure or CompressionFailure(stage=PipelineState.IDLE, error=exc)
            if self.is_current(request.version):
                self._emit(self.on_failure, failure, request.version)
            else:
                logger.debug("Ошибка устаревшего прогона v%d отброшена: %s", request.version, exc)
            return

        if not self.is_current(request.version):
            logger.debug("Результат v%d устарел и отброшен", request.version)
            return
        self._emit(self.on_result, result, request.version)

    def _find_dead_zone(self, request: _Request) -> int:
        try:
            return self._orchestrator.find_dead_zone_threshold(request.source, request.settings)
        except Exception:
            logger.exception("Не удалось вычислить мёртвую зону для v%d", request.version)
            return NO_DEAD_ZONE

    @staticmethod
    def _emit(callback: Optional[Callable], *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Ошибка в обработчике сессии")
