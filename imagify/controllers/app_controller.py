"""Контроллер приложения: связывает UI с сессией сжатия.

SOLID:
- SRP: класс управляет связями между UI и сервисами (без логики обработки изображений).
- DIP: зависит от сервисов как от ролей; конкретные реализации создаются по умолчанию.
Clean Code:
- Обработчики компактны; тяжёлая работа выполняется в потоке сессии, а её
  результаты переносятся в поток Tk через `after(0, ...)`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from tkinter import TclError, filedialog
from typing import Callable, Optional

import customtkinter as ctk

from imagify.config import AppConfig
from imagify.controllers.session import CompressionSession
from imagify.models.compression_model import CompressionFailure, CompressionResult, CompressionSettings
from imagify.models.errors import InputInvalid
from imagify.models.image_model import SourceImage
from imagify.services.export_service import ExportService
from imagify.services.image_service import ImageService
from imagify.services.stats_service import dead_zone_width
from imagify.ui.bottom_bar import BottomBar
from imagify.ui.image_viewer import ImageViewer
from imagify.ui.sidebar import Sidebar

logger = logging.getLogger(__name__)


@dataclass
class AppController:
    """Связывает элементы UI с прикладной логикой.

    Ответственности:
    - Бинд событий UI -> контроллер.
    - Загрузка изображений через `ImageService`.
    - Передача снимков настроек в `CompressionSession` и отображение её результатов.
    - Сохранение результата через `ExportService`.
    """
    viewer: ImageViewer
    sidebar: Sidebar
    bottom: BottomBar
    window: ctk.CTk
    config: AppConfig = field(default_factory=AppConfig)

    _image_service: ImageService = field(init=False)
    _export_service: ExportService = field(default_factory=ExportService, init=False)
    _session: CompressionSession = field(init=False)
    _source: Optional[SourceImage] = field(default=None, init=False)
    _last_result: Optional[CompressionResult] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._image_service = ImageService(max_file_bytes=self.config.max_file_bytes)
        self._session = CompressionSession(
            debounce_s=self.config.debounce_s,
            on_result=self._on_ui_thread(self._show_result),
            on_dead_zone=self._on_ui_thread(self._show_dead_zone),
            on_failure=self._on_ui_thread(self._show_failure),
            on_busy_change=self._on_ui_thread(self.bottom.set_busy),
        )

    def bind_events(self) -> None:
        """Регистрирует обработчики событий между UI-компонентами."""
        self.sidebar.on_open_file = self._handle_open_file
        self.sidebar.on_quality_change = self._handle_quality_change
        self.sidebar.on_dimensions_change = self._handle_settings_change
        self.sidebar.on_reset = self._handle_reset

        self.viewer.on_zoom_change = self.bottom.set_zoom_percent

        self.bottom.on_zoom_change = self.viewer.set_zoom_percent
        self.bottom.on_zoom_fit = self._handle_zoom_fit
        self.bottom.on_compare_mode_change = self.viewer.set_compare_mode
        self.bottom.on_wipe_change = self.viewer.set_wipe_percent
        self.bottom.on_heat_map_toggle = self.viewer.set_heat_map_visible
        self.bottom.on_save = self._handle_save

    def shutdown(self) -> None:
        self._session.close()

    def open_path(self, file_path: str) -> None:
        """Загружает изображение и запускает сессию: сначала мёртвая зона, затем сжатие."""
        try:
            source = self._image_service.load_image(file_path)
        except (FileNotFoundError, InputInvalid) as exc:
            self.bottom.show_notice(str(exc))
            return

        self._source = source
        self._last_result = None
        self.viewer.set_image(source.bitmap.to_pil())
        self.sidebar.set_image_info(source)
        self.sidebar.reset_controls()
        self.sidebar.reset_metrics()
        self.sidebar.set_dead_zone(0)
        self.bottom.hide_notice()
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())
        self._session.load(source)

    # ---- Handlers ----
    def _handle_open_file(self) -> None:
        try:
            file_path = filedialog.askopenfilename(
                title="Выберите изображение",
                filetypes=(
                    ("Images", "*.png *.jpg *.jpeg *.webp *.bmp *.gif *.tiff"),
                    ("All files", "*.*"),
                ),
            )
        except TclError:
            # Silent fail if dialog cannot open
            return
        if file_path:
            self.open_path(file_path)

    def _handle_quality_change(self, _quality: int) -> None:
        self._handle_settings_change()

    def _handle_settings_change(self) -> None:
        max_w, max_h = self.sidebar.get_max_dimensions()
        try:
            settings = CompressionSettings(quality=self.sidebar.get_quality(), max_width=max_w, max_height=max_h)
        except InputInvalid as exc:
            self.bottom.show_notice(str(exc))
            return
        self._session.submit(settings)

    def _handle_reset(self) -> None:
        self.sidebar.reset_controls()
        self._session.reset()

    def _handle_zoom_fit(self) -> None:
        self.viewer.set_zoom_to_fit()
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())

    def _handle_save(self) -> None:
        if self._source is None or self._last_result is None:
            self.bottom.show_notice("Нет результата для сохранения.")
            return
        choice = self._export_service.choose_download(
            self._source, self._last_result, self._last_result.settings.quality
        )
        if choice.warning:
            self.bottom.show_notice(choice.warning)
        try:
            path = filedialog.asksaveasfilename(initialfile=choice.filename)
        except TclError:
            return
        if not path:
            return
        try:
            saved = self._export_service.save(choice, path)
        except OSError as exc:
            self.bottom.show_notice(f"Не удалось сохранить: {exc}")
            return
        self.bottom.set_status(f"Сохранено: {saved.name}")

    # ---- Session callbacks (Tk thread) ----
    def _show_result(self, result: CompressionResult, version: int) -> None:
        # между проверкой в потоке сессии и этой точкой мог открыться другой файл
        if not self._session.is_current(version):
            logger.debug("Результат v%d устарел до отображения", version)
            return
        self._last_result = result
        self.viewer.set_compressed_image(result.bitmap.to_pil(), result.heat_map.to_pil())
        self.sidebar.set_metrics(result)

    def _show_dead_zone(self, threshold: int, version: int) -> None:
        if not self._session.is_current(version):
            return
        self.sidebar.set_dead_zone(dead_zone_width(threshold))

    def _show_failure(self, failure: CompressionFailure, version: int) -> None:
        if not self._session.is_current(version):
            return
        logger.warning("Ошибка сжатия (%s): %s", failure.stage.value, failure.message)
        self.sidebar.reset_metrics()
        self.bottom.show_notice(f"Ошибка сжатия: {failure.message}")

    def _on_ui_thread(self, handler: Callable[..., None]) -> Callable[..., None]:
        def dispatch(*args: object) -> None:
            try:
                self.window.after(0, lambda: handler(*args))
            except (RuntimeError, TclError):
                # окно уже закрыто
                logger.debug("Событие сессии после закрытия окна пропущено")
        return dispatch
