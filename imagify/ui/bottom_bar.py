"""Нижняя панель: масштаб, сравнение, тепловая карта, сохранение и строка состояния."""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk

ERROR_COLOR = "#d9534f"
WARNING_COLOR = "#e0a526"
COMPARE_MODES = ("Результат", "Шторка", "2-up")
WIPE_MODE = "Шторка"


class BottomBar(ctk.CTkFrame):
    def __init__(self, master: ctk.CTk, notice_timeout_ms: int = 5000, **kwargs) -> None:
        super().__init__(master, height=64, **kwargs)
        self._notice_timeout_ms = notice_timeout_ms
        self._notice_job: Optional[str] = None
        self._heat_visible = False

        self.on_zoom_change: Optional[Callable[[int], None]] = None
        self.on_zoom_fit: Optional[Callable[[], None]] = None
        self.on_compare_mode_change: Optional[Callable[[str], None]] = None
        self.on_wipe_change: Optional[Callable[[int], None]] = None
        self.on_heat_map_toggle: Optional[Callable[[bool], None]] = None
        self.on_save: Optional[Callable[[], None]] = None

        self.grid_rowconfigure((0, 1), weight=1)
        self.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(self, text="Масштаб, %").grid(row=0, column=0, padx=(10, 6), pady=8, sticky="w")
        self._zoom, self._zoom_text, self._zoom_caption = self._percent_slider(10, 400, 100, self._emit_zoom)
        self._zoom.grid(row=0, column=1, padx=6, pady=8, sticky="ew")
        self._zoom_caption.grid(row=0, column=2, padx=6, pady=8, sticky="w")
        ctk.CTkButton(self, text="Вписать", width=64, command=self._emit_fit).grid(row=0, column=3, padx=6, pady=8)

        self._mode_menu = ctk.CTkOptionMenu(self, values=list(COMPARE_MODES), command=self._emit_compare_mode)
        self._mode_menu.set(COMPARE_MODES[0])
        self._mode_menu.grid(row=0, column=4, padx=6, pady=8)

        # положение шторки, видно только в режиме WIPE_MODE
        self._wipe, self._wipe_text, self._wipe_caption = self._percent_slider(0, 100, 50, self._emit_wipe)

        self._heat_btn = ctk.CTkButton(self, text=self._heat_caption(), command=self._toggle_heat_map)
        self._heat_btn.grid(row=0, column=7, padx=6, pady=8)
        ctk.CTkButton(self, text="Сохранить…", command=self._emit_save).grid(row=0, column=8, padx=(6, 10), pady=8)

        self._status_text = ctk.StringVar(value="Откройте изображение, чтобы начать.")
        self._status = ctk.CTkLabel(self, textvariable=self._status_text, anchor="w")
        self._status.grid(row=1, column=0, columnspan=9, padx=10, pady=(0, 6), sticky="ew")
        self._default_text_color = self._status.cget("text_color")

    # ---- Public API ----
    def set_zoom_percent(self, percent: int) -> None:
        self._zoom.set(percent)
        self._zoom_text.set(f"{percent}%")

    def set_busy(self, busy: bool) -> None:
        self.set_status("Обработка…" if busy else "Готово.")

    def set_status(self, text: str) -> None:
        # уведомление важнее статуса, пока не скрыто
        if self._notice_job is None:
            self._status_text.set(text)

    def show_notice(self, message: str) -> None:
        """Показывает уведомление и скрывает его через notice_timeout_ms.

        Сообщения, начинающиеся с "Warning:", считаются предупреждениями.
        """
        is_warning = message.lower().startswith("warning:")
        self._status.configure(text_color=WARNING_COLOR if is_warning else ERROR_COLOR)
        self._status_text.set(message)
        if self._notice_job is not None:
            self.after_cancel(self._notice_job)
        self._notice_job = self.after(self._notice_timeout_ms, self.hide_notice)

    def hide_notice(self) -> None:
        if self._notice_job is not None:
            self.after_cancel(self._notice_job)
            self._notice_job = None
        self._status.configure(text_color=self._default_text_color)
        self._status_text.set("")

    # ---- Events ----
    def _emit_zoom(self, percent: int) -> None:
        if self.on_zoom_change:
            self.on_zoom_change(percent)

    def _emit_fit(self) -> None:
        if self.on_zoom_fit:
            self.on_zoom_fit()

    def _emit_compare_mode(self, mode: str) -> None:
        self._show_wipe(mode == WIPE_MODE)
        if self.on_compare_mode_change:
            self.on_compare_mode_change(mode)

    def _emit_wipe(self, percent: int) -> None:
        if self.on_wipe_change:
            self.on_wipe_change(percent)

    def _toggle_heat_map(self) -> None:
        self._heat_visible = not self._heat_visible
        self._heat_btn.configure(text=self._heat_caption())
        if self.on_heat_map_toggle:
            self.on_heat_map_toggle(self._heat_visible)

    def _emit_save(self) -> None:
        if self.on_save:
            self.on_save()

    # ---- Helpers ----
    def _percent_slider(
        self, low: int, high: int, initial: int, emit: Callable[[int], None]
    ) -> Tuple[ctk.CTkSlider, ctk.StringVar, ctk.CTkLabel]:
        text = ctk.StringVar(value=f"{initial}%")

        def on_move(value: float) -> None:
            percent = int(round(value))
            text.set(f"{percent}%")
            emit(percent)

        slider = ctk.CTkSlider(self, from_=low, to=high, number_of_steps=high - low, command=on_move)
        slider.set(initial)
        caption = ctk.CTkLabel(self, textvariable=text, width=44, anchor="w")
        return slider, text, caption

    def _show_wipe(self, visible: bool) -> None:
        if not visible:
            self._wipe.grid_remove()
            self._wipe_caption.grid_remove()
            return
        self._wipe.grid(row=0, column=5, padx=6, pady=8, sticky="ew")
        self._wipe_caption.grid(row=0, column=6, padx=(0, 6), pady=8, sticky="w")

    def _heat_caption(self) -> str:
        return "Скрыть тепловую карту" if self._heat_visible else "Показать тепловую карту"
