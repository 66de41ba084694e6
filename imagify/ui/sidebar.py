"""Боковая панель: открытие файла, информация, параметры сжатия и метрики.

Принципы:
- SRP: управляет только UI параметров, не содержит алгоритмов.
- ISP: выдаёт параметры через компактные методы `get_*`, события через `on_*`.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk
import tkinter as tk

from imagify.models.compression_model import MAX_QUALITY, CompressionResult
from imagify.models.image_model import SourceImage
from imagify.services.stats_service import compression_ratio, format_file_size, size_reduction

DEAD_ZONE_COLOR = "#d9534f"
BAND_HEIGHT = 6


class Sidebar(ctk.CTkFrame):
    """Панель с блоками: файл, информация, сжатие, метрики."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, width=280, **kwargs)

        self.grid_columnconfigure(0, weight=1)

        # Callbacks
        self.on_open_file: Optional[Callable[[], None]] = None
        self.on_quality_change: Optional[Callable[[int], None]] = None
        self.on_dimensions_change: Optional[Callable[[], None]] = None
        self.on_reset: Optional[Callable[[], None]] = None

        self._title = ctk.CTkLabel(self, text="Инструменты", font=ctk.CTkFont(size=16, weight="bold"))
        self._title.grid(row=0, column=0, padx=8, pady=(8, 4), sticky="w")

        self._open_btn = ctk.CTkButton(self, text="Открыть изображение…", command=self._emit_open_file)
        self._open_btn.grid(row=1, column=0, padx=8, pady=(0, 12), sticky="ew")

        # Info section
        self._info_title = ctk.CTkLabel(self, text="Информация", font=ctk.CTkFont(size=16, weight="bold"))
        self._info_title.grid(row=2, column=0, padx=8, pady=(8, 4), sticky="w")

        self._name_val = ctk.StringVar(value="—")
        self._size_val = ctk.StringVar(value="—")
        self._dims_val = ctk.StringVar(value="—")
        self._mode_val = ctk.StringVar(value="—")
        for row, var in enumerate((self._name_val, self._size_val, self._dims_val, self._mode_val), start=3):
            label = ctk.CTkLabel(self, textvariable=var, wraplength=250, anchor="w", justify="left")
            label.grid(row=row, column=0, padx=8, pady=(0, 2), sticky="ew")

        # Compression section
        self._comp_title = ctk.CTkLabel(self, text="Сжатие (JPEG)", font=ctk.CTkFont(size=16, weight="bold"))
        self._comp_title.grid(row=8, column=0, padx=8, pady=(12, 4), sticky="w")

        self._quality_val = ctk.StringVar(value=f"Качество: {MAX_QUALITY}")
        self._quality_label = ctk.CTkLabel(self, textvariable=self._quality_val, anchor="w")
        self._quality_label.grid(row=9, column=0, padx=8, pady=(0, 2), sticky="w")

        self._quality_slider = ctk.CTkSlider(
            self, from_=1, to=MAX_QUALITY, number_of_steps=MAX_QUALITY - 1, command=self._on_quality_slider
        )
        self._quality_slider.set(MAX_QUALITY)
        self._quality_slider.grid(row=10, column=0, padx=8, pady=(0, 0), sticky="ew")

        # полоса мёртвой зоны под слайдером, прижата к правому краю
        self._band = tk.Canvas(self, height=BAND_HEIGHT, highlightthickness=0, bg=self._get_band_bg())
        self._band.grid(row=11, column=0, padx=14, pady=(2, 2), sticky="ew")
        self._band.bind("<Configure>", lambda _e: self._draw_band())
        self._dead_zone_percent = 0
        self._dead_zone_hint = ctk.StringVar(value="")
        ctk.CTkLabel(self, textvariable=self._dead_zone_hint, anchor="w", text_color=DEAD_ZONE_COLOR).grid(
            row=12, column=0, padx=8, pady=(0, 6), sticky="w"
        )

        dims = ctk.CTkFrame(self, fg_color="transparent")
        dims.grid(row=13, column=0, padx=8, pady=(0, 6), sticky="ew")
        dims.grid_columnconfigure((1, 3), weight=1)
        self._max_w_val = ctk.StringVar(value="")
        self._max_h_val = ctk.StringVar(value="")
        ctk.CTkLabel(dims, text="Макс. Ш:").grid(row=0, column=0, padx=(0, 4), sticky="w")
        self._max_w_entry = ctk.CTkEntry(dims, textvariable=self._max_w_val, width=64, placeholder_text="авто")
        self._max_w_entry.grid(row=0, column=1, padx=(0, 8), sticky="ew")
        ctk.CTkLabel(dims, text="В:").grid(row=0, column=2, padx=(0, 4), sticky="w")
        self._max_h_entry = ctk.CTkEntry(dims, textvariable=self._max_h_val, width=64, placeholder_text="авто")
        self._max_h_entry.grid(row=0, column=3, sticky="ew")
        for entry in (self._max_w_entry, self._max_h_entry):
            entry.bind("<KeyRelease>", self._emit_dimensions_change)

        self._reset_btn = ctk.CTkButton(self, text="Показать оригинал", command=self._emit_reset)
        self._reset_btn.grid(row=14, column=0, padx=8, pady=(0, 12), sticky="ew")

        # Metrics section
        self._metrics_title = ctk.CTkLabel(self, text="Метрики", font=ctk.CTkFont(size=16, weight="bold"))
        self._metrics_title.grid(row=15, column=0, padx=8, pady=(8, 4), sticky="w")

        self._badge = ctk.CTkLabel(self, text="Лучшее качество (оригинал)", text_color="#2e8b57")
        self._metric_vals = {
            name: ctk.StringVar(value="-")
            for name in ("PSNR, дБ", "SSIM", "Размер", "Степень сжатия", "Уменьшение, %")
        }
        for row, (name, var) in enumerate(self._metric_vals.items(), start=17):
            line = ctk.CTkFrame(self, fg_color="transparent")
            line.grid(row=row, column=0, padx=8, pady=(0, 2), sticky="ew")
            ctk.CTkLabel(line, text=f"{name}:", width=120, anchor="w").pack(side="left")
            ctk.CTkLabel(line, textvariable=var, anchor="w").pack(side="left")

        # filler
        self.grid_rowconfigure(99, weight=1)

    # ---- Public API ----
    def set_image_info(self, source: SourceImage) -> None:
        """Отображает метаданные загруженного изображения."""
        self._name_val.set(source.name)
        self._size_val.set(format_file_size(source.size_bytes))
        self._dims_val.set(f"{source.width} × {source.height} px")
        alpha = ", прозрачность" if source.has_alpha else ""
        self._mode_val.set(f"{source.format or '?'} / {source.mode}{alpha}")

    def reset_controls(self) -> None:
        """Качество 100, без ограничений размеров; событий не порождает."""
        self._quality_slider.set(MAX_QUALITY)
        self._quality_val.set(f"Качество: {MAX_QUALITY}")
        self._max_w_val.set("")
        self._max_h_val.set("")

    def get_quality(self) -> int:
        return int(round(self._quality_slider.get()))

    def get_max_dimensions(self) -> Tuple[Optional[int], Optional[int]]:
        """Пустое или нечисловое поле означает «без ограничения»."""
        return _parse_dimension(self._max_w_val.get()), _parse_dimension(self._max_h_val.get())

    def set_dead_zone(self, percent: int) -> None:
        self._dead_zone_percent = max(0, min(100, percent))
        if self._dead_zone_percent:
            start = MAX_QUALITY - self._dead_zone_percent + 1
            self._dead_zone_hint.set(f"Качество ≥ {start} увеличит размер файла")
        else:
            self._dead_zone_hint.set("")
        self._draw_band()

    def set_metrics(self, result: CompressionResult) -> None:
        self._metric_vals["PSNR, дБ"].set(f"{result.metrics.psnr:.2f}")
        self._metric_vals["SSIM"].set(f"{result.metrics.ssim:.4f}")
        self._metric_vals["Размер"].set(format_file_size(result.size))
        self._metric_vals["Степень сжатия"].set(f"{compression_ratio(result.reference_size, result.size):.1f}")
        self._metric_vals["Уменьшение, %"].set(f"{size_reduction(result.reference_size, result.size):.1f}")
        if result.is_original_alias:
            self._badge.grid(row=16, column=0, padx=8, pady=(0, 4), sticky="w")
        else:
            self._badge.grid_remove()

    def reset_metrics(self) -> None:
        for var in self._metric_vals.values():
            var.set("-")
        self._badge.grid_remove()

    # ---- Events ----
    def _emit_open_file(self) -> None:
        if self.on_open_file:
            self.on_open_file()

    def _on_quality_slider(self, value: float) -> None:
        quality = int(round(value))
        self._quality_val.set(f"Качество: {quality}")
        if self.on_quality_change:
            self.on_quality_change(quality)

    def _emit_dimensions_change(self, _event: object) -> None:
        if self.on_dimensions_change:
            self.on_dimensions_change()

    def _emit_reset(self) -> None:
        if self.on_reset:
            self.on_reset()

    # ---- Helpers ----
    def _draw_band(self) -> None:
        self._band.delete("all")
        width = int(self._band.winfo_width())
        if width <= 1 or not self._dead_zone_percent:
            return
        start = int(round(width * (1 - self._dead_zone_percent / 100.0)))
        self._band.create_rectangle(start, 0, width, BAND_HEIGHT, fill=DEAD_ZONE_COLOR, width=0)

    def _get_band_bg(self) -> str:
        return "#2b2b2b" if ctk.get_appearance_mode().lower() == "dark" else "#dbdbdb"


def _parse_dimension(text: str) -> Optional[int]:
    try:
        value = int(text.strip())
    except ValueError:
        return None
    return value if value > 0 else None
