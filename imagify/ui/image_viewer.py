"""Виджет просмотра: оригинал и результат сжатия, режимы сравнения и тепловая карта.

Принципы:
- SRP: отвечает только за представление; растры получает готовыми от контроллера.
- Результат всегда масштабируется к размеру оригинала на экране, даже если сжатие
  уменьшило изображение.
"""
from __future__ import annotations

from typing import Callable, Optional

import customtkinter as ctk
import tkinter as tk
from PIL import Image, ImageTk

from imagify.services.resize_service import ResizeService

MIN_SCALE = 0.1
MAX_SCALE = 4.0
SIDE_GAP = 16


class ImageViewer(ctk.CTkFrame):
    """Канва с режимами «только результат», «шторка» и «2-up» и наложением тепловой карты."""
    def __init__(self, master: ctk.CTk | tk.Misc, preview_size: int = 400, **kwargs) -> None:
        super().__init__(master, **kwargs)
        self._preview_size = preview_size
        self._resize = ResizeService()
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._canvas = tk.Canvas(self, highlightthickness=0, bg=self._get_canvas_bg())
        self._canvas.grid(row=0, column=0, sticky="nsew")

        self._original_image: Optional[Image.Image] = None
        self._compressed_image: Optional[Image.Image] = None
        self._heat_map: Optional[Image.Image] = None
        self._heat_map_visible = False
        # PhotoImage нужно держать, иначе Tk освободит картинку
        self._tk_images: list[ImageTk.PhotoImage] = []

        self._scale_factor = 1.0
        self._fit_scale_factor = 1.0

        self.on_zoom_change: Optional[Callable[[int], None]] = None

        # compare modes: "off" | "wipe" | "side_by_side"
        self._compare_mode = "off"
        self._wipe_ratio = 0.5

        self._canvas.bind("<Configure>", self._on_canvas_resize)
        self._canvas.bind("<MouseWheel>", self._on_mouse_wheel)
        self._canvas.bind("<Button-4>", self._on_mouse_wheel_linux)
        self._canvas.bind("<Button-5>", self._on_mouse_wheel_linux)

    # ---- Public API ----
    def set_image(self, image: Image.Image) -> None:
        """Устанавливает оригинал и сбрасывает результат, карту и масштаб."""
        self._original_image = image
        self._compressed_image = None
        self._heat_map = None
        self._compute_fit_scale()
        self._scale_factor = self._preview_scale()
        self._render_image()

    def set_compressed_image(self, image: Optional[Image.Image], heat_map: Optional[Image.Image] = None) -> None:
        """Устанавливает результат сжатия и его тепловую карту (оба в натуральном размере результата)."""
        self._compressed_image = image
        self._heat_map = heat_map
        self._render_image()

    def set_heat_map_visible(self, visible: bool) -> None:
        self._heat_map_visible = visible
        self._render_image()

    def is_heat_map_visible(self) -> bool:
        return self._heat_map_visible

    def clear(self) -> None:
        self._original_image = None
        self._compressed_image = None
        self._heat_map = None
        self._render_image()

    def set_zoom_to_fit(self) -> None:
        self._compute_fit_scale()
        self._scale_factor = self._fit_scale_factor
        self._render_image()

    def set_zoom_percent(self, zoom_percent: int) -> None:
        """Устанавливает масштаб в процентах (10–400%)."""
        self._scale_factor = max(MIN_SCALE, min(MAX_SCALE, zoom_percent / 100.0))
        self._render_image()

    def get_zoom_percent(self) -> int:
        return int(round(self._scale_factor * 100))

    def set_compare_mode(self, mode: str) -> None:
        """Режим сравнения: 'Результат' | 'Шторка' | '2-up'."""
        mapping = {"Результат": "off", "Шторка": "wipe", "2-up": "side_by_side"}
        self._compare_mode = mapping.get(mode, "off")
        self._render_image()

    def set_wipe_percent(self, percent: int) -> None:
        self._wipe_ratio = max(0.0, min(1.0, percent / 100.0))
        if self._compare_mode == "wipe":
            self._render_image()

    # ---- Internals ----
    def _on_canvas_resize(self, _event: tk.Event) -> None:
        if self._original_image is None:
            return
        self._compute_fit_scale()
        self._render_image()

    def _after_layer(self, size: tuple[int, int]) -> Optional[Image.Image]:
        if self._compressed_image is None:
            return None
        after = self._compressed_image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)
        if self._heat_map_visible and self._heat_map is not None:
            overlay = self._heat_map.resize(size, Image.Resampling.NEAREST)
            after = Image.alpha_composite(after, overlay)
        return after

    def _render_image(self) -> None:
        self._canvas.delete("all")
        self._tk_images = []
        if self._original_image is None:
            return

        canvas_w = int(self._canvas.winfo_width())
        canvas_h = int(self._canvas.winfo_height())
        img_w, img_h = self._original_image.size
        scaled = (max(1, int(img_w * self._scale_factor)), max(1, int(img_h * self._scale_factor)))

        before = self._original_image.resize(scaled, Image.Resampling.LANCZOS)
        after = self._after_layer(scaled)

        if self._compare_mode == "side_by_side" and after is not None:
            content_w = scaled[0] * 2 + SIDE_GAP
        else:
            content_w = scaled[0]
        ox = max(0, (canvas_w - content_w) // 2)
        oy = max(0, (canvas_h - scaled[1]) // 2)

        if after is None:
            self._draw(before, ox, oy)
        elif self._compare_mode == "wipe":
            split = int(round(scaled[0] * self._wipe_ratio))
            self._draw(before.crop((0, 0, split, scaled[1])), ox, oy)
            self._draw(after.crop((split, 0, scaled[0], scaled[1])), ox + split, oy)
        elif self._compare_mode == "side_by_side":
            self._draw(before, ox, oy)
            self._draw(after, ox + scaled[0] + SIDE_GAP, oy)
        else:
            self._draw(after, ox, oy)

    def _draw(self, image: Image.Image, x: int, y: int) -> None:
        if image.width == 0 or image.height == 0:
            return
        photo = ImageTk.PhotoImage(image)
        self._tk_images.append(photo)
        self._canvas.create_image(x, y, image=photo, anchor="nw")

    def _compute_fit_scale(self) -> None:
        if self._original_image is None:
            self._fit_scale_factor = 1.0
            return
        canvas_w = max(1, int(self._canvas.winfo_width()))
        canvas_h = max(1, int(self._canvas.winfo_height()))
        img_w, img_h = self._original_image.size
        self._fit_scale_factor = max(MIN_SCALE, min(MAX_SCALE, min(canvas_w / img_w, canvas_h / img_h)))

    def _preview_scale(self) -> float:
        """Начальный масштаб: изображение вписывается в квадрат preview_size без увеличения."""
        img_w, img_h = self._original_image.size
        width, _ = self._resize.compute_target_size(img_w, img_h, self._preview_size, self._preview_size)
        return max(MIN_SCALE, min(MAX_SCALE, width / img_w))

    def _get_canvas_bg(self) -> str:
        return "#1f1f1f" if ctk.get_appearance_mode().lower() == "dark" else "#f2f2f2"

    def _on_mouse_wheel(self, event: tk.Event) -> None:
        if self._original_image is None or event.delta == 0:
            return
        self._zoom_by(1.1 if event.delta > 0 else 1.0 / 1.1)

    def _on_mouse_wheel_linux(self, event: tk.Event) -> None:
        # X11: колесо приходит как Button-4 (вверх) и Button-5 (вниз)
        if self._original_image is None:
            return
        self._zoom_by(1.1 if getattr(event, "num", None) == 4 else 1.0 / 1.1)

    def _zoom_by(self, factor: float) -> None:
        new_scale = max(MIN_SCALE, min(MAX_SCALE, self._scale_factor * factor))
        if abs(new_scale - self._scale_factor) < 1e-6:
            return
        self._scale_factor = new_scale
        self._render_image()
        if self.on_zoom_change:
            self.on_zoom_change(self.get_zoom_percent())
