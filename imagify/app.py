from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from imagify.config import AppConfig
from imagify.controllers.app_controller import AppController
from imagify.ui.bottom_bar import BottomBar
from imagify.ui.image_viewer import ImageViewer
from imagify.ui.sidebar import Sidebar


class ImagifyApp(ctk.CTk):
    def __init__(self, config: Optional[AppConfig] = None) -> None:
        super().__init__()
        self._config = config or AppConfig()
        ctk.set_appearance_mode("system")
        ctk.set_default_color_theme("blue")

        self.title("Imagify")
        self.minsize(1000, 640)

        # root layout: left viewer, right sidebar
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=0)

        self._viewer = ImageViewer(self, preview_size=self._config.preview_size)
        self._viewer.grid(row=0, column=0, sticky="nsew", padx=(12, 6), pady=(12, 6))

        self._sidebar = Sidebar(self)
        self._sidebar.grid(row=0, column=1, sticky="ns", padx=(6, 12), pady=(12, 6))

        self._bottom = BottomBar(self, notice_timeout_ms=self._config.notice_timeout_ms)
        self._bottom.grid(row=1, column=0, columnspan=2, sticky="ew", padx=12, pady=(0, 12))

        self._controller = AppController(
            viewer=self._viewer, sidebar=self._sidebar, bottom=self._bottom, window=self, config=self._config
        )
        self._controller.bind_events()
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    def open_path(self, file_path: str) -> None:
        self._controller.open_path(file_path)

    def _on_close(self) -> None:
        self._controller.shutdown()
        self.destroy()
