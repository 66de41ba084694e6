"""Настройки приложения.

Значения по умолчанию подходят для интерактивной работы; любое поле можно
переопределить переменной окружения `IMAGIFY_<ИМЯ_ПОЛЯ>`.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from imagify.models.errors import InputInvalid

_ENV_PREFIX = "IMAGIFY_"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppConfig:
    """Параметры сессии и интерфейса.

    Fields:
        debounce_ms: Окно тишины, после которого запускается последний снимок настроек.
        max_file_bytes: Максимальный размер загружаемого файла.
        notice_timeout_ms: Через сколько скрывать уведомление об ошибке.
        preview_size: Сторона квадрата, в который вписывается превью.
        log_level: Уровень логирования.
    """
    debounce_ms: int = 200
    max_file_bytes: int = 10 * 1024 * 1024
    notice_timeout_ms: int = 5000
    preview_size: int = 400
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.debounce_ms < 0:
            raise InputInvalid(f"debounce_ms не может быть отрицательным: {self.debounce_ms}")
        for name in ("max_file_bytes", "notice_timeout_ms", "preview_size"):
            if getattr(self, name) <= 0:
                raise InputInvalid(f"{name} должно быть положительным: {getattr(self, name)}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise InputInvalid(f"Неизвестный уровень логирования: {self.log_level}")

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Собирает конфигурацию из переменных окружения поверх значений по умолчанию."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            key = _ENV_PREFIX + f.name.upper()
            raw = env.get(key)
            if raw is None or raw == "":
                continue
            if f.type in ("int", int):
                try:
                    overrides[f.name] = int(raw)
                except ValueError as exc:
                    raise InputInvalid(f"{key}: ожидалось целое число, получено {raw!r}") from exc
            else:
                overrides[f.name] = raw.strip().upper()
        return cls(**overrides)
