"""Выбор буфера для сохранения и формирование имени файла.

Если результат — сам исходный файл, сохраняется он. Если повторное кодирование
дало файл больше исходного (и качество не 100), вместо него отдаётся оригинал
с предупреждением.
"""
from __future__ import annotations

import logging
from pathlib import Path

from imagify.models.compression_model import MAX_QUALITY, CompressionResult, DownloadChoice
from imagify.models.image_model import SourceImage
from imagify.services.stats_service import format_file_size

logger = logging.getLogger(__name__)


def split_name(name: str) -> tuple[str, str]:
    """Делит имя по последней точке; без расширения — "file", пустая основа — "download"."""
    base, dot, ext = name.rpartition(".")
    if not dot:
        base, ext = name, "file"
    return base or "download", ext


class ExportService:
    def choose_download(self, source: SourceImage, result: CompressionResult, quality: int) -> DownloadChoice:
        base, ext = split_name(source.name)
        original_name = f"{base}_original.{ext}"

        if result.encoded is source.original:
            return DownloadChoice(encoded=source.original, filename=original_name)

        if result.size > source.size_bytes and quality != MAX_QUALITY:
            warning = (
                f"Warning: Quality {quality}% file is larger ({format_file_size(result.size)}) "
                f"than original ({format_file_size(source.size_bytes)}). Downloading original."
            )
            logger.warning(warning)
            return DownloadChoice(encoded=source.original, filename=original_name, warning=warning)

        return DownloadChoice(encoded=result.encoded, filename=f"{base}_compressed_q{quality}.jpg")

    def save(self, choice: DownloadChoice, destination: str | Path) -> Path:
        """Записывает выбранный буфер на диск и возвращает путь."""
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(choice.encoded.data)
        logger.info("Сохранено %s (%s)", path, format_file_size(choice.encoded.size))
        return path
