"""Точка входа в приложение."""
from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Optional, Sequence

from imagify.config import AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imagify", description="Сжатие изображений в JPEG с оценкой качества.")
    parser.add_argument("image", nargs="?", help="Изображение, которое открыть сразу")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--debounce-ms", type=int, default=None, help="Окно тишины перед пересжатием, мс")
    return parser


def load_config(args: argparse.Namespace) -> AppConfig:
    """Переменные окружения IMAGIFY_* и поверх них аргументы командной строки."""
    config = AppConfig.from_env()
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if args.debounce_ms is not None:
        overrides["debounce_ms"] = args.debounce_ms
    return replace(config, **overrides) if overrides else config


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Создаёт и запускает главное окно приложения."""
    args = build_parser().parse_args(argv)
    config = load_config(args)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # tkinter нужен только для окна, разбор аргументов без него
    from imagify.app import ImagifyApp

    app = ImagifyApp(config)
    if args.image:
        app.after(100, lambda: app.open_path(args.image))
    app.mainloop()


if __name__ == "__main__":
    main()
