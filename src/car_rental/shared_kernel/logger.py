"""
Логирование для всех контекстов.

Сервисы зависят только от протокола ``ILogger``; реализация по умолчанию
пишет через стандартный модуль ``logging`` и выводит контекст в JSON.
"""

import json
import logging
from typing import Any, Optional, Protocol

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class StdlibLogger(ILogger):
    """Логгер поверх ``logging``: именованный контекст добавляется к сообщению."""

    def __init__(self, name: str = "car_rental", logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, message: str, context: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        self._logger.log(level, message)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)


def get_logger(name: str) -> StdlibLogger:
    return StdlibLogger(name)


def configure_logging(level: str = "INFO", fmt: str = DEFAULT_FORMAT) -> None:
    """Настраивает корневой логгер пакета (вызывается при старте приложения)."""
    root = logging.getLogger("car_rental")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)
