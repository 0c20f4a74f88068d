"""
Настройки приложения.

Значения по умолчанию подходят для немецкого рынка (EUR, НДС 19%);
любое поле можно переопределить переменной окружения ``CAR_RENTAL_<ПОЛЕ>``.
"""

import os
from decimal import Decimal
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "CAR_RENTAL_"


def _to_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Неизменяемый снимок конфигурации."""

    model_config = ConfigDict(frozen=True)

    default_currency: str = Field("EUR", pattern=r"^[A-Z]{3}$")
    default_vat_rate: Decimal = Field(Decimal("0.19"), ge=0, le=1)
    default_page_size: int = Field(20, ge=1, le=100)
    # Неизвестное поле сортировки: ошибка вместо сортировки по умолчанию
    strict_sort_fields: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Читает настройки из переменных окружения с префиксом ``CAR_RENTAL_``."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            values[name] = _to_bool(raw) if name == "strict_sort_fields" else raw
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
