"""
Модуль контекста ценообразования (Pricing Context).

Отвечает за расчет стоимости аренды по дневным ставкам категорий.
"""

from . import domain, infrastructure

__all__ = [
    "domain",
    "infrastructure",
]
