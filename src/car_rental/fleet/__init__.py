"""
Модуль контекста автопарка (Fleet Context).

Модель автомобилей для чтения и поиск по автопарку.
"""

from . import domain, infrastructure

__all__ = [
    "domain",
    "infrastructure",
]
