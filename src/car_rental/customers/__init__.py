"""
Модуль контекста клиентов (Customers Context).

Модель клиентов для чтения и поиск клиентов.
"""

from . import domain, infrastructure

__all__ = [
    "domain",
    "infrastructure",
]
