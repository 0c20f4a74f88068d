"""
Модуль контекста бронирования (Reservations Context).

Отвечает за бронирование автомобилей, включая:
- Создание, подтверждение, выдачу, возврат и отмену бронирований
- Проверку доступности автомобилей на период
- Поиск бронирований с фильтрацией, сортировкой и пагинацией
"""

from . import application, domain, event_handlers, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "event_handlers",
    "infrastructure",
    "interfaces",
]
