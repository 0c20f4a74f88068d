"""
Система бронирования автомобилей для прокатной компании.

Ограниченные контексты:
- ``reservations`` бронирования и проверка доступности (ядро)
- ``pricing`` расчет цены аренды
- ``fleet`` каталог автомобилей
- ``customers`` клиенты
"""

__version__ = "0.1.0"
