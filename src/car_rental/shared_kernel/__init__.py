"""
Общее ядро (Shared Kernel) системы бронирования автомобилей.

Содержит общие типы данных и утилиты, используемые в различных ограниченных контекстах.
"""

from .domain import (
    EMPTY_ID,
    GERMAN_STANDARD_VAT,
    BookingPeriod,
    BusinessRuleValidationException,
    ConcurrencyConflict,
    ConflictException,
    CurrencyMismatch,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    EntityNotFound,
    InvalidArgument,
    InvalidPeriod,
    InvalidSortField,
    InvalidTransition,
    # Основные классы
    Money,
    VehicleNotAvailable,
    generate_id,
    is_empty_id,
    # Утилиты
    now,
    round_money,
    today,
)
from .search import (
    DateRange,
    IntRange,
    PagedResult,
    PagingInfo,
    PriceRange,
    Query,
    SearchParameters,
    SortFieldTable,
    SortingInfo,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "EMPTY_ID",
    "generate_id",
    "is_empty_id",
    # Основные классы
    "Money",
    "BookingPeriod",
    "DomainEvent",
    "GERMAN_STANDARD_VAT",
    # Поиск
    "PagingInfo",
    "SortingInfo",
    "PriceRange",
    "DateRange",
    "IntRange",
    "SearchParameters",
    "SortFieldTable",
    "Query",
    "PagedResult",
    # Исключения
    "DomainException",
    "BusinessRuleValidationException",
    "InvalidArgument",
    "InvalidPeriod",
    "InvalidSortField",
    "InvalidTransition",
    "ConflictException",
    "ConcurrencyConflict",
    "VehicleNotAvailable",
    "CurrencyMismatch",
    "EntityNotFound",
    # Утилиты
    "now",
    "today",
    "round_money",
]
