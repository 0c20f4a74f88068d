"""
Основные доменные типы и утилиты общего ядра.

Деньги с разбивкой на нетто/НДС/брутто, период аренды,
базовое доменное событие и иерархия доменных исключений.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, ClassVar, Iterable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

# Общие типы идентификаторов
EntityId = UUID

EMPTY_ID = UUID(int=0)

TWO_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")

GERMAN_STANDARD_VAT = Decimal("0.19")


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


def is_empty_id(value: Optional[UUID]) -> bool:
    """Проверяет, что идентификатор не задан или равен нулевому UUID."""
    return value is None or value == EMPTY_ID


# Общие утилиты
def now() -> datetime:
    """Возвращает текущие дату и время в UTC."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату (UTC)."""
    return now().date()


def round_money(value: Decimal) -> Decimal:
    """Округляет сумму до 2 знаков по правилу half-up."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# Общие исключения
class DomainException(Exception):
    """
    Базовое исключение для доменных ошибок.

    Все именованные аргументы сохраняются в ``context``, чтобы вызывающий код
    мог построить сообщение для пользователя, не восстанавливая состояние.
    """

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил во входных данных."""

    pass


class InvalidArgument(BusinessRuleValidationException):
    """Некорректный аргумент фабрики или операции."""

    def __init__(self, message: str, argument: Optional[str] = None, value: Any = None):
        super().__init__(message, argument=argument, value=value)
        self.argument = argument
        self.value = value


class InvalidPeriod(BusinessRuleValidationException):
    """Некорректный период аренды."""

    def __init__(self, reason: str, pickup_date: Any = None, return_date: Any = None):
        super().__init__(
            reason, reason=reason, pickup_date=pickup_date, return_date=return_date
        )
        self.reason = reason
        self.pickup_date = pickup_date
        self.return_date = return_date


class InvalidSortField(BusinessRuleValidationException):
    """Запрошена сортировка по неизвестному полю."""

    def __init__(self, field: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            f"unknown sort field '{field}', expected one of: {', '.join(allowed)}",
            field=field,
            allowed=allowed,
        )
        self.field = field
        self.allowed = allowed


class InvalidTransition(DomainException):
    """Операция недопустима в текущем статусе бронирования."""

    def __init__(
        self,
        reservation_id: Any,
        current_status: Any,
        operation: str,
        reason: Optional[str] = None,
    ):
        status = getattr(current_status, "value", current_status)
        message = f"cannot {operation} reservation {reservation_id} in status {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            reservation_id=reservation_id,
            current_status=current_status,
            operation=operation,
            reason=reason,
        )
        self.reservation_id = reservation_id
        self.current_status = current_status
        self.operation = operation
        self.reason = reason


class ConflictException(DomainException):
    """Конфликт с текущим состоянием хранилища."""

    pass


class ConcurrencyConflict(ConflictException):
    """Исключение при конфликте версий агрегата."""

    def __init__(self, entity_id: Any, expected_version: int, actual_version: int):
        super().__init__(
            f"entity {entity_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            entity_id=entity_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class VehicleNotAvailable(ConflictException):
    """Автомобиль уже забронирован на пересекающийся период."""

    def __init__(self, vehicle_id: Any, period: Any, conflicting_reservation_ids=()):
        conflicting = list(conflicting_reservation_ids)
        super().__init__(
            f"vehicle {vehicle_id} is already booked for {period}",
            vehicle_id=vehicle_id,
            period=period,
            conflicting_reservation_ids=conflicting,
        )
        self.vehicle_id = vehicle_id
        self.period = period
        self.conflicting_reservation_ids = conflicting


class CurrencyMismatch(DomainException):
    """Операция над суммами в разных валютах."""

    def __init__(self, left: str, right: str):
        super().__init__(
            f"cannot combine money in {left} with money in {right}",
            left=left,
            right=right,
        )
        self.left = left
        self.right = right


class EntityNotFound(DomainException):
    """Сущность не найдена в хранилище."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with id {entity_id} not found",
            entity_type=entity_type,
            entity_id=entity_id,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


def _to_decimal(value: Any, argument: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidArgument(f"{argument} must be a number", argument, value)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{argument} must be a number", argument, value)


def _to_vat_rate(value: Any) -> Decimal:
    rate = _to_decimal(value, "vat_rate")
    if rate < 0 or rate > 1:
        raise InvalidArgument("VAT rate must be between 0 and 1", "vat_rate", value)
    return rate


def _effective_rate(net: Decimal, vat: Decimal) -> Decimal:
    if net == 0:
        return Decimal("0")
    rate = (vat / net).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
    return min(max(rate, Decimal("0")), Decimal("1"))


class Money(BaseModel):
    """
    Денежная сумма с разбивкой на нетто и НДС.

    Брутто не хранится, а всегда вычисляется как ``net_amount + vat_amount``.
    Объект неизменяемый: арифметика возвращает новые экземпляры.
    """

    model_config = ConfigDict(frozen=True)

    net_amount: Decimal = Field(..., description="Сумма без НДС")
    vat_amount: Decimal = Field(..., description="Сумма НДС")
    vat_rate: Decimal = Field(Decimal("0"), ge=0, le=1, description="Ставка НДС")
    currency: str = Field(
        default="EUR", pattern=r"^[A-Z]{3}$", description="Код валюты (ISO 4217)"
    )

    @computed_field  # type: ignore[misc]
    @property
    def gross_amount(self) -> Decimal:
        """Сумма с НДС."""
        return self.net_amount + self.vat_amount

    @property
    def is_negative(self) -> bool:
        return self.gross_amount < 0

    @classmethod
    def from_net(
        cls, net_amount: Any, vat_rate: Any, currency: str = "EUR"
    ) -> "Money":
        """Создает сумму по нетто: НДС = round(нетто * ставка, 2)."""
        net = _to_decimal(net_amount, "net_amount")
        rate = _to_vat_rate(vat_rate)
        if net < 0:
            raise InvalidArgument("net amount cannot be negative", "net_amount", net)

        net = round_money(net)
        return cls(
            net_amount=net,
            vat_amount=round_money(net * rate),
            vat_rate=rate,
            currency=currency,
        )

    @classmethod
    def from_gross(
        cls, gross_amount: Any, vat_rate: Any, currency: str = "EUR"
    ) -> "Money":
        """
        Создает сумму по брутто.

        Нетто вычисляется обратным счетом и округляется, НДС берется
        как разница, поэтому брутто сохраняется без изменений
        (в том числе с точностью меньше цента).
        """
        gross = _to_decimal(gross_amount, "gross_amount")
        rate = _to_vat_rate(vat_rate)
        if gross < 0:
            raise InvalidArgument(
                "gross amount cannot be negative", "gross_amount", gross
            )

        net = round_money(gross / (1 + rate))
        return cls(
            net_amount=net, vat_amount=gross - net, vat_rate=rate, currency=currency
        )

    @classmethod
    def euro(cls, net_amount: Any) -> "Money":
        """Сумма в евро со стандартной немецкой ставкой НДС (19%)."""
        return cls.from_net(net_amount, GERMAN_STANDARD_VAT, "EUR")

    @classmethod
    def euro_gross(cls, gross_amount: Any) -> "Money":
        """Сумма в евро по брутто со стандартной ставкой НДС."""
        return cls.from_gross(gross_amount, GERMAN_STANDARD_VAT, "EUR")

    @classmethod
    def zero(cls, currency: str = "EUR", vat_rate: Any = Decimal("0")) -> "Money":
        return cls(
            net_amount=Decimal("0.00"),
            vat_amount=Decimal("0.00"),
            vat_rate=_to_vat_rate(vat_rate),
            currency=currency,
        )

    def _combine(self, other: "Money", net: Decimal, vat: Decimal) -> "Money":
        rate = (
            self.vat_rate
            if self.vat_rate == other.vat_rate
            else _effective_rate(net, vat)
        )
        return Money(net_amount=net, vat_amount=vat, vat_rate=rate, currency=self.currency)

    def _check_compatible(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError("Операции возможны только с объектами Money")
        if self.currency != other.currency:
            raise CurrencyMismatch(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        """Складывает суммы покомпонентно (нетто с нетто, НДС с НДС)."""
        self._check_compatible(other)
        return self._combine(
            other,
            self.net_amount + other.net_amount,
            self.vat_amount + other.vat_amount,
        )

    def subtract(self, other: "Money") -> "Money":
        """Вычитает покомпонентно; результат может быть отрицательным (скидки, возвраты)."""
        self._check_compatible(other)
        return self._combine(
            other,
            self.net_amount - other.net_amount,
            self.vat_amount - other.vat_amount,
        )

    def multiply_by_days(self, days: int) -> "Money":
        """Умножает дневную ставку на количество дней аренды."""
        if isinstance(days, bool) or not isinstance(days, int):
            raise InvalidArgument("day count must be an integer", "days", days)
        if days < 0:
            raise InvalidArgument("day count cannot be negative", "days", days)

        # Умножение на целое не требует повторного округления
        return Money(
            net_amount=self.net_amount * days,
            vat_amount=self.vat_amount * days,
            vat_rate=self.vat_rate,
            currency=self.currency,
        )

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, days: int) -> "Money":
        if isinstance(days, bool) or not isinstance(days, int):
            return NotImplemented
        return self.multiply_by_days(days)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{self.gross_amount:.2f} {self.currency}"


PICKUP_IN_PAST = "pickup date cannot be in the past"
RETURN_NOT_AFTER_PICKUP = "return date must be after pickup date"
PERIOD_TOO_LONG = "rental period cannot exceed 90 days"


class BookingPeriod(BaseModel):
    """
    Период аренды: дата выдачи и дата возврата.

    Оба дня оплачиваются, поэтому ``days`` включает обе границы.
    Прямой конструктор проверяет только структурные инварианты
    (используется при восстановлении из хранилища); новые периоды
    создаются через ``BookingPeriod.of``, который запрещает даты в прошлом.
    """

    model_config = ConfigDict(frozen=True)

    MAX_RENTAL_DAYS: ClassVar[int] = 90

    pickup_date: date
    return_date: date

    @model_validator(mode="after")
    def _check_invariants(self) -> "BookingPeriod":
        if self.return_date <= self.pickup_date:
            raise InvalidPeriod(
                RETURN_NOT_AFTER_PICKUP, self.pickup_date, self.return_date
            )
        if self.days > self.MAX_RENTAL_DAYS:
            raise InvalidPeriod(PERIOD_TOO_LONG, self.pickup_date, self.return_date)
        return self

    @classmethod
    def of(
        cls,
        pickup_date: date,
        return_date: date,
        reference_date: Optional[date] = None,
    ) -> "BookingPeriod":
        """Создает новый период аренды, проверяя все правила."""
        current = reference_date or today()
        if pickup_date < current:
            raise InvalidPeriod(PICKUP_IN_PAST, pickup_date, return_date)
        return cls(pickup_date=pickup_date, return_date=return_date)

    @property
    def days(self) -> int:
        """Количество оплачиваемых дней (включая день выдачи и день возврата)."""
        return (self.return_date - self.pickup_date).days + 1

    def overlaps_with(self, other: "BookingPeriod") -> bool:
        """Проверяет, есть ли у периодов хотя бы один общий день."""
        return (
            self.pickup_date <= other.return_date
            and self.return_date >= other.pickup_date
        )

    def contains(self, day: date) -> bool:
        return self.pickup_date <= day <= self.return_date

    def __str__(self) -> str:
        return f"{self.pickup_date.isoformat()} - {self.return_date.isoformat()}"


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=now)

    @computed_field  # type: ignore[misc]
    @property
    def event_type(self) -> str:
        return type(self).__name__
