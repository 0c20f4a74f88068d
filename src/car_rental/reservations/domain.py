"""
Доменная модель контекста бронирования.

Содержит агрегат бронирования с машиной состояний, доменные события,
доменный сервис проверки доступности автомобилей и параметры поиска.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from car_rental.shared_kernel import (
    BookingPeriod,
    DateRange,
    DomainEvent,
    EntityId,
    InvalidArgument,
    InvalidTransition,
    Money,
    PagingInfo,
    PriceRange,
    SearchParameters,
    SortFieldTable,
    VehicleNotAvailable,
    generate_id,
    is_empty_id,
    now,
    today,
)

if TYPE_CHECKING:
    from .interfaces import IReservationRepository


class ReservationStatus(str, Enum):
    """Статусы бронирования."""

    PENDING = "pending"  # Создано, ожидает подтверждения
    CONFIRMED = "confirmed"  # Подтверждено (оплата получена)
    ACTIVE = "active"  # Автомобиль выдан
    COMPLETED = "completed"  # Автомобиль возвращен
    CANCELLED = "cancelled"  # Отменено

    @property
    def lifecycle_order(self) -> int:
        return _LIFECYCLE_ORDER[self]


_LIFECYCLE_ORDER = {
    ReservationStatus.PENDING: 0,
    ReservationStatus.CONFIRMED: 1,
    ReservationStatus.ACTIVE: 2,
    ReservationStatus.COMPLETED: 3,
    ReservationStatus.CANCELLED: 4,
}

# Только эти статусы занимают автомобиль на период
BLOCKING_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE}
)

TERMINAL_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
)


class ReservationEvent(DomainEvent):
    """Базовое событие бронирования."""

    reservation_id: EntityId
    vehicle_id: EntityId
    customer_id: EntityId


class ReservationConfirmed(ReservationEvent):
    """Событие подтверждения бронирования."""

    confirmed_at: datetime


class ReservationCancelled(ReservationEvent):
    """Событие отмены бронирования."""

    cancelled_at: datetime
    reason: Optional[str] = None


class ReservationActivated(ReservationEvent):
    """Событие выдачи автомобиля."""

    activated_at: datetime


class ReservationCompleted(ReservationEvent):
    """Событие возврата автомобиля."""

    completed_at: datetime


def _require_location(value: Optional[str], argument: str) -> str:
    code = (value or "").strip().upper()
    if not code:
        raise InvalidArgument(f"{argument} cannot be empty", argument, value)
    return code


class Reservation(BaseModel):
    """
    Бронирование автомобиля (корень агрегата).

    Новое бронирование создается только через ``Reservation.create``.
    Статус меняется только методами перехода; каждый метод проверяет
    текущий статус и возвращает доменное событие, которое вызывающий
    код передает в шину событий после фиксации транзакции.
    """

    id: EntityId = Field(default_factory=generate_id)
    vehicle_id: EntityId
    customer_id: EntityId
    period: BookingPeriod
    pickup_location_code: str
    dropoff_location_code: str
    total_price: Money
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime = Field(default_factory=now)
    confirmed_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    # Токен оптимистичной блокировки, увеличивается репозиторием
    version: int = 0

    @classmethod
    def create(
        cls,
        vehicle_id: Optional[EntityId],
        customer_id: Optional[EntityId],
        period: BookingPeriod,
        pickup_location_code: str,
        dropoff_location_code: str,
        total_price: Money,
    ) -> Reservation:
        """
        Создает новое бронирование в статусе PENDING.

        Доступность автомобиля не проверяется: это делает вызывающий код
        в той же транзакции (см. ``AvailabilityChecker``).
        """
        if is_empty_id(vehicle_id):
            raise InvalidArgument("vehicle id is required", "vehicle_id", vehicle_id)
        if is_empty_id(customer_id):
            raise InvalidArgument("customer id is required", "customer_id", customer_id)
        if period is None:
            raise InvalidArgument("booking period is required", "period", period)
        if total_price is None:
            raise InvalidArgument("total price is required", "total_price", total_price)
        if total_price.is_negative:
            raise InvalidArgument(
                "total price cannot be negative", "total_price", total_price
            )

        return cls(
            vehicle_id=vehicle_id,
            customer_id=customer_id,
            period=period,
            pickup_location_code=_require_location(
                pickup_location_code, "pickup_location_code"
            ),
            dropoff_location_code=_require_location(
                dropoff_location_code, "dropoff_location_code"
            ),
            total_price=total_price,
        )

    @property
    def is_blocking(self) -> bool:
        """Занимает ли бронирование автомобиль на свой период."""
        return self.status in BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def overlaps_with(self, period: BookingPeriod) -> bool:
        return self.period.overlaps_with(period)

    def _ensure_status(self, operation: str, *allowed: ReservationStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransition(self.id, self.status, operation)

    def _event_refs(self) -> dict:
        return {
            "reservation_id": self.id,
            "vehicle_id": self.vehicle_id,
            "customer_id": self.customer_id,
        }

    def confirm(self) -> ReservationConfirmed:
        """Подтверждает бронирование."""
        self._ensure_status("confirm", ReservationStatus.PENDING)

        self.status = ReservationStatus.CONFIRMED
        self.confirmed_at = now()
        return ReservationConfirmed(**self._event_refs(), confirmed_at=self.confirmed_at)

    def cancel(self, reason: Optional[str] = None) -> ReservationCancelled:
        """Отменяет бронирование (только до выдачи автомобиля)."""
        self._ensure_status(
            "cancel", ReservationStatus.PENDING, ReservationStatus.CONFIRMED
        )

        self.status = ReservationStatus.CANCELLED
        self.cancelled_at = now()
        self.cancellation_reason = reason
        return ReservationCancelled(
            **self._event_refs(), cancelled_at=self.cancelled_at, reason=reason
        )

    def mark_as_active(self, on: Optional[date] = None) -> ReservationActivated:
        """Отмечает выдачу автомобиля; не раньше даты выдачи."""
        self._ensure_status("activate", ReservationStatus.CONFIRMED)

        current_day = on or today()
        if current_day < self.period.pickup_date:
            raise InvalidTransition(
                self.id,
                self.status,
                "activate",
                f"pickup date {self.period.pickup_date.isoformat()} has not been reached",
            )

        self.status = ReservationStatus.ACTIVE
        self.activated_at = now()
        return ReservationActivated(**self._event_refs(), activated_at=self.activated_at)

    def complete(self) -> ReservationCompleted:
        """Завершает аренду (автомобиль возвращен)."""
        self._ensure_status("complete", ReservationStatus.ACTIVE)

        self.status = ReservationStatus.COMPLETED
        self.completed_at = now()
        return ReservationCompleted(**self._event_refs(), completed_at=self.completed_at)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, Reservation):
            return NotImplemented
        return self.id == other.id


def find_conflicts(
    reservations: Iterable[Reservation],
    period: BookingPeriod,
    vehicle_id: Optional[EntityId] = None,
    exclude_reservation_id: Optional[EntityId] = None,
) -> List[Reservation]:
    """Отбирает бронирования, которые занимают автомобиль на пересекающийся период."""
    return [
        r
        for r in reservations
        if r.is_blocking
        and (vehicle_id is None or r.vehicle_id == vehicle_id)
        and r.id != exclude_reservation_id
        and r.overlaps_with(period)
    ]


class AvailabilityChecker:
    """
    Доменный сервис проверки доступности автомобилей.

    Автомобиль занят, если у него есть подтвержденное или активное
    бронирование с пересекающимся периодом. Ожидающие, отмененные и
    завершенные бронирования доступность не блокируют.
    """

    def __init__(self, repository: "IReservationRepository"):
        self._repository = repository

    def _conflicts(
        self,
        period: BookingPeriod,
        vehicle_id: Optional[EntityId] = None,
        exclude_reservation_id: Optional[EntityId] = None,
    ) -> List[Reservation]:
        candidates = self._repository.search_overlapping(
            period, BLOCKING_STATUSES, vehicle_id=vehicle_id
        )
        return find_conflicts(candidates, period, vehicle_id, exclude_reservation_id)

    def booked_vehicle_ids(
        self, period: BookingPeriod, vehicle_id: Optional[EntityId] = None
    ) -> Set[EntityId]:
        """Возвращает автомобили, занятые на период; отсутствие в наборе означает доступность."""
        return {r.vehicle_id for r in self._conflicts(period, vehicle_id)}

    def is_vehicle_available(
        self,
        vehicle_id: EntityId,
        period: BookingPeriod,
        exclude_reservation_id: Optional[EntityId] = None,
    ) -> bool:
        return not self._conflicts(period, vehicle_id, exclude_reservation_id)

    def ensure_available(
        self,
        vehicle_id: EntityId,
        period: BookingPeriod,
        exclude_reservation_id: Optional[EntityId] = None,
    ) -> None:
        conflicts = self._conflicts(period, vehicle_id, exclude_reservation_id)
        if conflicts:
            raise VehicleNotAvailable(vehicle_id, period, [r.id for r in conflicts])


class ReservationSortField(str, Enum):
    PICKUP_DATE = "pickupdate"
    PRICE = "price"
    STATUS = "status"
    CREATED_DATE = "createddate"


RESERVATION_SORT_FIELDS: SortFieldTable[Reservation] = SortFieldTable(
    {
        ReservationSortField.PICKUP_DATE: lambda r: r.period.pickup_date,
        ReservationSortField.PRICE: lambda r: r.total_price.gross_amount,
        ReservationSortField.STATUS: lambda r: r.status.lifecycle_order,
        ReservationSortField.CREATED_DATE: lambda r: r.created_at,
    },
    # Новые бронирования первыми
    default_field=ReservationSortField.CREATED_DATE,
    default_descending=True,
)


def _explicit_paging(paging: Optional[PagingInfo]) -> dict:
    # Не заданная пагинация остается "по умолчанию" для репозитория
    return {} if paging is None else {"paging": paging}


class ReservationSearchParameters(SearchParameters):
    """Параметры поиска бронирований. Незаданный фильтр не применяется."""

    status: Optional[ReservationStatus] = None
    customer_id: Optional[EntityId] = None
    vehicle_id: Optional[EntityId] = None
    pickup_location_code: Optional[str] = None
    pickup_date_range: Optional[DateRange] = None
    # Сравнивается с брутто итоговой цены
    price_range: Optional[PriceRange] = None

    @classmethod
    def for_status(
        cls, status: ReservationStatus, paging: Optional[PagingInfo] = None
    ) -> ReservationSearchParameters:
        return cls(status=status, **_explicit_paging(paging))

    @classmethod
    def for_customer(
        cls, customer_id: EntityId, paging: Optional[PagingInfo] = None
    ) -> ReservationSearchParameters:
        return cls(customer_id=customer_id, **_explicit_paging(paging))
