"""
Прикладной слой контекста бронирования.

Содержит сервис приложения, который координирует доменную модель,
репозиторий, сервис цен и шину событий в рамках одной транзакции.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Set

from pydantic import BaseModel

from car_rental.fleet.domain import Vehicle, VehicleSearchParameters
from car_rental.shared_kernel import (
    BookingPeriod,
    DomainEvent,
    EntityId,
    EntityNotFound,
    InvalidArgument,
    PagedResult,
    today,
)
from car_rental.shared_kernel.logger import ILogger, get_logger

from . import interfaces as ports
from .domain import (
    AvailabilityChecker,
    Reservation,
    ReservationSearchParameters,
    ReservationStatus,
)

# DTO (Data Transfer Objects) для входящих данных


class CreateReservationRequest(BaseModel):
    """Запрос на создание бронирования."""

    vehicle_id: EntityId
    customer_id: EntityId
    pickup_date: date
    return_date: date
    pickup_location_code: str
    # Если не задан, берется место выдачи
    dropoff_location_code: Optional[str] = None
    # Если не задана, берется из каталога автомобилей
    category_code: Optional[str] = None


class CancelReservationRequest(BaseModel):
    """Запрос на отмену бронирования."""

    reservation_id: EntityId
    reason: Optional[str] = None


# DTO для исходящих данных


class ReservationDTO(BaseModel):
    """DTO для представления бронирования."""

    id: EntityId
    vehicle_id: EntityId
    customer_id: EntityId
    pickup_date: date
    return_date: date
    days: int
    pickup_location_code: str
    dropoff_location_code: str
    total_net: Decimal
    total_vat: Decimal
    total_gross: Decimal
    currency: str
    status: ReservationStatus
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    version: int

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationDTO":
        """Создает DTO из доменной модели."""
        price = reservation.total_price
        return cls(
            id=reservation.id,
            vehicle_id=reservation.vehicle_id,
            customer_id=reservation.customer_id,
            pickup_date=reservation.period.pickup_date,
            return_date=reservation.period.return_date,
            days=reservation.period.days,
            pickup_location_code=reservation.pickup_location_code,
            dropoff_location_code=reservation.dropoff_location_code,
            total_net=price.net_amount,
            total_vat=price.vat_amount,
            total_gross=price.gross_amount,
            currency=price.currency,
            status=reservation.status,
            created_at=reservation.created_at,
            confirmed_at=reservation.confirmed_at,
            activated_at=reservation.activated_at,
            cancelled_at=reservation.cancelled_at,
            completed_at=reservation.completed_at,
            cancellation_reason=reservation.cancellation_reason,
            version=reservation.version,
        )


# Сервисы приложения


class ReservationApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IReservationUnitOfWork,
        pricing_service: ports.IPricingService,
        vehicle_catalog: Optional[ports.IVehicleCatalog] = None,
        logger: Optional[ILogger] = None,
        clock: Callable[[], date] = today,
    ):
        self._uow = uow
        self._clock = clock
        self._pricing = pricing_service
        self._vehicles = vehicle_catalog
        self._logger = logger or get_logger(__name__)
        self._availability = AvailabilityChecker(self._uow.reservations)

    def _load(self, reservation_id: EntityId) -> Reservation:
        reservation = self._uow.reservations.get_by_id(reservation_id)
        if reservation is None:
            raise EntityNotFound("Reservation", reservation_id)
        return reservation

    def _resolve_category(self, request: CreateReservationRequest) -> str:
        if request.category_code:
            return request.category_code
        vehicle: Optional[Vehicle] = (
            self._vehicles.get_by_id(request.vehicle_id) if self._vehicles else None
        )
        if vehicle is None:
            raise InvalidArgument(
                "category code is required for vehicles outside the catalog",
                "category_code",
                None,
            )
        return vehicle.category_code

    def create_reservation(self, request: CreateReservationRequest) -> ReservationDTO:
        """
        Создает новое бронирование в статусе PENDING.

        Проверка доступности, расчет цены и сохранение выполняются
        внутри одной единицы работы.
        """
        period = BookingPeriod.of(request.pickup_date, request.return_date)
        category_code = self._resolve_category(request)

        with self._uow:
            self._availability.ensure_available(request.vehicle_id, period)

            calculation = self._pricing.calculate_price(
                category_code, period, request.pickup_location_code
            )
            reservation = Reservation.create(
                vehicle_id=request.vehicle_id,
                customer_id=request.customer_id,
                period=period,
                pickup_location_code=request.pickup_location_code,
                dropoff_location_code=(
                    request.dropoff_location_code or request.pickup_location_code
                ),
                total_price=calculation.total_price,
            )
            self._uow.reservations.add(reservation)

        self._logger.info(
            "Reservation created",
            reservation_id=str(reservation.id),
            vehicle_id=str(reservation.vehicle_id),
            period=str(period),
            total_gross=str(reservation.total_price),
        )
        return ReservationDTO.from_domain(reservation)

    def _transition(
        self,
        reservation_id: EntityId,
        operation: str,
        apply: Callable[[Reservation], DomainEvent],
    ) -> ReservationDTO:
        with self._uow:
            reservation = self._load(reservation_id)
            event = apply(reservation)
            self._uow.reservations.update(reservation)
            self._uow.collect(event)

        self._logger.info(
            f"Reservation {operation}",
            reservation_id=str(reservation.id),
            status=reservation.status.value,
        )
        return ReservationDTO.from_domain(reservation)

    def confirm_reservation(self, reservation_id: EntityId) -> ReservationDTO:
        """Подтверждает бронирование, если автомобиль все еще свободен."""

        def confirm(reservation: Reservation) -> DomainEvent:
            # Ожидающие бронирования не блокируют автомобиль, поэтому
            # пересечение проверяется повторно в момент подтверждения
            self._availability.ensure_available(
                reservation.vehicle_id,
                reservation.period,
                exclude_reservation_id=reservation.id,
            )
            return reservation.confirm()

        return self._transition(reservation_id, "confirmed", confirm)

    def cancel_reservation(self, request: CancelReservationRequest) -> ReservationDTO:
        """Отменяет бронирование."""
        return self._transition(
            request.reservation_id,
            "cancelled",
            lambda reservation: reservation.cancel(request.reason),
        )

    def activate_reservation(self, reservation_id: EntityId) -> ReservationDTO:
        """Отмечает выдачу автомобиля клиенту (не раньше даты выдачи по часам сервиса)."""
        return self._transition(
            reservation_id,
            "activated",
            lambda reservation: reservation.mark_as_active(self._clock()),
        )

    def complete_reservation(self, reservation_id: EntityId) -> ReservationDTO:
        """Отмечает возврат автомобиля."""
        return self._transition(
            reservation_id, "completed", lambda reservation: reservation.complete()
        )

    def get_reservation(self, reservation_id: EntityId) -> ReservationDTO:
        """Возвращает информацию о бронировании."""
        return ReservationDTO.from_domain(self._load(reservation_id))

    def delete_reservation(self, reservation_id: EntityId) -> None:
        with self._uow:
            self._load(reservation_id)
            self._uow.reservations.delete(reservation_id)
        self._logger.info("Reservation deleted", reservation_id=str(reservation_id))

    def search_reservations(
        self, params: ReservationSearchParameters
    ) -> PagedResult[ReservationDTO]:
        """Ищет бронирования: фильтрация, сортировка, затем страница."""
        return self._uow.reservations.search(params).map(ReservationDTO.from_domain)

    def get_booked_vehicle_ids(
        self, pickup_date: date, return_date: date
    ) -> Set[EntityId]:
        """Автомобили, занятые подтвержденными или активными бронированиями."""
        period = BookingPeriod(pickup_date=pickup_date, return_date=return_date)
        return self._availability.booked_vehicle_ids(period)

    def is_vehicle_available(
        self,
        vehicle_id: EntityId,
        pickup_date: date,
        return_date: date,
        exclude_reservation_id: Optional[EntityId] = None,
    ) -> bool:
        period = BookingPeriod(pickup_date=pickup_date, return_date=return_date)
        return self._availability.is_vehicle_available(
            vehicle_id, period, exclude_reservation_id
        )

    def search_available_vehicles(
        self,
        pickup_date: date,
        return_date: date,
        params: Optional[VehicleSearchParameters] = None,
    ) -> PagedResult[Vehicle]:
        """Ищет в каталоге автомобили, свободные на весь период."""
        if self._vehicles is None:
            raise RuntimeError("Vehicle catalog is not configured")

        params = params or VehicleSearchParameters()
        booked = self.get_booked_vehicle_ids(pickup_date, return_date)
        params = params.model_copy(
            update={"excluded_vehicle_ids": params.excluded_vehicle_ids | booked}
        )
        return self._vehicles.search(params)
