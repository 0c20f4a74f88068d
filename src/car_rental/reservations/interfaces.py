"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Protocol, Type, TypeVar

from car_rental.shared_kernel import BookingPeriod, DomainEvent, EntityId, PagedResult
from car_rental.fleet.domain import Vehicle, VehicleSearchParameters
from car_rental.pricing.domain import PriceCalculation

from .domain import Reservation, ReservationSearchParameters, ReservationStatus

T_Event = TypeVar("T_Event", bound=DomainEvent)


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IReservationRepository(Protocol):
    """Интерфейс репозитория для бронирований."""

    def get_by_id(self, reservation_id: EntityId) -> Optional[Reservation]: ...
    def add(self, reservation: Reservation) -> None: ...
    def update(self, reservation: Reservation) -> None: ...
    def delete(self, reservation_id: EntityId) -> None: ...
    def search_overlapping(
        self,
        period: BookingPeriod,
        statuses: Iterable[ReservationStatus],
        vehicle_id: Optional[EntityId] = None,
    ) -> List[Reservation]: ...
    def search(self, params: ReservationSearchParameters) -> PagedResult[Reservation]: ...


class IPricingService(Protocol):
    """Интерфейс внешнего сервиса расчета цены."""

    def calculate_price(
        self, category_code: str, period: BookingPeriod, pickup_location_code: str
    ) -> PriceCalculation: ...


class IVehicleCatalog(Protocol):
    """Интерфейс каталога автомобилей (контекст автопарка)."""

    def get_by_id(self, vehicle_id: EntityId) -> Optional[Vehicle]: ...
    def search(self, params: VehicleSearchParameters) -> PagedResult[Vehicle]: ...


class IReservationUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста бронирования."""

    @property
    def reservations(self) -> IReservationRepository: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def __enter__(self) -> IReservationUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def collect(self, *events: DomainEvent) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
