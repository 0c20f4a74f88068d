"""
Общие фикстуры для тестов.
"""
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from car_rental.fleet.domain import FuelType, TransmissionType, Vehicle
from car_rental.fleet.infrastructure import InMemoryVehicleRepository
from car_rental.pricing.infrastructure import InMemoryPricingService
from car_rental.reservations.application import ReservationApplicationService
from car_rental.reservations.domain import Reservation
from car_rental.reservations.infrastructure import (
    InMemoryEventBus,
    InMemoryReservationRepository,
    InMemoryReservationUnitOfWork,
)
from car_rental.shared_kernel import GERMAN_STANDARD_VAT, BookingPeriod, Money, today

_AUTO = object()


@pytest.fixture
def base_day() -> date:
    """Точка отсчета в будущем, чтобы периоды проходили проверку на прошлое."""
    return today() + timedelta(days=30)


@pytest.fixture
def day(base_day):
    """Фабрика дат: day(10) это base_day + 10 дней."""

    def _day(offset: int) -> date:
        return base_day + timedelta(days=offset)

    return _day


@pytest.fixture
def period(day):
    """Фабрика периодов по смещениям от base_day."""

    def _period(start: int, end: int) -> BookingPeriod:
        return BookingPeriod(pickup_date=day(start), return_date=day(end))

    return _period


@pytest.fixture
def daily_rate() -> Money:
    return Money.euro(Decimal("50.00"))


@pytest.fixture
def make_reservation(period, daily_rate):
    """Фабрика бронирований в статусе PENDING."""

    def _make(vehicle_id=_AUTO, start: int = 10, end: int = 15, **overrides) -> Reservation:
        booking_period = period(start, end)
        values = dict(
            vehicle_id=uuid4() if vehicle_id is _AUTO else vehicle_id,
            customer_id=uuid4(),
            period=booking_period,
            pickup_location_code="MUC",
            dropoff_location_code="MUC",
            total_price=daily_rate.multiply_by_days(booking_period.days),
        )
        values.update(overrides)
        return Reservation.create(**values)

    return _make


@pytest.fixture
def vehicles():
    return [
        Vehicle(
            name="VW Golf",
            category_code="KOMPAKT",
            location_code="MUC",
            daily_rate=Money.euro("39.99"),
            seats=5,
            fuel_type=FuelType.PETROL,
            transmission_type=TransmissionType.MANUAL,
        ),
        Vehicle(
            name="BMW X3",
            category_code="SUV",
            location_code="MUC",
            daily_rate=Money.euro("69.99"),
            seats=5,
            fuel_type=FuelType.DIESEL,
            transmission_type=TransmissionType.AUTOMATIC,
        ),
        Vehicle(
            name="Mercedes Sprinter",
            category_code="TRANS",
            location_code="BER",
            daily_rate=Money.euro("79.99"),
            seats=9,
            fuel_type=FuelType.DIESEL,
            transmission_type=TransmissionType.MANUAL,
        ),
        Vehicle(
            name="Fiat 500e",
            category_code="KLEIN",
            location_code="MUC",
            daily_rate=Money.euro("29.99"),
            seats=4,
            fuel_type=FuelType.ELECTRIC,
            transmission_type=TransmissionType.AUTOMATIC,
        ),
    ]


@pytest.fixture
def vehicle_repository(vehicles) -> InMemoryVehicleRepository:
    return InMemoryVehicleRepository(vehicles)


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def reservation_repository() -> InMemoryReservationRepository:
    return InMemoryReservationRepository()


@pytest.fixture
def uow(reservation_repository, event_bus) -> InMemoryReservationUnitOfWork:
    return InMemoryReservationUnitOfWork(reservation_repository, event_bus)


@pytest.fixture
def pricing_service() -> InMemoryPricingService:
    return InMemoryPricingService.with_sample_policies(GERMAN_STANDARD_VAT)


@pytest.fixture
def reservation_service(uow, pricing_service, vehicle_repository) -> ReservationApplicationService:
    """Сервис приложения с чистым репозиторием и тестовым автопарком."""
    return ReservationApplicationService(
        uow, pricing_service, vehicle_catalog=vehicle_repository
    )
