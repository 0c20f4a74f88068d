from functools import partial
from typing import Iterable, Optional

from car_rental.config import Settings, get_settings
from car_rental.customers.domain import Customer
from car_rental.customers.infrastructure import InMemoryCustomerRepository
from car_rental.fleet.domain import Vehicle
from car_rental.fleet.infrastructure import InMemoryVehicleRepository
from car_rental.pricing.infrastructure import InMemoryPricingService
from car_rental.reservations.application import ReservationApplicationService
from car_rental.reservations.domain import (
    ReservationActivated,
    ReservationCancelled,
    ReservationCompleted,
    ReservationConfirmed,
)
from car_rental.reservations.event_handlers import on_reservation_status_changed
from car_rental.reservations.infrastructure import (
    InMemoryEventBus,
    InMemoryReservationRepository,
    InMemoryReservationUnitOfWork,
)
from car_rental.shared_kernel.logger import configure_logging, get_logger

NOTIFIED_EVENTS = (
    ReservationConfirmed,
    ReservationCancelled,
    ReservationActivated,
    ReservationCompleted,
)


def bootstrap_app(
    settings: Optional[Settings] = None,
    vehicles: Iterable[Vehicle] = (),
    customers: Iterable[Customer] = (),
):
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("car_rental")

    # 1. Создаем репозитории и Unit of Work для контекста бронирования
    strict = settings.strict_sort_fields
    page_size = settings.default_page_size
    event_bus = InMemoryEventBus(logger)
    reservation_uow = InMemoryReservationUnitOfWork(
        reservations=InMemoryReservationRepository(
            strict_sorting=strict, default_page_size=page_size
        ),
        event_bus=event_bus,
        logger=logger,
    )
    fleet = InMemoryVehicleRepository(
        vehicles, strict_sorting=strict, default_page_size=page_size
    )
    customer_repo = InMemoryCustomerRepository(
        customers, strict_sorting=strict, default_page_size=page_size
    )

    # 2. Создаем сервисы, передавая им зависимости
    pricing_service = InMemoryPricingService.with_sample_policies(
        settings.default_vat_rate, settings.default_currency, logger=logger
    )
    reservation_service = ReservationApplicationService(
        reservation_uow, pricing_service, vehicle_catalog=fleet, logger=logger
    )

    # 3. Подписываем обработчики на события
    handler = partial(on_reservation_status_changed, logger=logger)
    for event_type in NOTIFIED_EVENTS:
        event_bus.subscribe(event_type, handler)

    # Возвращаем настроенные компоненты
    return {
        "settings": settings,
        "reservation_uow": reservation_uow,
        "reservation_service": reservation_service,
        "pricing_service": pricing_service,
        "vehicle_repository": fleet,
        "customer_repository": customer_repo,
        "event_bus": event_bus,
    }
