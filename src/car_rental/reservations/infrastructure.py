"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозитория, шины событий и Unit of Work в памяти.
"""

import threading
from typing import Callable, Dict, Iterable, List, Optional, Type

from car_rental.shared_kernel import (
    BookingPeriod,
    ConcurrencyConflict,
    DomainEvent,
    EntityId,
    EntityNotFound,
    PagedResult,
    Query,
)
from car_rental.shared_kernel.logger import ILogger, get_logger

from . import interfaces as ports
from .domain import (
    RESERVATION_SORT_FIELDS,
    Reservation,
    ReservationSearchParameters,
    ReservationStatus,
)

Snapshot = Dict[EntityId, Reservation]


class InMemoryReservationRepository(ports.IReservationRepository):
    """
    Реализация репозитория бронирований в памяти.

    Хранит и отдает копии агрегатов, поэтому изменения попадают
    в хранилище только через ``add``/``update``.
    """

    def __init__(
        self,
        reservations: Iterable[Reservation] = (),
        strict_sorting: bool = False,
        default_page_size: Optional[int] = None,
    ):
        self._reservations: Dict[EntityId, Reservation] = {}
        self._strict_sorting = strict_sorting
        self._default_page_size = default_page_size
        for reservation in reservations:
            self.add(reservation)

    def get_by_id(self, reservation_id: EntityId) -> Optional[Reservation]:
        stored = self._reservations.get(reservation_id)
        return stored.model_copy(deep=True) if stored is not None else None

    def add(self, reservation: Reservation) -> None:
        if reservation.id in self._reservations:
            raise ValueError(f"Reservation with id {reservation.id} already exists")
        self._reservations[reservation.id] = reservation.model_copy(deep=True)

    def update(self, reservation: Reservation) -> None:
        """Сохраняет изменения, если версия не изменилась с момента чтения."""
        stored = self._reservations.get(reservation.id)
        if stored is None:
            raise EntityNotFound("Reservation", reservation.id)
        if stored.version != reservation.version:
            raise ConcurrencyConflict(reservation.id, reservation.version, stored.version)

        reservation.version += 1
        self._reservations[reservation.id] = reservation.model_copy(deep=True)

    def delete(self, reservation_id: EntityId) -> None:
        if reservation_id not in self._reservations:
            raise EntityNotFound("Reservation", reservation_id)
        del self._reservations[reservation_id]

    def search_overlapping(
        self,
        period: BookingPeriod,
        statuses: Iterable[ReservationStatus],
        vehicle_id: Optional[EntityId] = None,
    ) -> List[Reservation]:
        wanted = frozenset(statuses)
        return [
            r.model_copy(deep=True)
            for r in self._reservations.values()
            if r.status in wanted
            and (vehicle_id is None or r.vehicle_id == vehicle_id)
            and r.overlaps_with(period)
        ]

    def search(self, params: ReservationSearchParameters) -> PagedResult[Reservation]:
        location = (
            params.pickup_location_code.strip().upper()
            if params.pickup_location_code
            else None
        )

        page = (
            Query(self._reservations.values())
            .where_if(params.status is not None, lambda r: r.status == params.status)
            .where_if(
                params.customer_id is not None,
                lambda r: r.customer_id == params.customer_id,
            )
            .where_if(
                params.vehicle_id is not None,
                lambda r: r.vehicle_id == params.vehicle_id,
            )
            .where_if(location is not None, lambda r: r.pickup_location_code == location)
            .where_in_range(params.pickup_date_range, lambda r: r.period.pickup_date)
            .where_in_range(params.price_range, lambda r: r.total_price.gross_amount)
            .order_by(params.sorting, RESERVATION_SORT_FIELDS, strict=self._strict_sorting)
            .to_paged_result(params.effective_paging(self._default_page_size))
        )
        return page.map(lambda r: r.model_copy(deep=True))

    def snapshot(self) -> Snapshot:
        return {key: value.model_copy(deep=True) for key, value in self._reservations.items()}

    def restore(self, snapshot: Snapshot) -> None:
        self._reservations = {
            key: value.model_copy(deep=True) for key, value in snapshot.items()
        }


class InMemoryEventBus(ports.IEventBus):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or get_logger(__name__)

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        handlers = self._subscribers.get(event_type)
        if not handlers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.info(
            f"Publishing event: {event_type.__name__}",
            event=event.model_dump(mode="json"),
        )

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Ошибка одного обработчика не мешает остальным
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    event_id=str(event.event_id),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class InMemoryReservationUnitOfWork(ports.IReservationUnitOfWork):
    """
    Единица работы для контекста бронирования.

    Держит блокировку на все время блока ``with``, поэтому проверка
    доступности и запись бронирования выполняются атомарно. При выходе
    без исключения изменения фиксируются, блокировка снимается, и только
    затем публикуются накопленные события. При исключении состояние
    репозитория восстанавливается из снимка, сделанного при входе.
    """

    def __init__(
        self,
        reservations: Optional[InMemoryReservationRepository] = None,
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ILogger] = None,
    ):
        self._logger = logger or get_logger(__name__)
        self._reservations = reservations or InMemoryReservationRepository()
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._lock = threading.RLock()
        self._depth = 0
        self._snapshot: Optional[Snapshot] = None
        self._outbox: List[DomainEvent] = []

    @property
    def reservations(self) -> InMemoryReservationRepository:
        return self._reservations

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    def collect(self, *events: DomainEvent) -> None:
        """Откладывает события до фиксации транзакции."""
        self._outbox.extend(events)

    def _flush(self) -> List[DomainEvent]:
        events, self._outbox = self._outbox, []
        self._snapshot = None
        self._logger.debug("ReservationUnitOfWork committed", events=len(events))
        return events

    def _publish(self, events: List[DomainEvent]) -> None:
        for event in events:
            self._event_bus.publish(event)

    def commit(self) -> None:
        """Фиксирует изменения и публикует накопленные события."""
        self._publish(self._flush())

    def rollback(self) -> None:
        """Откатывает изменения к состоянию на момент входа."""
        if self._snapshot is not None:
            self._reservations.restore(self._snapshot)
            self._snapshot = None
        discarded = len(self._outbox)
        self._outbox = []
        self._logger.warning("ReservationUnitOfWork rolled back", discarded_events=discarded)

    def __enter__(self) -> "InMemoryReservationUnitOfWork":
        self._lock.acquire()
        if self._depth == 0:
            self._snapshot = self._reservations.snapshot()
            self._outbox = []
        self._depth += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        events: List[DomainEvent] = []
        try:
            self._depth -= 1
            # Вложенный блок фиксирует или откатывает только внешний
            if self._depth == 0:
                if exc_type is None:
                    events = self._flush()
                else:
                    self.rollback()
        finally:
            self._lock.release()

        # Обработчики вызываются уже без блокировки
        self._publish(events)
        return False  # Пробрасываем исключение дальше, если оно было
