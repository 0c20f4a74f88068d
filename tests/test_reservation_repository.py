"""
Тесты для инфраструктуры контекста бронирования:
репозиторий, шина событий и Unit of Work.
"""
import threading
from decimal import Decimal
from uuid import uuid4

import pytest

from car_rental.reservations.domain import (
    ReservationConfirmed,
    ReservationSearchParameters,
    ReservationStatus,
)
from car_rental.reservations.infrastructure import (
    InMemoryEventBus,
    InMemoryReservationRepository,
    InMemoryReservationUnitOfWork,
)
from car_rental.shared_kernel import (
    ConcurrencyConflict,
    DateRange,
    EntityNotFound,
    InvalidSortField,
    Money,
    PagingInfo,
    PriceRange,
    SortingInfo,
)


class TestInMemoryReservationRepository:
    """Тесты репозитория бронирований."""

    def test_add_and_get(self, reservation_repository, make_reservation):
        reservation = make_reservation()

        reservation_repository.add(reservation)

        assert reservation_repository.get_by_id(reservation.id) == reservation
        assert reservation_repository.get_by_id(uuid4()) is None

    def test_add_duplicate_fails(self, reservation_repository, make_reservation):
        reservation = make_reservation()
        reservation_repository.add(reservation)

        with pytest.raises(ValueError, match="already exists"):
            reservation_repository.add(reservation)

    def test_returned_aggregates_are_copies(self, reservation_repository, make_reservation):
        """Изменения без update не попадают в хранилище."""
        reservation = make_reservation()
        reservation_repository.add(reservation)

        loaded = reservation_repository.get_by_id(reservation.id)
        loaded.confirm()

        assert reservation_repository.get_by_id(reservation.id).status == ReservationStatus.PENDING

    def test_update_increments_version(self, reservation_repository, make_reservation):
        reservation = make_reservation()
        reservation_repository.add(reservation)

        loaded = reservation_repository.get_by_id(reservation.id)
        loaded.confirm()
        reservation_repository.update(loaded)

        stored = reservation_repository.get_by_id(reservation.id)
        assert stored.status == ReservationStatus.CONFIRMED
        assert stored.version == 1
        assert loaded.version == 1

    def test_stale_update_raises_concurrency_conflict(
        self, reservation_repository, make_reservation
    ):
        """Два чтения одной версии: второе сохранение отклоняется."""
        # Подготовка
        reservation = make_reservation()
        reservation_repository.add(reservation)
        first = reservation_repository.get_by_id(reservation.id)
        second = reservation_repository.get_by_id(reservation.id)
        first.confirm()
        reservation_repository.update(first)

        # Действие
        second.cancel()
        with pytest.raises(ConcurrencyConflict) as exc_info:
            reservation_repository.update(second)

        # Проверка
        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert reservation_repository.get_by_id(reservation.id).status == ReservationStatus.CONFIRMED

    def test_update_and_delete_missing_fail(self, reservation_repository, make_reservation):
        with pytest.raises(EntityNotFound):
            reservation_repository.update(make_reservation())
        with pytest.raises(EntityNotFound):
            reservation_repository.delete(uuid4())

    def test_delete(self, reservation_repository, make_reservation):
        reservation = make_reservation()
        reservation_repository.add(reservation)

        reservation_repository.delete(reservation.id)

        assert reservation_repository.get_by_id(reservation.id) is None

    def test_search_overlapping_filters_status_and_vehicle(
        self, reservation_repository, make_reservation, period
    ):
        vehicle_id = uuid4()
        confirmed = make_reservation(vehicle_id, start=10, end=15)
        confirmed.confirm()
        pending = make_reservation(vehicle_id, start=10, end=15)
        other = make_reservation(start=10, end=15)
        other.confirm()
        for reservation in (confirmed, pending, other):
            reservation_repository.add(reservation)

        found = reservation_repository.search_overlapping(
            period(12, 20), [ReservationStatus.CONFIRMED], vehicle_id=vehicle_id
        )

        assert found == [confirmed]


class TestReservationSearch:
    """Тесты поиска бронирований."""

    @pytest.fixture
    def populated(self, reservation_repository, make_reservation):
        customer_id = uuid4()
        prices = ["100", "250", "50", "400"]
        reservations = []
        for index, net in enumerate(prices):
            reservation = make_reservation(
                start=index * 5,
                end=index * 5 + 2,
                customer_id=customer_id if index % 2 == 0 else uuid4(),
                pickup_location_code="MUC" if index < 2 else "BER",
                total_price=Money.euro(net),
            )
            if index == 3:
                reservation.confirm()
            reservation_repository.add(reservation)
            reservations.append(reservation)
        return customer_id, reservations

    def test_default_sort_is_newest_first(self, reservation_repository, populated):
        _, reservations = populated

        result = reservation_repository.search(ReservationSearchParameters())

        assert result.total_count == 4
        assert [r.id for r in result.items] == [
            r.id for r in sorted(reservations, key=lambda r: r.created_at, reverse=True)
        ]

    def test_filters(self, reservation_repository, populated):
        customer_id, reservations = populated

        by_customer = reservation_repository.search(
            ReservationSearchParameters.for_customer(customer_id)
        )
        by_status = reservation_repository.search(
            ReservationSearchParameters.for_status(ReservationStatus.CONFIRMED)
        )
        by_location = reservation_repository.search(
            ReservationSearchParameters(pickup_location_code="ber")
        )

        assert {r.id for r in by_customer.items} == {reservations[0].id, reservations[2].id}
        assert [r.id for r in by_status.items] == [reservations[3].id]
        assert by_location.total_count == 2

    def test_price_range_uses_gross(self, reservation_repository, populated):
        _, reservations = populated

        result = reservation_repository.search(
            ReservationSearchParameters(
                price_range=PriceRange(minimum=Decimal("119.00"), maximum=Decimal("297.50")),
                sorting=SortingInfo.by("price"),
            )
        )

        assert [r.id for r in result.items] == [reservations[0].id, reservations[1].id]

    def test_pickup_date_range(self, reservation_repository, populated, day):
        _, reservations = populated

        result = reservation_repository.search(
            ReservationSearchParameters(
                pickup_date_range=DateRange(from_date=day(5)),
                sorting=SortingInfo.by("pickup_date"),
            )
        )

        assert [r.id for r in result.items] == [r.id for r in reservations[1:]]

    def test_sort_by_status_uses_lifecycle_order(self, reservation_repository, populated):
        _, reservations = populated

        result = reservation_repository.search(
            ReservationSearchParameters(sorting=SortingInfo.by("Status", descending=True))
        )

        assert result.items[0].id == reservations[3].id

    def test_paging(self, reservation_repository, populated):
        result = reservation_repository.search(
            ReservationSearchParameters(paging=PagingInfo(page_number=2, page_size=3))
        )

        assert len(result.items) == 1
        assert result.total_count == 4
        assert result.total_pages == 2

    def test_strict_sorting(self, make_reservation):
        repository = InMemoryReservationRepository([make_reservation()], strict_sorting=True)

        with pytest.raises(InvalidSortField):
            repository.search(ReservationSearchParameters(sorting=SortingInfo.by("colour")))


class TestInMemoryEventBus:
    """Тесты шины событий."""

    def _event(self):
        return ReservationConfirmed(
            reservation_id=uuid4(), vehicle_id=uuid4(), customer_id=uuid4(),
            confirmed_at="2024-01-01T10:00:00+00:00",
        )

    def test_publish_to_subscribers(self, event_bus):
        received = []
        event_bus.subscribe(ReservationConfirmed, received.append)
        event = self._event()

        event_bus.publish(event)

        assert received == [event]

    def test_failing_handler_does_not_stop_delivery(self, event_bus):
        """Ошибка одного обработчика не мешает доставке остальным."""
        received = []

        def broken(event):
            raise RuntimeError("smtp down")

        event_bus.subscribe(ReservationConfirmed, broken)
        event_bus.subscribe(ReservationConfirmed, received.append)

        event_bus.publish(self._event())

        assert len(received) == 1

    def test_publish_without_subscribers(self, event_bus):
        event_bus.publish(self._event())


class TestUnitOfWork:
    """Тесты Unit of Work."""

    def test_commit_publishes_collected_events(self, uow, event_bus, make_reservation):
        received = []
        event_bus.subscribe(ReservationConfirmed, received.append)
        reservation = make_reservation()

        with uow:
            uow.reservations.add(reservation)
            event = reservation.confirm()
            uow.collect(event)
            assert received == []

        assert received == [event]

    def test_exception_rolls_back_and_discards_events(self, uow, event_bus, make_reservation):
        """При исключении изменения откатываются, события не публикуются."""
        # Подготовка
        received = []
        event_bus.subscribe(ReservationConfirmed, received.append)
        reservation = make_reservation()

        # Действие
        with pytest.raises(RuntimeError):
            with uow:
                uow.reservations.add(reservation)
                uow.collect(reservation.confirm())
                raise RuntimeError("storage failure")

        # Проверка
        assert uow.reservations.get_by_id(reservation.id) is None
        assert received == []

    def test_handlers_run_after_lock_is_released(self, uow, event_bus, make_reservation):
        """Обработчик может открыть единицу работы из другого потока."""
        # Подготовка
        finished = []

        def start_new_transaction(event):
            def worker():
                with uow:
                    finished.append(event.reservation_id)

            thread = threading.Thread(target=worker)
            thread.start()
            thread.join(timeout=2)

        event_bus.subscribe(ReservationConfirmed, start_new_transaction)
        reservation = make_reservation()

        # Действие
        with uow:
            uow.reservations.add(reservation)
            uow.collect(reservation.confirm())

        # Проверка
        assert finished == [reservation.id]

    def test_nested_block_commits_with_outer(self, uow, make_reservation):
        first, second = make_reservation(), make_reservation()

        with pytest.raises(RuntimeError):
            with uow:
                uow.reservations.add(first)
                with uow:
                    uow.reservations.add(second)
                raise RuntimeError("outer failure")

        assert uow.reservations.get_by_id(first.id) is None
        assert uow.reservations.get_by_id(second.id) is None

    def test_defaults(self):
        uow = InMemoryReservationUnitOfWork()

        assert isinstance(uow.reservations, InMemoryReservationRepository)
        assert isinstance(uow.event_bus, InMemoryEventBus)
