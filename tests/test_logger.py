"""
Тесты для логирования и обработчика уведомлений.
"""
import logging
from uuid import uuid4

from car_rental.reservations.domain import ReservationCancelled
from car_rental.reservations.event_handlers import on_reservation_status_changed
from car_rental.shared_kernel.logger import StdlibLogger, get_logger


def test_context_is_rendered_as_json(caplog):
    logger = get_logger("car_rental.test")

    with caplog.at_level(logging.INFO, logger="car_rental.test"):
        logger.info("Reservation created", reservation_id="abc", days=4)

    assert caplog.records[0].getMessage() == 'Reservation created | {"reservation_id": "abc", "days": 4}'


def test_disabled_level_is_skipped(caplog):
    logger = StdlibLogger("car_rental.quiet")

    with caplog.at_level(logging.WARNING, logger="car_rental.quiet"):
        logger.debug("hidden", value=1)
        logger.warning("shown")

    assert [r.getMessage() for r in caplog.records] == ["shown"]


def test_notification_handler_logs_cancellation_reason(caplog):
    event = ReservationCancelled(
        reservation_id=uuid4(),
        vehicle_id=uuid4(),
        customer_id=uuid4(),
        cancelled_at="2030-01-01T10:00:00+00:00",
        reason="flight cancelled",
    )

    with caplog.at_level(logging.INFO, logger="car_rental.notifications"):
        on_reservation_status_changed(event, get_logger("car_rental.notifications"))

    message = caplog.records[0].getMessage()
    assert message.startswith("Notify customer: ReservationCancelled")
    assert "flight cancelled" in message
