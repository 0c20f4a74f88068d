from car_rental.shared_kernel.logger import ILogger

from .domain import ReservationCancelled, ReservationEvent


def on_reservation_status_changed(event: ReservationEvent, logger: ILogger) -> None:
    """Обработчик событий бронирования: уведомление клиента (пока через лог)."""
    context = {
        "reservation_id": str(event.reservation_id),
        "customer_id": str(event.customer_id),
        "vehicle_id": str(event.vehicle_id),
    }
    if isinstance(event, ReservationCancelled) and event.reason:
        context["reason"] = event.reason
    logger.info(f"Notify customer: {event.event_type}", **context)
