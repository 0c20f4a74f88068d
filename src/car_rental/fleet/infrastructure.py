"""
Инфраструктурный слой контекста автопарка.
"""

from typing import Dict, Iterable, Optional

from car_rental.shared_kernel import EntityId, PagedResult, Query

from .domain import VEHICLE_SORT_FIELDS, Vehicle, VehicleSearchParameters


class InMemoryVehicleRepository:
    """Реализация репозитория автомобилей в памяти."""

    def __init__(
        self,
        vehicles: Iterable[Vehicle] = (),
        strict_sorting: bool = False,
        default_page_size: Optional[int] = None,
    ):
        self._vehicles: Dict[EntityId, Vehicle] = {}
        self._strict_sorting = strict_sorting
        self._default_page_size = default_page_size
        for vehicle in vehicles:
            self.add(vehicle)

    def add(self, vehicle: Vehicle) -> None:
        if vehicle.id in self._vehicles:
            raise ValueError(f"Vehicle with id {vehicle.id} already exists")
        self._vehicles[vehicle.id] = vehicle

    def get_by_id(self, vehicle_id: EntityId) -> Optional[Vehicle]:
        return self._vehicles.get(vehicle_id)

    def search(self, params: VehicleSearchParameters) -> PagedResult[Vehicle]:
        location = params.location_code.strip().upper() if params.location_code else None
        category = params.category_code.strip().upper() if params.category_code else None

        return (
            Query(self._vehicles.values())
            .where_if(location is not None, lambda v: v.location_code == location)
            .where_if(category is not None, lambda v: v.category_code == category)
            .where_if(params.min_seats is not None, lambda v: v.seats >= params.min_seats)
            .where_if(params.fuel_type is not None, lambda v: v.fuel_type == params.fuel_type)
            .where_if(
                params.transmission_type is not None,
                lambda v: v.transmission_type == params.transmission_type,
            )
            .where_if(
                params.max_daily_rate is not None,
                lambda v: v.daily_rate.gross_amount <= params.max_daily_rate,
            )
            .where_if(params.status is not None, lambda v: v.status == params.status)
            .where_if(
                bool(params.excluded_vehicle_ids),
                lambda v: v.id not in params.excluded_vehicle_ids,
            )
            .order_by(params.sorting, VEHICLE_SORT_FIELDS, strict=self._strict_sorting)
            .to_paged_result(params.effective_paging(self._default_page_size))
        )
