"""
Доменная модель контекста автопарка.

Для ядра бронирования автомобиль нужен только как модель для чтения:
категория, точка, дневная ставка и характеристики для фильтрации.
"""

from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from car_rental.shared_kernel import (
    EntityId,
    Money,
    SearchParameters,
    SortFieldTable,
    generate_id,
)


class FuelType(str, Enum):
    """Тип топлива."""

    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class TransmissionType(str, Enum):
    """Тип коробки передач."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"


class VehicleStatus(str, Enum):
    """Статусы автомобиля в автопарке."""

    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class Vehicle(BaseModel):
    """Автомобиль автопарка."""

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    name: str
    category_code: str
    location_code: str
    daily_rate: Money
    seats: int = Field(..., gt=0)
    fuel_type: FuelType
    transmission_type: TransmissionType
    status: VehicleStatus = VehicleStatus.AVAILABLE
    license_plate: Optional[str] = None

    @field_validator("category_code", "location_code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class VehicleSortField(str, Enum):
    NAME = "name"
    CATEGORY = "category"
    DAILY_RATE = "dailyrate"
    SEATS = "seats"


VEHICLE_SORT_FIELDS: SortFieldTable[Vehicle] = SortFieldTable(
    {
        VehicleSortField.NAME: lambda v: v.name.lower(),
        VehicleSortField.CATEGORY: lambda v: v.category_code,
        VehicleSortField.DAILY_RATE: lambda v: v.daily_rate.gross_amount,
        VehicleSortField.SEATS: lambda v: v.seats,
    },
    default_field=VehicleSortField.NAME,
)


class VehicleSearchParameters(SearchParameters):
    """Параметры поиска автомобилей. Незаданный фильтр не применяется."""

    location_code: Optional[str] = None
    category_code: Optional[str] = None
    min_seats: Optional[int] = Field(None, gt=0)
    fuel_type: Optional[FuelType] = None
    transmission_type: Optional[TransmissionType] = None
    # Сравнивается с брутто дневной ставки
    max_daily_rate: Optional[Decimal] = Field(None, ge=0)
    status: Optional[VehicleStatus] = None
    # Заполняется при поиске свободных автомобилей на период
    excluded_vehicle_ids: FrozenSet[EntityId] = frozenset()
