"""
Доменная модель контекста ценообразования.

Политика цен задает дневную ставку для категории автомобиля
(при необходимости для конкретной точки выдачи). Политики неизменяемы:
изменения возвращают новый экземпляр.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from car_rental.shared_kernel import (
    BookingPeriod,
    DomainException,
    EntityId,
    InvalidArgument,
    Money,
    generate_id,
)


class NoPricingPolicyFound(DomainException):
    """Для категории (и точки выдачи) нет действующей политики цен."""

    def __init__(self, category_code: str, location_code: Optional[str] = None):
        message = f"no pricing policy found for category {category_code}"
        if location_code:
            message = f"{message} at location {location_code}"
        super().__init__(
            message, category_code=category_code, location_code=location_code
        )
        self.category_code = category_code
        self.location_code = location_code


class PriceCalculation(BaseModel):
    """Результат расчета цены аренды."""

    model_config = ConfigDict(frozen=True)

    category_code: str
    days: int = Field(..., ge=0)
    daily_rate_net: Decimal
    total_net: Decimal
    vat_rate: Decimal
    total_vat: Decimal
    total_gross: Decimal
    currency: str

    @classmethod
    def from_daily_rate(
        cls, category_code: str, daily_rate: Money, period: BookingPeriod
    ) -> "PriceCalculation":
        total = daily_rate.multiply_by_days(period.days)
        return cls(
            category_code=category_code,
            days=period.days,
            daily_rate_net=daily_rate.net_amount,
            total_net=total.net_amount,
            vat_rate=total.vat_rate,
            total_vat=total.vat_amount,
            total_gross=total.gross_amount,
            currency=total.currency,
        )

    @property
    def total_price(self) -> Money:
        """Итоговая цена как ``Money`` (без повторного округления)."""
        return Money(
            net_amount=self.total_net,
            vat_amount=self.total_vat,
            vat_rate=self.vat_rate,
            currency=self.currency,
        )


def normalize_code(value: str, argument: str) -> str:
    code = (value or "").strip().upper()
    if not code:
        raise InvalidArgument(f"{argument} cannot be empty", argument, value)
    return code


class PricingPolicy(BaseModel):
    """Политика цен для категории автомобилей."""

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    category_code: str
    daily_rate: Money
    location_code: Optional[str] = None
    effective_from: date = date.min
    effective_until: Optional[date] = None
    is_active: bool = True

    @classmethod
    def create(
        cls,
        category_code: str,
        daily_rate: Money,
        location_code: Optional[str] = None,
        effective_from: Optional[date] = None,
        effective_until: Optional[date] = None,
    ) -> "PricingPolicy":
        if daily_rate.is_negative:
            raise InvalidArgument("daily rate cannot be negative", "daily_rate", daily_rate)
        if effective_from and effective_until and effective_until < effective_from:
            raise InvalidArgument(
                "effective until cannot be before effective from",
                "effective_until",
                effective_until,
            )
        return cls(
            category_code=normalize_code(category_code, "category_code"),
            daily_rate=daily_rate,
            location_code=(
                normalize_code(location_code, "location_code") if location_code else None
            ),
            effective_from=effective_from or date.min,
            effective_until=effective_until,
        )

    def is_effective_on(self, day: date) -> bool:
        if not self.is_active or day < self.effective_from:
            return False
        return self.effective_until is None or day <= self.effective_until

    def update_daily_rate(self, new_rate: Money) -> "PricingPolicy":
        if new_rate == self.daily_rate:
            return self
        return self.model_copy(update={"daily_rate": new_rate})

    def deactivate(self, on: Optional[date] = None) -> "PricingPolicy":
        if not self.is_active:
            return self
        return self.model_copy(update={"is_active": False, "effective_until": on})

    def calculate(self, period: BookingPeriod) -> PriceCalculation:
        return PriceCalculation.from_daily_rate(self.category_code, self.daily_rate, period)
