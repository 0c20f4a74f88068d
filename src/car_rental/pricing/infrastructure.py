"""
Инфраструктурный слой контекста ценообразования.

Реализация сервиса расчета цен в памяти; в рабочей системе
эту роль играет отдельный микросервис.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from car_rental.shared_kernel import BookingPeriod, EntityId, Money
from car_rental.shared_kernel.logger import ILogger, get_logger

from .domain import NoPricingPolicyFound, PriceCalculation, PricingPolicy, normalize_code

# Дневные ставки нетто по категориям (EUR)
SAMPLE_DAILY_RATES = {
    "KLEIN": "29.99",
    "KOMPAKT": "39.99",
    "MITTEL": "54.99",
    "OBER": "89.99",
    "SUV": "69.99",
    "KOMBI": "49.99",
    "TRANS": "79.99",
    "LUXUS": "149.99",
}


class InMemoryPricingService:
    """Сервис расчета цен на основе политик, хранящихся в памяти."""

    def __init__(
        self,
        policies: Iterable[PricingPolicy] = (),
        logger: Optional[ILogger] = None,
    ):
        self._policies: Dict[EntityId, PricingPolicy] = {}
        self._logger = logger or get_logger(__name__)
        for policy in policies:
            self.add_policy(policy)

    @classmethod
    def with_sample_policies(
        cls, vat_rate: Decimal, currency: str = "EUR", logger: Optional[ILogger] = None
    ) -> "InMemoryPricingService":
        """Создает сервис с тестовыми политиками для всех категорий."""
        return cls(
            [
                PricingPolicy.create(code, Money.from_net(rate, vat_rate, currency))
                for code, rate in SAMPLE_DAILY_RATES.items()
            ],
            logger=logger,
        )

    def add_policy(self, policy: PricingPolicy) -> None:
        self._policies[policy.id] = policy

    def list_policies(self) -> List[PricingPolicy]:
        return list(self._policies.values())

    def find_policy(
        self, category_code: str, period: BookingPeriod, location_code: Optional[str] = None
    ) -> PricingPolicy:
        """
        Находит действующую политику на дату выдачи.

        Политика конкретной точки выдачи имеет приоритет над общей.
        """
        category = normalize_code(category_code, "category_code")
        location = location_code.strip().upper() if location_code else None
        candidates = [
            p
            for p in self._policies.values()
            if p.category_code == category and p.is_effective_on(period.pickup_date)
        ]

        for policy in candidates:
            if location is not None and policy.location_code == location:
                return policy
        for policy in candidates:
            if policy.location_code is None:
                return policy
        raise NoPricingPolicyFound(category, location)

    def calculate_price(
        self, category_code: str, period: BookingPeriod, pickup_location_code: Optional[str]
    ) -> PriceCalculation:
        policy = self.find_policy(category_code, period, pickup_location_code)
        calculation = policy.calculate(period)
        self._logger.debug(
            "Price calculated",
            category_code=calculation.category_code,
            days=calculation.days,
            total_gross=calculation.total_gross,
            currency=calculation.currency,
        )
        return calculation
