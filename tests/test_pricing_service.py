"""
Тесты для контекста ценообразования.
"""
from datetime import date
from decimal import Decimal

import pytest

from car_rental.pricing.domain import NoPricingPolicyFound, PriceCalculation, PricingPolicy
from car_rental.pricing.infrastructure import SAMPLE_DAILY_RATES, InMemoryPricingService
from car_rental.shared_kernel import BookingPeriod, InvalidArgument, Money


@pytest.fixture
def four_days() -> BookingPeriod:
    return BookingPeriod(pickup_date=date(2030, 3, 1), return_date=date(2030, 3, 4))


class TestPriceCalculation:
    """Тесты расчета цены."""

    def test_daily_rate_times_days(self, four_days):
        """50.00 EUR нетто x 4 дня при 19% НДС = 200.00 / 38.00 / 238.00."""
        # Подготовка
        daily = Money.from_net(Decimal("50.00"), Decimal("0.19"), "EUR")

        # Действие
        calculation = PriceCalculation.from_daily_rate("MITTEL", daily, four_days)

        # Проверка
        assert calculation.days == 4
        assert calculation.daily_rate_net == Decimal("50.00")
        assert calculation.total_net == Decimal("200.00")
        assert calculation.total_vat == Decimal("38.00")
        assert calculation.total_gross == Decimal("238.00")
        assert calculation.total_price == daily.multiply_by_days(4)


class TestPricingPolicy:
    """Тесты политики цен."""

    def test_create_normalizes_codes(self):
        policy = PricingPolicy.create(" suv ", Money.euro("69.99"), location_code="muc")

        assert policy.category_code == "SUV"
        assert policy.location_code == "MUC"

    def test_invalid_validity_window_fails(self):
        with pytest.raises(InvalidArgument):
            PricingPolicy.create(
                "SUV",
                Money.euro("69.99"),
                effective_from=date(2030, 2, 1),
                effective_until=date(2030, 1, 1),
            )

    def test_empty_category_fails(self):
        with pytest.raises(InvalidArgument):
            PricingPolicy.create("  ", Money.euro("10"))

    def test_effective_window(self):
        policy = PricingPolicy.create(
            "SUV",
            Money.euro("69.99"),
            effective_from=date(2030, 1, 1),
            effective_until=date(2030, 12, 31),
        )

        assert policy.is_effective_on(date(2030, 6, 1))
        assert not policy.is_effective_on(date(2029, 12, 31))
        assert not policy.is_effective_on(date(2031, 1, 1))

    def test_deactivate_returns_new_policy(self):
        policy = PricingPolicy.create("SUV", Money.euro("69.99"))

        inactive = policy.deactivate(date(2030, 1, 1))

        assert policy.is_active
        assert not inactive.is_active
        assert not inactive.is_effective_on(date(2029, 6, 1))

    def test_update_daily_rate(self):
        policy = PricingPolicy.create("SUV", Money.euro("69.99"))

        assert policy.update_daily_rate(Money.euro("69.99")) is policy
        assert policy.update_daily_rate(Money.euro("79.99")).daily_rate == Money.euro("79.99")


class TestInMemoryPricingService:
    """Тесты сервиса расчета цен."""

    def test_sample_policies_cover_all_categories(self):
        service = InMemoryPricingService.with_sample_policies(Decimal("0.19"))

        assert {p.category_code for p in service.list_policies()} == set(SAMPLE_DAILY_RATES)

    def test_location_policy_overrides_general(self, four_days):
        # Подготовка
        service = InMemoryPricingService(
            [
                PricingPolicy.create("SUV", Money.euro("69.99")),
                PricingPolicy.create("SUV", Money.euro("89.99"), location_code="MUC"),
            ]
        )

        # Действие
        munich = service.calculate_price("suv", four_days, "muc")
        berlin = service.calculate_price("SUV", four_days, "BER")

        # Проверка
        assert munich.daily_rate_net == Decimal("89.99")
        assert berlin.daily_rate_net == Decimal("69.99")

    def test_inactive_policies_are_ignored(self, four_days):
        service = InMemoryPricingService(
            [PricingPolicy.create("SUV", Money.euro("69.99")).deactivate()]
        )

        with pytest.raises(NoPricingPolicyFound) as exc_info:
            service.calculate_price("SUV", four_days, "MUC")

        assert exc_info.value.category_code == "SUV"
        assert exc_info.value.location_code == "MUC"

    def test_policy_must_be_effective_on_pickup_date(self, four_days):
        service = InMemoryPricingService(
            [PricingPolicy.create("SUV", Money.euro("69.99"), effective_from=date(2030, 3, 2))]
        )

        with pytest.raises(NoPricingPolicyFound):
            service.calculate_price("SUV", four_days, None)
