"""
Инфраструктурный слой контекста клиентов.
"""

from datetime import date
from typing import Callable, Dict, Iterable, Optional

from car_rental.shared_kernel import EntityId, PagedResult, Query, today

from .domain import CUSTOMER_SORT_FIELDS, Customer, CustomerSearchParameters


class InMemoryCustomerRepository:
    """Реализация репозитория клиентов в памяти."""

    def __init__(
        self,
        customers: Iterable[Customer] = (),
        strict_sorting: bool = False,
        clock: Callable[[], date] = today,
        default_page_size: Optional[int] = None,
    ):
        self._customers: Dict[EntityId, Customer] = {}
        self._email_index: Dict[str, Customer] = {}
        self._strict_sorting = strict_sorting
        self._default_page_size = default_page_size
        self._clock = clock
        for customer in customers:
            self.add(customer)

    def add(self, customer: Customer) -> None:
        if customer.id in self._customers:
            raise ValueError(f"Customer with id {customer.id} already exists")
        if customer.email.lower() in self._email_index:
            raise ValueError(f"Customer with email {customer.email} already exists")

        self._customers[customer.id] = customer
        self._email_index[customer.email.lower()] = customer

    def get_by_id(self, customer_id: EntityId) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def find_by_email(self, email: str) -> Optional[Customer]:
        return self._email_index.get(email.lower())

    def search(self, params: CustomerSearchParameters) -> PagedResult[Customer]:
        term = params.search_term.strip().lower() if params.search_term else None
        city = params.city.strip().lower() if params.city else None
        email = params.email.strip().lower() if params.email else None
        current_day = self._clock()

        return (
            Query(self._customers.values())
            .where_if(
                bool(term),
                lambda c: term in c.first_name.lower() or term in c.last_name.lower(),
            )
            .where_if(email is not None, lambda c: c.email.lower() == email)
            .where_if(city is not None, lambda c: c.city.lower() == city)
            .where_if(params.status is not None, lambda c: c.status == params.status)
            .where_in_range(params.age_range, lambda c: c.age(current_day))
            .where_in_range(
                params.registered_date_range, lambda c: c.registered_at.date()
            )
            .order_by(params.sorting, CUSTOMER_SORT_FIELDS, strict=self._strict_sorting)
            .to_paged_result(params.effective_paging(self._default_page_size))
        )
