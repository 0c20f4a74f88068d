"""
Доменная модель контекста клиентов.

Клиент здесь это модель для чтения: регистрация и профиль
принадлежат отдельному сервису клиентов.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from car_rental.shared_kernel import (
    DateRange,
    EntityId,
    IntRange,
    SearchParameters,
    SortFieldTable,
    generate_id,
    now,
)


class CustomerStatus(str, Enum):
    """Статусы клиента."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"


def age_on(date_of_birth: date, day: date) -> int:
    """Полных лет на указанную дату."""
    had_birthday = (day.month, day.day) >= (date_of_birth.month, date_of_birth.day)
    return day.year - date_of_birth.year - (0 if had_birthday else 1)


class Customer(BaseModel):
    """Клиент прокатной компании."""

    model_config = ConfigDict(frozen=True)

    id: EntityId = Field(default_factory=generate_id)
    first_name: str
    last_name: str
    email: str
    city: str
    date_of_birth: date
    status: CustomerStatus = CustomerStatus.ACTIVE
    registered_at: datetime = Field(default_factory=now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def age(self, on: date) -> int:
        return age_on(self.date_of_birth, on)


class CustomerSortField(str, Enum):
    LAST_NAME = "lastname"
    FIRST_NAME = "firstname"
    EMAIL = "email"
    REGISTERED_AT = "registeredat"
    AGE = "age"


CUSTOMER_SORT_FIELDS: SortFieldTable[Customer] = SortFieldTable(
    {
        CustomerSortField.LAST_NAME: lambda c: c.last_name.lower(),
        CustomerSortField.FIRST_NAME: lambda c: c.first_name.lower(),
        CustomerSortField.EMAIL: lambda c: c.email.lower(),
        CustomerSortField.REGISTERED_AT: lambda c: c.registered_at,
        # Чем раньше дата рождения, тем старше клиент
        CustomerSortField.AGE: lambda c: -c.date_of_birth.toordinal(),
    },
    default_field=CustomerSortField.REGISTERED_AT,
    default_descending=True,
)


class CustomerSearchParameters(SearchParameters):
    """Параметры поиска клиентов. Незаданный фильтр не применяется."""

    # Подстрока имени или фамилии без учета регистра
    search_term: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    status: Optional[CustomerStatus] = None
    age_range: Optional[IntRange] = None
    registered_date_range: Optional[DateRange] = None
