"""
Поиск, сортировка и постраничная выдача.

Общий конвейер для всех агрегатов: сначала фильтрация, затем сортировка,
затем выборка страницы. Порядок фиксирован, поэтому ``total_count``
всегда отражает количество записей после фильтрации, а не после пагинации.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import (
    Any,
    Callable,
    ClassVar,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .domain import InvalidArgument, InvalidSortField

T = TypeVar("T")
R = TypeVar("R")


class PagingInfo(BaseModel):
    """Параметры пагинации (номер страницы начинается с 1)."""

    model_config = ConfigDict(frozen=True)

    DEFAULT_PAGE_SIZE: ClassVar[int] = 20
    MAX_PAGE_SIZE: ClassVar[int] = 100

    page_number: int = 1
    page_size: int = 20

    @model_validator(mode="after")
    def _check_bounds(self) -> "PagingInfo":
        if self.page_number < 1:
            raise InvalidArgument(
                "page number must be at least 1", "page_number", self.page_number
            )
        if self.page_size < 1:
            raise InvalidArgument(
                "page size must be at least 1", "page_size", self.page_size
            )
        if self.page_size > self.MAX_PAGE_SIZE:
            raise InvalidArgument(
                f"page size cannot exceed {self.MAX_PAGE_SIZE}",
                "page_size",
                self.page_size,
            )
        return self

    @classmethod
    def create(cls, page_number: int = 1, page_size: Optional[int] = None) -> "PagingInfo":
        return cls(
            page_number=page_number,
            page_size=cls.DEFAULT_PAGE_SIZE if page_size is None else page_size,
        )

    @property
    def skip(self) -> int:
        """Сколько записей пропустить до начала страницы."""
        return (self.page_number - 1) * self.page_size

    @property
    def take(self) -> int:
        return self.page_size

    def next_page(self) -> "PagingInfo":
        return PagingInfo(page_number=self.page_number + 1, page_size=self.page_size)

    def previous_page(self) -> "PagingInfo":
        return PagingInfo(
            page_number=max(1, self.page_number - 1), page_size=self.page_size
        )


class SortingInfo(BaseModel):
    """Запрошенная сортировка: имя поля и направление."""

    model_config = ConfigDict(frozen=True)

    sort_by: Optional[str] = None
    descending: bool = False

    @classmethod
    def none(cls) -> "SortingInfo":
        return cls()

    @classmethod
    def by(cls, field: str, descending: bool = False) -> "SortingInfo":
        return cls(sort_by=field, descending=descending)

    @property
    def has_sorting(self) -> bool:
        return bool(self.sort_by and self.sort_by.strip())


def _check_range(lower: Any, upper: Any, name: str) -> None:
    if lower is not None and upper is not None and lower > upper:
        raise InvalidArgument(
            f"{name} lower bound cannot be greater than upper bound",
            name,
            (lower, upper),
        )


class _RangeFilter:
    """Общее поведение фильтров-диапазонов: границы применяются независимо."""

    @property
    def bounds(self) -> Tuple[Any, Any]:
        raise NotImplementedError

    @property
    def has_filter(self) -> bool:
        lower, upper = self.bounds
        return lower is not None or upper is not None

    @property
    def is_bounded(self) -> bool:
        lower, upper = self.bounds
        return lower is not None and upper is not None

    def contains(self, value: Any) -> bool:
        lower, upper = self.bounds
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False
        return True


class PriceRange(_RangeFilter, BaseModel):
    """Диапазон цен для фильтрации (границы включительно)."""

    model_config = ConfigDict(frozen=True)

    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None

    @model_validator(mode="after")
    def _check(self) -> "PriceRange":
        for name, value in (("minimum", self.minimum), ("maximum", self.maximum)):
            if value is not None and value < 0:
                raise InvalidArgument("price bound cannot be negative", name, value)
        _check_range(self.minimum, self.maximum, "price_range")
        return self

    @property
    def bounds(self) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        return self.minimum, self.maximum


class DateRange(_RangeFilter, BaseModel):
    """Диапазон дат для фильтрации (границы включительно)."""

    model_config = ConfigDict(frozen=True)

    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @model_validator(mode="after")
    def _check(self) -> "DateRange":
        _check_range(self.from_date, self.to_date, "date_range")
        return self

    @property
    def bounds(self) -> Tuple[Optional[date], Optional[date]]:
        return self.from_date, self.to_date

    @property
    def days_in_range(self) -> Optional[int]:
        if not self.is_bounded:
            return None
        return (self.to_date - self.from_date).days + 1


class IntRange(_RangeFilter, BaseModel):
    """Целочисленный диапазон (например, возраст клиента)."""

    model_config = ConfigDict(frozen=True)

    minimum: Optional[int] = None
    maximum: Optional[int] = None

    @model_validator(mode="after")
    def _check(self) -> "IntRange":
        _check_range(self.minimum, self.maximum, "int_range")
        return self

    @property
    def bounds(self) -> Tuple[Optional[int], Optional[int]]:
        return self.minimum, self.maximum


class SearchParameters(BaseModel):
    """Базовые параметры поиска: пагинация и сортировка."""

    model_config = ConfigDict(frozen=True)

    paging: PagingInfo = Field(default_factory=PagingInfo)
    sorting: SortingInfo = Field(default_factory=SortingInfo)

    def effective_paging(self, default_page_size: Optional[int] = None) -> PagingInfo:
        """
        Пагинация для выполнения запроса.

        Если вызывающий код не передал ``paging`` явно, используется размер
        страницы по умолчанию из настроек приложения.
        """
        if "paging" in self.model_fields_set or default_page_size is None:
            return self.paging
        return PagingInfo.create(page_size=default_page_size)


def normalize_field_name(name: str) -> str:
    return "".join(ch for ch in name.strip().lower() if ch not in "_- ")


class SortFieldTable(Generic[T]):
    """
    Таблица допустимых полей сортировки.

    Каждому значению перечисления соответствует функция-ключ. Имя поля
    из запроса сравнивается без учета регистра и разделителей.
    Неизвестное поле приводит к сортировке по умолчанию, а в строгом
    режиме к ``InvalidSortField``.
    """

    def __init__(
        self,
        fields: Mapping[Enum, Callable[[T], Any]],
        default_field: Enum,
        default_descending: bool = False,
    ):
        if default_field not in fields:
            raise ValueError(f"default sort field {default_field} is not in the table")
        self._fields = dict(fields)
        self._by_name = {normalize_field_name(str(f.value)): f for f in self._fields}
        self.default_field = default_field
        self.default_descending = default_descending

    @property
    def field_names(self) -> List[str]:
        return sorted(self._by_name)

    def resolve(
        self, sorting: SortingInfo, strict: bool = False
    ) -> Tuple[Callable[[T], Any], bool]:
        """Возвращает функцию-ключ и направление сортировки."""
        default = (self._fields[self.default_field], self.default_descending)
        if not sorting.has_sorting:
            return default

        field = self._by_name.get(normalize_field_name(sorting.sort_by))
        if field is None:
            if strict:
                raise InvalidSortField(sorting.sort_by, self._by_name)
            return default
        return self._fields[field], sorting.descending


class PagedResult(BaseModel, Generic[T]):
    """Страница результатов вместе с метаданными пагинации."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[T] = Field(default_factory=list)
    total_count: int = Field(0, ge=0)
    page_number: int = Field(1, ge=1)
    page_size: int = Field(PagingInfo.DEFAULT_PAGE_SIZE, ge=1)

    @computed_field  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    def map(self, func: Callable[[T], R]) -> "PagedResult[R]":
        """Преобразует элементы страницы, сохраняя метаданные."""
        return PagedResult(
            items=[func(item) for item in self.items],
            total_count=self.total_count,
            page_number=self.page_number,
            page_size=self.page_size,
        )


class Query(Generic[T]):
    """
    Конвейер запроса к коллекции в памяти.

    Методы построителя можно вызывать в любом порядке: при выполнении
    фильтры всегда применяются до сортировки, сортировка до пагинации.
    """

    def __init__(self, items: Iterable[T]):
        self._items = list(items)
        self._predicates: List[Callable[[T], bool]] = []
        self._sort_key: Optional[Callable[[T], Any]] = None
        self._descending = False

    def where(self, predicate: Callable[[T], bool]) -> "Query[T]":
        self._predicates.append(predicate)
        return self

    def where_if(self, condition: bool, predicate: Callable[[T], bool]) -> "Query[T]":
        """Добавляет фильтр только если условие истинно."""
        if condition:
            self._predicates.append(predicate)
        return self

    def where_in_range(
        self, value_range: Optional[_RangeFilter], getter: Callable[[T], Any]
    ) -> "Query[T]":
        """Применяет нижнюю и верхнюю границы диапазона независимо друг от друга."""
        if value_range is None or not value_range.has_filter:
            return self

        lower, upper = value_range.bounds
        if lower is not None:
            self._predicates.append(lambda item: getter(item) >= lower)
        if upper is not None:
            self._predicates.append(lambda item: getter(item) <= upper)
        return self

    def order_by(
        self, sorting: SortingInfo, table: SortFieldTable[T], strict: bool = False
    ) -> "Query[T]":
        self._sort_key, self._descending = table.resolve(sorting, strict)
        return self

    def _filtered(self) -> List[T]:
        return [
            item for item in self._items if all(p(item) for p in self._predicates)
        ]

    def _ordered(self, items: List[T]) -> List[T]:
        if self._sort_key is None:
            return items
        return sorted(items, key=self._sort_key, reverse=self._descending)

    def count(self) -> int:
        return len(self._filtered())

    def to_list(self) -> List[T]:
        return self._ordered(self._filtered())

    def to_paged_result(self, paging: PagingInfo) -> PagedResult[T]:
        filtered = self._filtered()
        total_count = len(filtered)
        ordered = self._ordered(filtered)
        return PagedResult(
            items=ordered[paging.skip : paging.skip + paging.take],
            total_count=total_count,
            page_number=paging.page_number,
            page_size=paging.page_size,
        )
