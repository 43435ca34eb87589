"""Search/availability service models."""

from __future__ import annotations

import datetime as dt
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pyreserva._constants import DEFAULT_PAGE_SIZE
from pyreserva.models._base import ReservaBaseModel
from pyreserva.models.reservation import MealType


class TableAvailability(ReservaBaseModel):
    """One table's availability for a date and meal type.

    ``id`` has the form ``table-{meal_type}-{table_number}-{date}``.
    """

    id: str = ""
    table_number: int
    capacity: int
    meal_type: MealType | None = None
    date: dt.date | None = None
    is_available: bool = True
    reservation_id: str = ""


class TableRef(BaseModel):
    """The part of an availability record a booking draft holds on to."""

    model_config = ConfigDict(frozen=True)

    table_number: int
    capacity: int = Field(ge=1)
    availability_id: str = ""

    @classmethod
    def from_availability(cls, table: TableAvailability) -> TableRef:
        return cls(table_number=table.table_number, capacity=table.capacity, availability_id=table.id)


class SearchPage(ReservaBaseModel):
    """One page of search results.

    The search service has shipped both ``Results``/``Pages`` and
    ``results``/``totalPages``; both shapes decode to this model.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "Pages": "total_pages",
        "pages": "total_pages",
        "totalPages": "total_pages",
    }

    results: list[TableAvailability] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = DEFAULT_PAGE_SIZE
    total_pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class SearchParams(BaseModel):
    """Query parameters for ``GET /api/search``."""

    model_config = ConfigDict(frozen=True)

    q: str = "*:*"
    page: int = Field(default=1, ge=1)
    size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100)
    sort: str | None = None
    order: str | None = None
    meal_type: MealType | None = None
    date: dt.date | None = None
    is_available: bool | None = None
    capacity: int | None = None
    status: str | None = None
    guests: int | None = None

    def to_query(self) -> dict[str, str]:
        """Query-string form, with unset and empty values dropped."""
        query: dict[str, str] = {}
        for name, value in self.model_dump(mode="json").items():
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                query[name] = "true" if value else "false"
            else:
                query[name] = str(value)
        return query


class CacheStats(ReservaBaseModel):
    local_entries: int = 0
    distributed_hits: int = 0
    distributed_misses: int = 0


class SearchStats(ReservaBaseModel):
    documents: int = 0
    cache: CacheStats = Field(default_factory=CacheStats)


class ReindexAck(ReservaBaseModel):
    status: str = ""

    @classmethod
    def from_body(cls, body: Any) -> ReindexAck:
        return cls.model_validate(body if isinstance(body, dict) else {})
