"""Structured tool arguments shared by several tools."""

from __future__ import annotations

from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

# "day", "7d", "30d", "month", "6mo", "12mo", "year", "all" or [from, to]
DateRange = Union[str, list[str]]
TimeInterval = Literal["hour", "day", "week", "month"]
GoalType = Literal["event", "page"]


class QueryInclude(BaseModel):
    """Optional extras returned alongside Stats API results."""

    imports: Optional[bool] = None
    time_labels: Optional[bool] = None
    total_rows: Optional[bool] = None

    def as_body(self) -> Dict[str, bool]:
        return self.model_dump(exclude_none=True)


class QueryPagination(BaseModel):
    limit: Optional[int] = None
    offset: Optional[int] = None

    def as_body(self) -> Dict[str, int]:
        return self.model_dump(exclude_none=True)


class Revenue(BaseModel):
    """Revenue attached to an event for revenue goals."""

    currency: str = Field(..., description='ISO 4217 currency code (e.g. "USD")')
    amount: Union[str, float] = Field(
        ..., description='Revenue amount (e.g. 29.99 or "29.99")'
    )
