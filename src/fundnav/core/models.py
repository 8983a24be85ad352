"""Pydantic data models — the system's type contracts."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# --- Type Aliases ---

InstrumentId = int
RawSeries = dict[date, Decimal]
"""Unordered raw upstream history: date -> NAV as reported."""


# --- Directory Models ---


class InstrumentDescriptor(BaseModel):
    """One tradeable fund in the directory."""

    model_config = ConfigDict(frozen=True)

    id: InstrumentId
    display_name: str
    alt_id: str | None = None

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("display_name must not be blank")
        return v


# --- Series Models ---


class PricePoint(BaseModel):
    """NAV for one calendar day. `value` is None before any known NAV."""

    model_config = ConfigDict(frozen=True)

    date: date
    value: Decimal | None = None


class PriceSeries(BaseModel):
    """Dense, ascending NAV history for one instrument.

    Built once by SeriesNormalizer and replaced wholesale on refresh.
    """

    model_config = ConfigDict(frozen=True)

    instrument_id: InstrumentId
    points: tuple[PricePoint, ...]

    @model_validator(mode="after")
    def dates_dense_and_ascending(self) -> PriceSeries:
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.date - prev.date != timedelta(days=1):
                raise ValueError(
                    f"series dates must be consecutive days, got {prev.date} -> {cur.date}"
                )
        return self

    def __len__(self) -> int:
        return len(self.points)

    @property
    def first_date(self) -> date | None:
        return self.points[0].date if self.points else None

    @property
    def last_date(self) -> date | None:
        return self.points[-1].date if self.points else None


class CorrectionRule(BaseModel):
    """Scale correction applied to an instrument from `effective_date` onward."""

    model_config = ConfigDict(frozen=True)

    instrument_id: InstrumentId
    effective_date: date
    multiplier: Decimal

    @field_validator("multiplier")
    @classmethod
    def multiplier_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"multiplier must be > 0, got {v}")
        return v
