"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from fundnav.core.models import InstrumentDescriptor, PriceSeries


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Health --


class HealthResponse(BaseModel):
    status: str
    version: str
    ready: bool
    funds: int
    cached_series: int
    last_refreshed: datetime | None = None


# -- Funds --


class FundResponse(BaseModel):
    """Directory entry in API response format."""

    scheme_code: int
    scheme_name: str
    isin_growth: str | None = None

    @classmethod
    def from_descriptor(cls, descriptor: InstrumentDescriptor) -> FundResponse:
        return cls(
            scheme_code=descriptor.id,
            scheme_name=descriptor.display_name,
            isin_growth=descriptor.alt_id,
        )


# -- NAV --


class NavPointResponse(BaseModel):
    date: date
    nav: str | None = None


class NavHistoryResponse(BaseModel):
    """Dense daily NAV history, oldest first. NAVs are 2-decimal strings."""

    scheme_code: int
    points: list[NavPointResponse]

    @classmethod
    def from_series(cls, series: PriceSeries) -> NavHistoryResponse:
        return cls(
            scheme_code=series.instrument_id,
            points=[
                NavPointResponse(
                    date=p.date,
                    nav=str(p.value) if p.value is not None else None,
                )
                for p in series.points
            ],
        )
