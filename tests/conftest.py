"""Shared pytest fixtures for fundnav."""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from fundnav.core.exceptions import SourceUnavailable
from fundnav.core.models import InstrumentDescriptor, RawSeries


class FakeSource:
    """In-memory stand-in for MfApiClient that counts upstream calls."""

    def __init__(
        self,
        directory: list[InstrumentDescriptor] | None = None,
        series: dict[int, RawSeries] | None = None,
    ) -> None:
        self.directory = list(directory or [])
        self.series = dict(series or {})
        self.directory_calls = 0
        self.series_calls: dict[int, int] = {}
        self.fail_directory = False
        self.fail_series: set[int] = set()
        self.gate: asyncio.Event | None = None

    async def fetch_directory(self) -> list[InstrumentDescriptor]:
        self.directory_calls += 1
        if self.fail_directory:
            raise SourceUnavailable("directory down", context={"url": "fake"})
        return list(self.directory)

    async def fetch_raw_series(self, instrument_id: int) -> RawSeries:
        self.series_calls[instrument_id] = self.series_calls.get(instrument_id, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        if instrument_id in self.fail_series:
            raise SourceUnavailable("series down", context={"url": "fake"})
        return dict(self.series[instrument_id])


@pytest.fixture
def sample_descriptors() -> list[InstrumentDescriptor]:
    return [
        InstrumentDescriptor(
            id=122639, display_name="Parag Parikh Flexi Cap Fund", alt_id="INF879O01027"
        ),
        InstrumentDescriptor(
            id=120465, display_name="Axis Bluechip Fund", alt_id="INF846K01DP8"
        ),
        InstrumentDescriptor(
            id=120503, display_name="Axis Midcap Fund", alt_id="INF846K01EW2"
        ),
        InstrumentDescriptor(
            id=118989, display_name="HDFC Mid Cap Opportunities Fund", alt_id="INF179K01XQ0"
        ),
        InstrumentDescriptor(
            id=119551, display_name="SBI Liquid Fund", alt_id="INF200K01MO1"
        ),
    ]


@pytest.fixture
def sample_raw_series() -> RawSeries:
    return {
        date(2024, 1, 5): Decimal("101.5"),
        date(2024, 1, 2): Decimal("100.12345"),
        date(2024, 1, 1): Decimal("99.999"),
    }


@pytest.fixture
def fake_source(sample_descriptors, sample_raw_series) -> FakeSource:
    return FakeSource(
        directory=sample_descriptors,
        series={d.id: sample_raw_series for d in sample_descriptors},
    )


@pytest.fixture
def raw_directory_payload() -> list[dict]:
    """Mock upstream scheme list (mfapi.in shape)."""
    return [
        {
            "schemeCode": 122639,
            "schemeName": "Parag Parikh Flexi Cap Fund - Direct Plan - Growth",
            "isinGrowth": "INF879O01027",
            "isinDivReinvestment": None,
        },
        {
            "schemeCode": 122640,
            "schemeName": "Parag Parikh Flexi Cap Fund - Regular Plan - Growth",
            "isinGrowth": "INF879O01019",
            "isinDivReinvestment": None,
        },
        {
            "schemeCode": 120465,
            "schemeName": "Axis Bluechip Fund - Direct Growth",
            "isinGrowth": "INF846K01DP8",
            "isinDivReinvestment": None,
        },
        {
            "schemeCode": 120466,
            "schemeName": "Axis Bluechip Fund - Direct Plan - IDCW",
            "isinGrowth": "INF846K01DQ6",
            "isinDivReinvestment": "INF846K01DR4",
        },
        {
            "schemeCode": 100001,
            "schemeName": "Legacy Income Fund - Direct Plan",
            "isinGrowth": None,
            "isinDivReinvestment": "INF000000001",
        },
    ]


@pytest.fixture
def raw_nav_payload() -> dict:
    """Mock upstream NAV history, newest first with a weekend gap."""
    return {
        "meta": {
            "fund_house": "PPFAS Mutual Fund",
            "scheme_code": 122639,
            "scheme_name": "Parag Parikh Flexi Cap Fund - Direct Plan - Growth",
        },
        "data": [
            {"date": "08-01-2024", "nav": "68.12340"},
            {"date": "05-01-2024", "nav": "67.50000"},
            {"date": "04-01-2024", "nav": "67.00500"},
        ],
        "status": "SUCCESS",
    }


@pytest.fixture
def source_factory() -> type[FakeSource]:
    """The FakeSource class, for tests that build their own."""
    return FakeSource
