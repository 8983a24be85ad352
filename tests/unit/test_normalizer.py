"""Tests for fundnav.series.normalizer."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fundnav.core.exceptions import MalformedData
from fundnav.core.models import CorrectionRule
from fundnav.series.corrections import CorrectionTable
from fundnav.series.normalizer import SeriesNormalizer, forward_fill


@pytest.fixture
def normalizer() -> SeriesNormalizer:
    return SeriesNormalizer()


class TestGapFill:
    def test_fills_missing_day_with_previous_value(self, normalizer):
        raw = {date(2024, 1, 3): Decimal("100.00"), date(2024, 1, 1): Decimal("90.00")}

        series = normalizer.normalize(1, raw)

        assert [(p.date, p.value) for p in series.points] == [
            (date(2024, 1, 1), Decimal("90.00")),
            (date(2024, 1, 2), Decimal("90.00")),
            (date(2024, 1, 3), Decimal("100.00")),
        ]

    def test_one_point_per_calendar_day(self, normalizer, sample_raw_series):
        series = normalizer.normalize(1, sample_raw_series)

        span = (date(2024, 1, 5) - date(2024, 1, 1)).days + 1
        assert len(series) == span
        assert series.first_date == date(2024, 1, 1)
        assert series.last_date == date(2024, 1, 5)
        for prev, cur in zip(series.points, series.points[1:]):
            assert cur.date - prev.date == timedelta(days=1)

    def test_long_weekend_carries_friday_value(self, normalizer):
        raw = {
            date(2024, 3, 22): Decimal("10.10"),  # Friday
            date(2024, 3, 26): Decimal("10.50"),  # Tuesday after a holiday
        }

        series = normalizer.normalize(1, raw)
        values = {p.date: p.value for p in series.points}

        assert values[date(2024, 3, 23)] == Decimal("10.10")
        assert values[date(2024, 3, 24)] == Decimal("10.10")
        assert values[date(2024, 3, 25)] == Decimal("10.10")
        assert values[date(2024, 3, 26)] == Decimal("10.50")

    def test_single_entry(self, normalizer):
        series = normalizer.normalize(1, {date(2024, 1, 1): Decimal("12.345")})
        assert len(series) == 1
        assert series.points[0].value == Decimal("12.35")

    def test_unordered_input(self, normalizer):
        raw = {
            date(2024, 1, 2): Decimal("2"),
            date(2024, 1, 4): Decimal("4"),
            date(2024, 1, 1): Decimal("1"),
        }
        series = normalizer.normalize(1, raw)
        assert [p.value for p in series.points] == [
            Decimal("1.00"),
            Decimal("2.00"),
            Decimal("2.00"),
            Decimal("4.00"),
        ]

    def test_empty_raises(self, normalizer):
        with pytest.raises(MalformedData, match="empty history"):
            normalizer.normalize(5, {})


class TestForwardFill:
    def test_absent_before_first_known_value(self):
        raw = {date(2024, 1, 1): None, date(2024, 1, 3): Decimal("5")}

        filled = forward_fill(raw)

        assert filled == [
            (date(2024, 1, 1), None),
            (date(2024, 1, 2), None),
            (date(2024, 1, 3), Decimal("5")),
        ]

    def test_absent_raw_value_keeps_carried_value(self):
        raw = {
            date(2024, 1, 1): Decimal("5"),
            date(2024, 1, 2): None,
            date(2024, 1, 3): Decimal("6"),
        }
        assert [v for _, v in forward_fill(raw)] == [Decimal("5"), Decimal("5"), Decimal("6")]


class TestRounding:
    def test_rounds_half_up_to_two_places(self, normalizer):
        raw = {
            date(2024, 1, 1): Decimal("10.005"),
            date(2024, 1, 2): Decimal("10.004"),
            date(2024, 1, 3): Decimal("7"),
        }
        values = [p.value for p in normalizer.normalize(1, raw).points]
        assert values == [Decimal("10.01"), Decimal("10.00"), Decimal("7.00")]

    def test_values_serialize_with_two_decimals(self, normalizer):
        series = normalizer.normalize(1, {date(2024, 1, 1): Decimal("90")})
        assert str(series.points[0].value) == "90.00"

    def test_value_too_large_to_round_raises(self, normalizer):
        with pytest.raises(MalformedData, match="out of range") as exc_info:
            normalizer.normalize(7, {date(2024, 1, 1): Decimal("1e30")})
        assert exc_info.value.context["reason"] == "out_of_range"

    def test_correction_pushing_value_out_of_range_raises(self):
        table = CorrectionTable(
            [CorrectionRule(instrument_id=1, effective_date=date(2024, 1, 1), multiplier=Decimal("1e20"))]
        )
        with pytest.raises(MalformedData):
            SeriesNormalizer(table).normalize(1, {date(2024, 1, 1): Decimal("1e10")})


class TestCorrections:
    def test_applies_from_effective_date(self):
        table = CorrectionTable(
            [
                CorrectionRule(
                    instrument_id=7,
                    effective_date=date(2023, 6, 1),
                    multiplier=Decimal("0.1"),
                )
            ]
        )
        normalizer = SeriesNormalizer(table)
        raw = {date(2023, 5, 31): Decimal("97.00"), date(2023, 6, 2): Decimal("98.00")}

        values = {p.date: p.value for p in normalizer.normalize(7, raw).points}

        assert values[date(2023, 5, 31)] == Decimal("97.00")
        # Forward-filled day on the effective date is corrected too
        assert values[date(2023, 6, 1)] == Decimal("9.70")
        assert values[date(2023, 6, 2)] == Decimal("9.80")

    def test_other_instruments_unaffected(self):
        table = CorrectionTable(
            [CorrectionRule(instrument_id=7, effective_date=date(2023, 6, 1), multiplier=Decimal("0.1"))]
        )
        series = SeriesNormalizer(table).normalize(8, {date(2023, 6, 2): Decimal("98.00")})
        assert series.points[0].value == Decimal("98.00")

    def test_multiple_rules_compound(self):
        table = CorrectionTable(
            [
                CorrectionRule(instrument_id=1, effective_date=date(2024, 1, 2), multiplier=Decimal("0.1")),
                CorrectionRule(instrument_id=1, effective_date=date(2024, 1, 3), multiplier=Decimal("0.5")),
            ]
        )
        raw = {
            date(2024, 1, 1): Decimal("1000"),
            date(2024, 1, 2): Decimal("1000"),
            date(2024, 1, 3): Decimal("1000"),
        }
        values = [p.value for p in SeriesNormalizer(table).normalize(1, raw).points]
        assert values == [Decimal("1000.00"), Decimal("100.00"), Decimal("50.00")]

    def test_large_jump_is_not_rescaled_without_a_rule(self, normalizer):
        raw = {date(2024, 1, 1): Decimal("1000"), date(2024, 1, 2): Decimal("100")}
        values = [p.value for p in normalizer.normalize(1, raw).points]
        assert values == [Decimal("1000.00"), Decimal("100.00")]


class TestIdempotence:
    def test_same_input_same_output(self, sample_raw_series):
        table = CorrectionTable(
            [CorrectionRule(instrument_id=3, effective_date=date(2024, 1, 3), multiplier=Decimal("0.1"))]
        )
        normalizer = SeriesNormalizer(table)

        first = normalizer.normalize(3, sample_raw_series)
        second = normalizer.normalize(3, sample_raw_series)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_input_not_mutated(self, normalizer, sample_raw_series):
        before = dict(sample_raw_series)
        normalizer.normalize(1, sample_raw_series)
        assert sample_raw_series == before
