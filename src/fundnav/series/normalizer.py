"""Turns raw, gap-ridden NAV history into a dense corrected daily series.

Pipeline, in order:

1. Span: first and last raw date.
2. Gap-fill: one point per calendar day, forward-filling the last known NAV
   over weekends, holidays, and provider outages.
3. Scale correction: multiply every point on/after each matching
   ``CorrectionRule.effective_date`` by its multiplier.
4. Round to 2 decimal places (half-up).

The output depends only on the raw mapping and the correction table, so
normalizing the same input twice yields identical series.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from fundnav.core.exceptions import MalformedData
from fundnav.core.models import InstrumentId, PricePoint, PriceSeries
from fundnav.series.corrections import CorrectionTable

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_ONE_DAY = timedelta(days=1)


class SeriesNormalizer:
    """Dense daily series builder bound to a correction table."""

    def __init__(self, corrections: CorrectionTable | None = None) -> None:
        self._corrections = corrections if corrections is not None else CorrectionTable()

    def normalize(
        self,
        instrument_id: InstrumentId,
        raw: Mapping[date, Decimal | None],
    ) -> PriceSeries:
        """Build the dense, corrected, rounded series for one instrument.

        Raises:
            MalformedData: If ``raw`` has no entries, or a corrected value is
                too large to round to cents.
        """
        if not raw:
            raise MalformedData(
                f"Cannot normalize empty history for instrument {instrument_id}",
                context={"instrument_id": instrument_id, "reason": "empty_payload"},
            )

        filled = forward_fill(raw)
        corrected, touched = self._apply_corrections(instrument_id, filled)
        if touched:
            logger.debug(
                "Applied scale correction to %d points of instrument %d",
                touched, instrument_id,
            )

        try:
            points = tuple(
                PricePoint(date=day, value=_round(value)) for day, value in corrected
            )
        except InvalidOperation as e:
            raise MalformedData(
                f"NAV out of range for instrument {instrument_id}",
                context={"instrument_id": instrument_id, "reason": "out_of_range"},
            ) from e
        return PriceSeries(instrument_id=instrument_id, points=points)

    def _apply_corrections(
        self,
        instrument_id: InstrumentId,
        filled: list[tuple[date, Decimal | None]],
    ) -> tuple[list[tuple[date, Decimal | None]], int]:
        if instrument_id not in self._corrections:
            return filled, 0
        rules = self._corrections.for_instrument(instrument_id)

        corrected: list[tuple[date, Decimal | None]] = []
        touched = 0
        for day, value in filled:
            if value is not None:
                factor = Decimal(1)
                for rule in rules:
                    if day >= rule.effective_date:
                        factor *= rule.multiplier
                if factor != 1:
                    value = value * factor
                    touched += 1
            corrected.append((day, value))
        return corrected, touched


def forward_fill(raw: Mapping[date, Decimal | None]) -> list[tuple[date, Decimal | None]]:
    """One entry per calendar day between the first and last raw date.

    Days without a raw value carry the most recent known value; days before
    any known value are None.
    """
    first, last = min(raw), max(raw)
    filled: list[tuple[date, Decimal | None]] = []
    carried: Decimal | None = None
    day = first
    while day <= last:
        value = raw.get(day)
        if value is not None:
            carried = value
        filled.append((day, carried))
        day += _ONE_DAY
    return filled


def _round(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)
