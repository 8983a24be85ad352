"""Directory filtering and scheme-name cleaning.

Upstream lists every share class of every scheme. Only the direct-plan growth
variant is kept, identified by a growth ISIN and the absence of payout or
regular-plan wording in the scheme name. Names are long and repetitive, e.g.
``Parag Parikh Liquid Fund- Direct Plan- Growth``, so the boilerplate is
stripped to leave ``Parag Parikh Liquid Fund``.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from fundnav.core.models import InstrumentDescriptor

logger = logging.getLogger(__name__)

DISALLOWED_KEYWORDS: tuple[str, ...] = (
    "regular",
    "idcw",
    "income distribution",
    "capital withdrawal",
    "bonus option",
    "dividend option",
)

_BOILERPLATE = re.compile(r"direct plan|growth", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_TRAILING_DIRECT = re.compile(r"\s*\bdirect$", re.IGNORECASE)


def clean_display_name(name: str) -> str:
    """Strip plan/option boilerplate from a raw scheme name."""
    cleaned = _BOILERPLATE.sub("", name).replace("-", "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _TRAILING_DIRECT.sub("", cleaned).strip()
    return cleaned or _WHITESPACE.sub(" ", name).strip()


def has_disallowed_keyword(name: str) -> bool:
    lowered = name.lower()
    return any(keyword in lowered for keyword in DISALLOWED_KEYWORDS)


def is_eligible(record: dict[str, Any]) -> bool:
    """True if the raw record is a direct growth variant."""
    isin_growth = record.get("isinGrowth")
    if isin_growth is None or not str(isin_growth).strip():
        return False
    name = record.get("schemeName")
    if not isinstance(name, str):
        return False
    return not has_disallowed_keyword(name)


def build_directory(records: list[Any]) -> list[InstrumentDescriptor]:
    """Filter raw directory records and convert them to descriptors.

    Upstream order is preserved. Records with a missing or non-integer
    scheme code are skipped; for a repeated code the first record wins.
    """
    descriptors: list[InstrumentDescriptor] = []
    seen: set[int] = set()
    skipped = 0

    for record in records:
        if not isinstance(record, dict) or not is_eligible(record):
            continue
        try:
            instrument_id = int(record["schemeCode"])
        except (KeyError, TypeError, ValueError):
            skipped += 1
            continue
        if instrument_id in seen:
            continue

        name = clean_display_name(record["schemeName"])
        if not name:
            skipped += 1
            continue

        seen.add(instrument_id)
        descriptors.append(
            InstrumentDescriptor(
                id=instrument_id,
                display_name=name,
                alt_id=str(record["isinGrowth"]).strip(),
            )
        )

    if skipped:
        logger.warning("Skipped %d malformed directory records", skipped)
    return descriptors
