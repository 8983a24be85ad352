"""Static scale-correction table for NAV histories with unit splits."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import ValidationError

from fundnav.core.exceptions import ConfigError
from fundnav.core.models import CorrectionRule, InstrumentId


class CorrectionTable:
    """Immutable per-instrument index of correction rules.

    Rules for one instrument are kept ordered by effective date. Two rules
    for the same instrument and date are rejected as ambiguous.
    """

    def __init__(self, rules: Iterable[CorrectionRule] = ()) -> None:
        by_instrument: dict[InstrumentId, list[CorrectionRule]] = {}
        seen: set[tuple[InstrumentId, object]] = set()
        for rule in rules:
            key = (rule.instrument_id, rule.effective_date)
            if key in seen:
                raise ConfigError(
                    f"Duplicate correction for instrument {rule.instrument_id} "
                    f"on {rule.effective_date}",
                    context={"field": "corrections", "value": key},
                )
            seen.add(key)
            by_instrument.setdefault(rule.instrument_id, []).append(rule)

        self._rules = {
            instrument_id: tuple(sorted(found, key=lambda r: r.effective_date))
            for instrument_id, found in by_instrument.items()
        }

    def for_instrument(self, instrument_id: InstrumentId) -> tuple[CorrectionRule, ...]:
        return self._rules.get(instrument_id, ())

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values())

    def __contains__(self, instrument_id: object) -> bool:
        return instrument_id in self._rules


def load_correction_table(
    path: str | Path | None = None,
    inline: Iterable[CorrectionRule] = (),
) -> CorrectionTable:
    """Build the correction table from inline rules plus an optional YAML file.

    The file holds a list of mappings::

        - instrument_id: 7
          effective_date: 2023-06-01
          multiplier: "0.1"

    Raises:
        ConfigError: Missing or unreadable file, or any invalid rule. Fatal at startup.
    """
    rules = list(inline)
    if path is not None:
        rules.extend(_load_rules_file(Path(path)))
    return CorrectionTable(rules)


def _load_rules_file(path: Path) -> list[CorrectionRule]:
    context = {"field": "corrections_path", "value": str(path)}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read correction table: {e}", context=context) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse correction table: {e}", context=context) from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError(
            f"Correction table must be a list, got {type(data).__name__}",
            context=context,
        )

    rules: list[CorrectionRule] = []
    for i, entry in enumerate(data):
        try:
            rules.append(CorrectionRule.model_validate(entry))
        except ValidationError as e:
            raise ConfigError(
                f"Invalid correction rule #{i} in {path}: {e}",
                context={**context, "index": i},
            ) from e
    return rules
