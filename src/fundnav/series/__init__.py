"""NAV series normalization: gap-filling, scale correction, rounding."""

from fundnav.series.corrections import CorrectionTable, load_correction_table
from fundnav.series.normalizer import SeriesNormalizer, forward_fill

__all__ = [
    "CorrectionTable",
    "load_correction_table",
    "SeriesNormalizer",
    "forward_fill",
]
