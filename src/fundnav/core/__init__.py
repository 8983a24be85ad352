"""fundnav.core — Foundation types, config, and exceptions."""

from fundnav.core.config import (
    APIConfig,
    FundNavConfig,
    RefreshConfig,
    SearchConfig,
    SourceConfig,
    load_config,
)
from fundnav.core.exceptions import (
    ConfigError,
    FundNavError,
    MalformedData,
    NotFound,
    SearchIndexUnready,
    SourceError,
    SourceUnavailable,
)
from fundnav.core.models import (
    CorrectionRule,
    InstrumentDescriptor,
    InstrumentId,
    PricePoint,
    PriceSeries,
    RawSeries,
)

__all__ = [
    # Type aliases
    "InstrumentId",
    "RawSeries",
    # Models
    "InstrumentDescriptor",
    "PricePoint",
    "PriceSeries",
    "CorrectionRule",
    # Config
    "FundNavConfig",
    "SourceConfig",
    "RefreshConfig",
    "SearchConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "FundNavError",
    "ConfigError",
    "SourceError",
    "SourceUnavailable",
    "MalformedData",
    "NotFound",
    "SearchIndexUnready",
]
