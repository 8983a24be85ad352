"""Integration test fixtures: the real HTTP client against a mocked upstream."""

from __future__ import annotations

import httpx
import pytest
import respx

from fundnav.core.config import FundNavConfig, SourceConfig

UPSTREAM = "https://mf.test/mf"


@pytest.fixture
def upstream(raw_directory_payload, raw_nav_payload):
    """respx router standing in for the NAV provider."""
    with respx.mock(assert_all_called=False) as router:
        router.get(UPSTREAM, name="directory").mock(
            return_value=httpx.Response(200, json=raw_directory_payload)
        )
        router.get(f"{UPSTREAM}/122639", name="nav_ok").mock(
            return_value=httpx.Response(200, json=raw_nav_payload)
        )
        router.get(f"{UPSTREAM}/120465", name="nav_down").mock(
            return_value=httpx.Response(503)
        )
        yield router


@pytest.fixture
def integration_config(tmp_path) -> FundNavConfig:
    corrections = tmp_path / "corrections.yml"
    corrections.write_text(
        "- instrument_id: 122639\n"
        "  effective_date: 2024-01-08\n"
        "  multiplier: '0.5'\n"
    )
    return FundNavConfig(
        source=SourceConfig(base_url=UPSTREAM, max_retries=0, rate_limit=100),
        corrections_path=str(corrections),
    )
