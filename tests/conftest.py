"""Pytest fixtures for GA4 Explorer tests."""

from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

from ga4explorer.config.loader import CatalogueRegistry
from ga4explorer.config.settings import Settings
from ga4explorer.explorer import Explorer


def make_response(rows: list[tuple[list[str], list[str]]]) -> dict[str, Any]:
    """Build a runReport json body from (dimension values, metric values) pairs."""
    return {
        "rows": [
            {
                "dimensionValues": [{"value": v} for v in dims],
                "metricValues": [{"value": v} for v in metrics],
            }
            for dims, metrics in rows
        ],
        "rowCount": len(rows),
    }


@pytest.fixture
def sample_catalogue_yaml() -> str:
    """Extra catalogue YAML merged over the shipped one."""
    return """
metrics:
  engaged: engagedSessions

dimensions:
  region: region

presets:
  - id: regional
    label: Sessions by Region
    metrics: [sessions, engaged]
    dimensions: [country, region]
    order_bys:
      - {metric: sessions, desc: true}
    limit: 20
"""


@pytest.fixture
def catalogue_file(tmp_path: Path, sample_catalogue_yaml: str) -> Path:
    path = tmp_path / "catalogue.yaml"
    path.write_text(sample_catalogue_yaml)
    return path


@pytest.fixture
def catalogue() -> CatalogueRegistry:
    """The shipped catalogue."""
    return CatalogueRegistry.default()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings that keep every file inside tmp_path and ignore any .env."""
    return Settings(
        _env_file=None,
        ga_property_id="123456",
        token_file=tmp_path / "state" / "token.json",
        state_file=tmp_path / "state" / "state.json",
        output_dir=tmp_path / "out",
    )


@pytest.fixture
def sample_response() -> dict[str, Any]:
    """Response for dimensions [date, country] and metric [sessions]."""
    return make_response(
        [
            (["20250101", "US"], ["42"]),
            (["20250101", "GB"], ["17"]),
            (["20250102", "US"], ["30"]),
        ]
    )


@pytest.fixture
def fake_client(sample_response: dict[str, Any]) -> Mock:
    """Stands in for GA4Client - run_report returns sample_response by default."""
    client = Mock()
    client.run_report.return_value = sample_response
    client.list_properties.return_value = []
    return client


@pytest.fixture
def explorer(settings: Settings, catalogue: CatalogueRegistry, fake_client: Mock) -> Explorer:
    return Explorer(settings, catalogue=catalogue, client=fake_client, interactive=False)
