"""Tests for CLI commands."""

import json
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from conftest import make_response
from typer.testing import CliRunner

from ga4explorer.cli.main import app
from ga4explorer.explorer import Explorer
from ga4explorer.models.query import PropertySummary

runner = CliRunner()

JANUARY = ["--start", "2025-01-01", "--end", "2025-01-31"]


@pytest.fixture(autouse=True)
def use_explorer(explorer: Explorer):
    """Every command gets the fixture explorer instead of building its own."""
    with patch("ga4explorer.cli.main.get_explorer", return_value=explorer):
        yield


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch):
    # commands that build Settings() themselves must not touch ~/.ga4explorer
    monkeypatch.setenv("TOKEN_FILE", str(tmp_path / "state" / "token.json"))
    monkeypatch.setenv("STATE_FILE", str(tmp_path / "state" / "state.json"))


class TestCLICatalogue:
    def test_presets(self):
        """Lists shipped presets."""
        result = runner.invoke(app, ["presets"])
        assert result.exit_code == 0
        assert "top-pages" in result.stdout

    def test_schema(self):
        result = runner.invoke(app, ["schema"])
        assert result.exit_code == 0
        assert "totalUsers" in result.stdout
        assert "sessionSource" in result.stdout


class TestCLIQuery:
    def test_query_json(self, fake_client: Mock):
        """Ad-hoc query printed as json."""
        result = runner.invoke(app, ["query", "sessions", "-g", "date,country", "-o", "json", *JANUARY])
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert rows[0] == {"date": "20250101", "country": "US", "sessions": 42.0}
        assert len(rows) == 3

    def test_query_table(self):
        result = runner.invoke(app, ["query", "sessions", "-g", "date,country", *JANUARY])
        assert result.exit_code == 0
        assert "Query Results" in result.stdout
        assert "42" in result.stdout

    def test_query_csv(self):
        result = runner.invoke(app, ["query", "sessions", "-g", "date,country", "-o", "csv", *JANUARY])
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "date,country,sessions"
        assert lines[1] == "20250101,US,42.0"

    def test_query_filter_and_sort(self):
        result = runner.invoke(
            app,
            [
                "query", "sessions", "-g", "date,country", "-o", "json",
                "-f", "country=us", "--sort", "sessions:asc", *JANUARY,
            ],
        )
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert [r["sessions"] for r in rows] == [30.0, 42.0]

    def test_query_order_by_sent_to_api(self, fake_client: Mock):
        result = runner.invoke(
            app, ["query", "users", "-g", "date,country", "--order-by", "users:desc", "-o", "json", *JANUARY]
        )
        assert result.exit_code == 0
        request = fake_client.run_report.call_args.args[0]
        assert request.order_bys[0].metric.metric_name == "totalUsers"
        assert request.order_bys[0].desc is True

    def test_query_derived_dimension(self, fake_client: Mock):
        fake_client.run_report.return_value = make_response([(["/products/shoe"], ["5"])])
        result = runner.invoke(app, ["query", "sessions", "-g", "domain", "-o", "json", *JANUARY])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{"domain": "example.com", "sessions": 5.0}]

    def test_query_save(self, settings):
        result = runner.invoke(
            app, ["query", "sessions", "-g", "date,country", "-o", "csv", "--save", *JANUARY]
        )
        assert result.exit_code == 0
        assert "Saved to" in result.stdout
        saved = list(settings.output_dir.glob("*.csv"))
        assert len(saved) == 1
        assert saved[0].read_text().startswith("date,country,sessions")

    def test_query_bad_filter(self):
        result = runner.invoke(app, ["query", "sessions", "-g", "country", "-f", "country", *JANUARY])
        assert result.exit_code == 1
        assert "Can't parse" in result.stdout

    def test_query_bad_output_format(self):
        result = runner.invoke(app, ["query", "sessions", "-g", "date,country", "-o", "xml", *JANUARY])
        assert result.exit_code == 1
        assert "Unknown output format" in result.stdout

    def test_query_bad_date_range(self):
        result = runner.invoke(app, ["query", "sessions", "--range", "fortnight"])
        assert result.exit_code == 1
        assert "query error" in result.stdout.lower()

    def test_query_api_error(self, fake_client: Mock):
        from ga4explorer.errors import PropertyAccessError

        fake_client.run_report.side_effect = PropertyAccessError("Analytics access denied")
        result = runner.invoke(app, ["query", "sessions", *JANUARY])
        assert result.exit_code == 1
        assert "access denied" in result.stdout


class TestCLIPreset:
    def test_preset(self, fake_client: Mock):
        fake_client.run_report.return_value = make_response([(["mobile"], ["10", "8", "0.5", "61.2"])])
        result = runner.invoke(app, ["preset", "device-breakdown", "-o", "json", *JANUARY])
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert rows[0]["deviceCategory"] == "Mobile"

    def test_preset_table_title(self, fake_client: Mock):
        fake_client.run_report.return_value = make_response([(["mobile"], ["10", "8", "0.5", "61.2"])])
        result = runner.invoke(app, ["preset", "device-breakdown", *JANUARY])
        assert result.exit_code == 0
        assert "Performance by Device" in result.stdout

    def test_unknown_preset(self):
        result = runner.invoke(app, ["preset", "nope", *JANUARY])
        assert result.exit_code == 1
        assert "Unknown preset" in result.stdout


class TestCLIProperties:
    def test_properties(self, fake_client: Mock):
        fake_client.list_properties.return_value = [
            PropertySummary(property_id="111", display_name="Acme Web", account_id="1", account_name="Acme")
        ]
        result = runner.invoke(app, ["properties"])
        assert result.exit_code == 0
        assert "111" in result.stdout
        assert "Acme Web" in result.stdout

    def test_no_properties(self):
        result = runner.invoke(app, ["properties"])
        assert result.exit_code == 0
        assert "No Google Analytics properties" in result.stdout

    def test_select_show_and_clear(self, explorer: Explorer):
        result = runner.invoke(app, ["select", "777"])
        assert result.exit_code == 0
        assert explorer.selected_property() == "777"

        result = runner.invoke(app, ["select"])
        assert "777" in result.stdout

        result = runner.invoke(app, ["select", "--clear"])
        assert result.exit_code == 0
        assert explorer.selected_property() is None

    def test_select_invalid(self):
        result = runner.invoke(app, ["select", "abc"])
        assert result.exit_code == 1
        assert "numeric" in result.stdout

    def test_signout(self, tmp_path: Path):
        token = tmp_path / "state" / "token.json"
        token.parent.mkdir(parents=True)
        token.write_text("{}")

        result = runner.invoke(app, ["signout"])
        assert result.exit_code == 0
        assert "token" in result.stdout
        assert not token.exists()

    def test_signout_nothing_stored(self):
        result = runner.invoke(app, ["signout"])
        assert result.exit_code == 0
        assert "No stored data" in result.stdout


class TestCLIFlow:
    def test_funnel(self, fake_client: Mock):
        fake_client.run_report.return_value = make_response(
            [(["/"], ["100", "120"]), (["/product"], ["50", "60"]), (["/checkout"], ["10", "10"])]
        )
        result = runner.invoke(app, ["flow", "funnel_analysis", *JANUARY])
        assert result.exit_code == 0
        assert "Homepage" in result.stdout
        assert "Overall conversion rate: 10.0%" in result.stdout

    def test_flow_json(self, fake_client: Mock):
        fake_client.run_report.return_value = make_response(
            [(["/", "google", "organic"], ["10", "4"])]
        )
        result = runner.invoke(app, ["flow", "landing_analysis", "-o", "json", *JANUARY])
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["new_user_rate"] == 40.0

    def test_unknown_flow(self):
        result = runner.invoke(app, ["flow", "heatmap", *JANUARY])
        assert result.exit_code == 1
        assert "Unknown analysis type" in result.stdout
