"""
Unit tests for the command-line interface.
"""

import json
from unittest.mock import patch

import pytest

from src.app import cli


@pytest.fixture
def run_cli(app_context):
    """Run the CLI with argv against app_context."""

    def run(*argv):
        with patch.object(cli, "_context", return_value=app_context), \
                patch("sys.argv", ["cli", *argv]):
            cli.main()

    return run


class TestDataCommands:
    def test_quote_json(self, run_cli, capsys):
        run_cli("quote", "aapl", "--json")
        assert json.loads(capsys.readouterr().out)["symbol"] == "AAPL"

    def test_quote_table(self, run_cli, capsys):
        run_cli("quote", "MSFT")
        out = capsys.readouterr().out
        assert "MSFT Quote" in out
        assert "Price:" in out

    def test_overview_renders_missing_as_na(self, run_cli, app_context, capsys):
        overview = app_context.client.synthesizer.company_overview("IBM").model_copy(
            update={"beta": None}
        )
        app_context.cache.set("overview-IBM", overview)

        run_cli("overview", "IBM")

        assert "Beta:        N/A" in capsys.readouterr().out

    def test_chart_uses_saved_range(self, run_cli, app_context, capsys):
        app_context.store.set_time_range("5D")

        run_cli("chart", "AAPL", "--json")

        assert len(json.loads(capsys.readouterr().out)) == 6

    def test_search_records_recent(self, run_cli, app_context, capsys):
        run_cli("search", "tesla")

        assert "TSLA" in capsys.readouterr().out
        assert app_context.store.recent_searches == ["TSLA"]

    def test_search_without_results_exits(self, run_cli):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("search", "zzzz")
        assert exc_info.value.code == 1


class TestStateCommands:
    def test_watchlist_add_snapshots_quote(self, run_cli, app_context, capsys):
        run_cli("watchlist", "add", "nvda")

        items = app_context.store.watchlist
        assert [i.symbol for i in items] == ["NVDA"]
        assert items[0].name == "NVIDIA Corporation"
        assert items[0].price is not None

    def test_watchlist_add_requires_symbol(self, run_cli):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("watchlist", "add")
        assert exc_info.value.code == 2

    def test_watchlist_list_and_remove(self, run_cli, app_context, sample_watchlist_item, capsys):
        app_context.store.add_to_watchlist(sample_watchlist_item)

        run_cli("watchlist", "list")
        assert "AAPL" in capsys.readouterr().out

        run_cli("watchlist", "remove", "aapl")
        assert app_context.store.watchlist == []

    def test_prefs(self, run_cli, app_context, capsys):
        run_cli("prefs", "chart", "candlestick")
        run_cli("prefs", "dark")

        out = capsys.readouterr().out
        assert "Chart type: candlestick" in out
        assert app_context.store.is_dark_mode is True

    def test_prefs_rejects_unknown_range(self, run_cli):
        with pytest.raises(SystemExit):
            run_cli("prefs", "range", "2W")
