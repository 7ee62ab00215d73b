from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from impact import cli
from impact.engine import ImpactEngine
from impact.store import JsonFileStore

from test_engine import NOW, StubMarket


@pytest.fixture
def stub_engine(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("IMPACT_CONFIG_PATH", raising=False)
    market = StubMarket()

    def build(settings, *, client=None):
        return ImpactEngine(
            store=JsonFileStore(settings.store_dir),
            fetch_news=market.fetch_news,
            fetch_candles=market.fetch_candles,
            settings=settings,
            clock=lambda: NOW,
        )

    monkeypatch.setattr(cli, "build_engine", build)


def test_scan_measure_leaderboard(stub_engine, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    store_dir = tmp_path / "store"
    assert cli.main(["--store-dir", str(store_dir), "scan", "AAPL", "MSFT"]) == 0
    scan = json.loads(capsys.readouterr().out)
    assert scan["new_records"] == 2

    assert cli.main(["--store-dir", str(store_dir), "measure"]) == 0
    assert json.loads(capsys.readouterr().out)["measured"] == 1

    csv_path = tmp_path / "board.csv"
    assert cli.main(["--store-dir", str(store_dir), "--json", "leaderboard", "--top", "5", "--csv", str(csv_path)]) == 0
    board = json.loads(capsys.readouterr().out)
    assert [item["symbol"] for item in board["items"]] == ["AAPL", "MSFT"]
    frame = pd.read_csv(csv_path, index_col="rank")
    assert list(frame["symbol"]) == ["AAPL", "MSFT"]

    assert cli.main(["--store-dir", str(store_dir), "metrics"]) == 0
    assert json.loads(capsys.readouterr().out)["totalMeasured"] == 1


def test_missing_api_key_fails_cleanly(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    monkeypatch.delenv("IMPACT_CONFIG_PATH", raising=False)
    assert cli.main(["--store-dir", str(tmp_path), "metrics"]) == 1


def test_log_level_resolution() -> None:
    assert cli._resolve_log_level(None) == logging.INFO
    assert cli._resolve_log_level(" debug ") == logging.DEBUG
    assert cli._resolve_log_level("warning") == logging.WARNING
    assert cli._resolve_log_level("chatty") == logging.INFO


def test_invalid_log_level_env_does_not_crash(
    stub_engine, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("IMPACT_LOG_LEVEL", "chatty")
    monkeypatch.setattr(logging.root, "handlers", [])
    monkeypatch.setattr(logging.root, "level", logging.root.level)

    assert cli.main(["--store-dir", str(tmp_path / "store"), "metrics"]) == 0
    assert logging.root.level == logging.INFO
    assert json.loads(capsys.readouterr().out)["totalMeasured"] == 0
