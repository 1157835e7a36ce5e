import sys
from pathlib import Path

import pytest

from conftest import pinterest_payload, tiktok_payload, twitter_payload

from analysis_engine.record_store import RecordStore
from analysis_engine.state_store import StateStore
from kache_engine import cli_entrypoints


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("KACHE_STATE_DIR", "KACHE_RECORDS_PATH", "KACHE_LOG_LEVEL", "KACHE_ANALYSIS_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_entrypoints_forward_arguments(monkeypatch):
    """Console scripts call the matching script with the user's arguments."""
    calls = []
    monkeypatch.setattr(cli_entrypoints, "run", lambda cmd, check: calls.append((cmd, check)))
    monkeypatch.setattr(sys, "argv", ["kache-analyze", "--budget", "50"])

    cli_entrypoints.analyze()
    cli_entrypoints.state()

    (analyze_cmd, check), (state_cmd, _) = calls
    assert check is True
    assert analyze_cmd[0] == sys.executable
    assert analyze_cmd[1].endswith("run_complete_analysis.py")
    assert analyze_cmd[2:] == ["--budget", "50"]
    assert state_cmd[1].endswith("manage_state.py")


def test_run_complete_analysis_writes_reports(tmp_path: Path):
    from scripts.run_complete_analysis import main

    records_path = tmp_path / "records.json"
    store = RecordStore(records_path)
    store.store("socialMedia", "twitter", twitter_payload())
    store.store("socialMedia", "pinterest", pinterest_payload())
    store.store("socialMedia", "tiktok", tiktok_payload())

    output_dir = tmp_path / "reports"
    exit_code = main([
        "--records", str(records_path),
        "--state-dir", str(tmp_path / "state"),
        "--output-dir", str(output_dir),
        "--budget", "50",
        "--platforms", "pinterest", "tiktok",
    ])

    assert exit_code == 0
    assert len(list(output_dir.glob("strategy_*.json"))) == 1
    assert len(list(output_dir.glob("*.csv"))) == 2
    assert StateStore(tmp_path / "state").list_documents() == ["competitors", "trends"]


def test_run_complete_analysis_without_records_fails(tmp_path: Path):
    from scripts.run_complete_analysis import main

    exit_code = main(["--records", str(tmp_path / "missing.json"), "--state-dir", str(tmp_path / "state"),
                      "--output-dir", str(tmp_path / "reports")])
    assert exit_code == 1
    assert not (tmp_path / "reports").exists()


def test_manage_state_lists_shows_and_clears(tmp_path: Path, capsys):
    from scripts.manage_state import main

    state_dir = tmp_path / "state"
    StateStore(state_dir).save("trends", {"niches": {"a": {}}, "keywords": {}})

    assert main(["--state-dir", str(state_dir), "--list"]) == 0
    assert "trends" in capsys.readouterr().out

    assert main(["--state-dir", str(state_dir), "--show", "trends"]) == 0
    assert main(["--state-dir", str(state_dir), "--show", "competitors"]) == 1

    assert main(["--state-dir", str(state_dir), "--clear"]) == 0
    assert StateStore(state_dir).list_documents() == []
