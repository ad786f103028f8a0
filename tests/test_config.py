import json
from pathlib import Path

import pytest

from club_ledger.config import CONFIG_ENV, ConfigError, LedgerConfig, load_config
from club_ledger.mapping import ExpenseCategory, FeeBucket


def test_defaults_without_file():
    cfg = load_config()
    assert cfg == LedgerConfig()
    assert cfg.season == "2025-2026"
    assert cfg.recorded_by == "quickbooks-import"
    assert cfg.name_matcher().is_denylisted("sample customer")
    assert cfg.expense_mapper().map("Insurance") is ExpenseCategory.INSURANCE


def test_env_file_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "ledger.json"
    path.write_text(
        json.dumps(
            {
                "season": "2026-2027",
                "progress_every": 5,
                "denylist": ["Acme Co"],
                "fee_buckets": {"  Camp Fee ": "facility"},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_ENV, str(path))

    cfg = load_config()
    assert cfg.season == "2026-2027"
    assert cfg.progress_every == 5
    assert cfg.name_matcher().is_sponsor("ACME CO")
    assert not cfg.name_matcher().is_denylisted("Stanley Steemer")
    assert cfg.bucket_mapper().map("Summer Camp Fee") is FeeBucket.FACILITY
    assert cfg.bucket_mapper().map("Registration") is FeeBucket.OTHER


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        json.dumps(["a list"]),
        json.dumps({"unknown_key": 1}),
        json.dumps({"expense_categories": {"rent": "not-a-category"}}),
        json.dumps({"progress_every": 0}),
        json.dumps({"season": ""}),
    ],
)
def test_invalid_config_is_fatal(tmp_path: Path, payload: str):
    path = tmp_path / "bad.json"
    path.write_text(payload, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(tmp_path / "nope.json")


def test_config_is_frozen():
    cfg = LedgerConfig()
    with pytest.raises(Exception):
        cfg.season = "x"  # type: ignore[misc]
