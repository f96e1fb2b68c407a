from __future__ import annotations

import json
from pathlib import Path

import pytest

from voxlate.app import config as app_config


@pytest.fixture(autouse=True)
def _isolated_config_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path / "cfg"))


def test_defaults_contain_expected_keys() -> None:
    assert app_config.DEFAULTS["translator"] == "argos"
    assert app_config.DEFAULTS["source_lang"] == "en"
    assert app_config.DEFAULTS["target_lang"] == "ta"
    assert app_config.DEFAULTS["allow_metered"] is False


def test_ensure_user_config_exists_creates_file(tmp_path: Path) -> None:
    created = app_config.ensure_user_config_exists({"translator": "stub", "sr": 16000})
    assert created == tmp_path / "cfg" / "config.json"
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded == {"translator": "stub", "sr": 16000}


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 48000, "target_lang": "fr", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["sr"] == 48000
    assert loaded["target_lang"] == "fr"
    assert loaded["model"] == app_config.DEFAULTS["model"]
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"model": "small"}).encode("utf-8"))
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["model"] == "small"


def test_load_user_config_rejects_non_object(tmp_path: Path) -> None:
    cfg_path = tmp_path / "list.json"
    cfg_path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        app_config.load_user_config(str(cfg_path))


def test_missing_explicit_config_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        app_config.load_user_config(str(tmp_path / "nope.json"))


def test_save_user_config_merges_and_filters_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(json.dumps({"sr": 16000, "translator": "stub"}), encoding="utf-8")

    saved = app_config.save_user_config({"translator": "argos", "poll_ms": 30, "junk": "x"}, config_path=str(cfg_path))

    assert saved == cfg_path
    loaded = json.loads(cfg_path.read_text(encoding="utf-8"))
    assert loaded["sr"] == 16000
    assert loaded["translator"] == "argos"
    assert loaded["poll_ms"] == 30
    assert "junk" not in loaded


def test_resolve_args_cli_overrides_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"target_lang": "fr", "model": "tiny", "debug": True}), encoding="utf-8")

    args = app_config.resolve_args(["--config", str(cfg_path), "--target-lang", "es", "--no-async-translate"])

    assert args.target_lang == "es"
    assert args.model == "tiny"
    assert args.debug is True
    assert args.async_translate is False
    assert args.allow_model_download is True


def test_resolve_args_uses_user_config_when_no_flag(tmp_path: Path) -> None:
    app_config.save_user_config({"source_lang": "de"})
    args = app_config.resolve_args([])
    assert args.source_lang == "de"
    assert args.translator == "argos"
