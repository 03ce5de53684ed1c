from pathlib import Path

import config


def _write_config(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def _use_config_dir(tmp_path, monkeypatch) -> Path:
    config_dir = tmp_path / ".versecoach"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    for name in ("VERSECOACH_TIMEZONE", "VERSECOACH_PORT", "VERSECOACH_LOG_LEVEL",
                 "LEVENSHTEIN_GOOD_THRESHOLD", "SCHEDULER_ALGORITHM"):
        monkeypatch.delenv(name, raising=False)
    return config_path


def test_load_config_copies_example_when_missing(tmp_path, monkeypatch):
    config_path = _use_config_dir(tmp_path, monkeypatch)

    cfg = config.load_config()

    assert config_path.exists()
    assert cfg["app"]["timezone"] == "UTC"
    assert cfg["review"]["default_mode"] == "due"
    assert cfg["grading"]["levenshtein_good_threshold"] == 0.85


def test_load_config_fills_missing_sections(tmp_path, monkeypatch):
    config_path = _use_config_dir(tmp_path, monkeypatch)
    _write_config(config_path, "[review]\ndefault_mode = \"sideways\"\ncloze_rate = 40\n")

    cfg = config.load_config()

    assert cfg["review"]["default_mode"] == "due"
    assert cfg["review"]["cloze_rate"] == 40
    assert cfg["scheduler"] == {"algorithm": "sm2", "initial_ease": 2.5}
    assert cfg["logging"]["level"] == "INFO"


def test_environment_overrides_file(tmp_path, monkeypatch):
    config_path = _use_config_dir(tmp_path, monkeypatch)
    _write_config(config_path, "[app]\ntimezone = \"UTC\"\n[grading]\nlevenshtein_good_threshold = 0.85\n")
    monkeypatch.setenv("VERSECOACH_TIMEZONE", "America/Chicago")
    monkeypatch.setenv("LEVENSHTEIN_GOOD_THRESHOLD", "0.9")
    monkeypatch.setenv("VERSECOACH_LOG_LEVEL", "debug")

    cfg = config.load_config()

    assert cfg["app"]["timezone"] == "America/Chicago"
    assert cfg["grading"]["levenshtein_good_threshold"] == 0.9
    assert cfg["logging"]["level"] == "DEBUG"
    assert config.get_config_value("app", "timezone") == "America/Chicago"
    assert config.get_config_value("app", "missing", "fallback") == "fallback"
