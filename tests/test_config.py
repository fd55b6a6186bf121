"""Tests for configuration helpers."""

import config
from config import DEFAULT_SYSTEM_PROMPT, Settings, load_system_prompt, parse_origins


def test_parse_origins_trims_and_drops_blanks():
    assert parse_origins(" https://a.es , ,https://b.es,") == ["https://a.es", "https://b.es"]
    assert parse_origins("") == []
    assert parse_origins(None) == []


def test_default_origins_pair():
    assert config.DEFAULT_ALLOWED_ORIGINS == (
        "https://automatizacionesbilbao.es",
        "https://www.automatizacionesbilbao.es",
    )


def test_fixed_limits():
    settings = Settings()
    assert settings.temperature == 0.35
    assert settings.max_history_turns == 12
    assert settings.max_message_length == 2000
    assert settings.max_body_bytes == 16 * 1024
    assert settings.rate_limit_max_requests == 20
    assert settings.rate_limit_window_seconds == 60


def test_system_prompt_from_env(monkeypatch):
    monkeypatch.setenv("SYSTEM_PROMPT", "Eres un asistente breve.")
    assert load_system_prompt() == "Eres un asistente breve."


def test_system_prompt_from_file(monkeypatch, tmp_path):
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("Prompt desde fichero\n", encoding="utf-8")
    monkeypatch.delenv("SYSTEM_PROMPT", raising=False)
    monkeypatch.setenv("SYSTEM_PROMPT_FILE", str(prompt_file))
    assert load_system_prompt() == "Prompt desde fichero"


def test_missing_prompt_file_falls_back_to_default(monkeypatch, tmp_path):
    monkeypatch.delenv("SYSTEM_PROMPT", raising=False)
    monkeypatch.setenv("SYSTEM_PROMPT_FILE", str(tmp_path / "missing.txt"))
    assert load_system_prompt() == DEFAULT_SYSTEM_PROMPT


def test_default_prompt_when_nothing_configured(monkeypatch):
    monkeypatch.delenv("SYSTEM_PROMPT", raising=False)
    monkeypatch.delenv("SYSTEM_PROMPT_FILE", raising=False)
    assert load_system_prompt() == DEFAULT_SYSTEM_PROMPT
