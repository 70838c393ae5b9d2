import json
from datetime import UTC, date, datetime

from anima.config import Config, get_config_path, load_config, save_config
from anima.config.loader import camel_to_snake, convert_keys, snake_to_camel
from anima.utils.helpers import date_key


def test_defaults() -> None:
    config = Config()
    assert config.throttle.max_concurrent == 5
    assert config.throttle.rate_limit_rpm == 60
    assert config.memory.immediate_capacity == 20
    assert config.memory.retention_days == 7
    assert config.memory.max_entries_per_day == 20
    assert config.memory.extraction_threshold == 0.7
    assert config.agent.max_history == 20
    assert config.llm.api_key_configured is False


def test_load_camel_case_file_fills_missing_sections(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "llm": {"baseUrl": "https://llm.example/v1/", "apiKey": "sk-live", "model": "m1"},
                "throttle": {"maxConcurrent": 2, "rateLimitRpm": 10},
            }
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.llm.chat_completions_url == "https://llm.example/v1/chat/completions"
    assert config.llm.api_key_configured is True
    assert config.throttle.max_concurrent == 2
    assert config.throttle.rate_limit_rpm == 10
    assert config.memory.retention_days == 7


def test_invalid_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{ nope", encoding="utf-8")
    assert load_config(path).throttle.max_concurrent == 5

    path.write_text(json.dumps({"throttle": {"maxConcurrent": 0}}), encoding="utf-8")
    assert load_config(path).throttle.max_concurrent == 5


def test_save_round_trip_uses_camel_case(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"
    config = Config()
    config.llm.api_key = "sk-saved"
    config.memory.retention_days = 3
    save_config(config, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["llm"]["apiKey"] == "sk-saved"
    assert raw["memory"]["retentionDays"] == 3
    assert path.stat().st_mode & 0o777 == 0o600

    reloaded = load_config(path)
    assert reloaded.llm.api_key == "sk-saved"
    assert reloaded.memory.retention_days == 3


def test_environment_overrides_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"llm": {"model": "from-file", "apiKey": "sk-file"}}), encoding="utf-8")
    monkeypatch.setenv("ANIMA_LLM__MODEL", "from-env")
    config = load_config(path)
    assert config.llm.model == "from-env"
    assert config.llm.api_key == "sk-file"


def test_anima_home_controls_data_paths(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ANIMA_HOME", str(tmp_path / "home"))
    assert get_config_path() == tmp_path / "home" / "config.json"
    config = Config()
    assert config.memory.storage_path == tmp_path / "home" / "data" / "memory"
    assert config.personas.path.is_dir()


def test_key_case_conversion() -> None:
    assert camel_to_snake("rateLimitRpm") == "rate_limit_rpm"
    assert snake_to_camel("max_entries_per_day") == "maxEntriesPerDay"
    assert convert_keys({"exampleDialogues": [{"userText": 1}]}) == {"example_dialogues": [{"user_text": 1}]}


def test_date_key_uses_local_calendar_date() -> None:
    moment = datetime(2026, 10, 17, 23, 30).astimezone()
    assert date_key(moment) == "2026-10-17"
    assert date_key(moment.astimezone(UTC)) == "2026-10-17"
    assert date_key(date(2026, 1, 2)) == "2026-01-02"
