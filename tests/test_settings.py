from pathlib import Path

import pytest

from finance_assistant.core import settings
from finance_assistant.logger import LOG_FILENAME, get_logging_config


def test_read_config_file(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "# backend\n"
        "BACKEND_URL: http://example.test/api  # local\n"
        'OPENAI_MODEL: "gpt-4o"\n'
        "DISPLAY_LOCALE:\n"
        "not a key value line\n",
        encoding="utf-8",
    )

    assert settings.read_config_file(str(config)) == {
        "BACKEND_URL": "http://example.test/api",
        "OPENAI_MODEL": "gpt-4o",
    }


def test_read_missing_config_file(tmp_path: Path) -> None:
    assert settings.read_config_file(str(tmp_path / "missing.yaml")) == {}


def test_config_file_does_not_override_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "config.yaml").write_text(
        "BACKEND_URL: http://from-file/api\nDISPLAY_LOCALE: en\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("BACKEND_URL", "http://from-env/api/")
    # Registered first so teardown removes the value loaded from the file.
    monkeypatch.setenv("DISPLAY_LOCALE", "vi")
    monkeypatch.delenv("DISPLAY_LOCALE")

    settings.load_environment()

    assert settings.get_backend_url() == "http://from-env/api"
    assert settings.get_display_locale() == "en"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 30.0), ("12.5", 12.5), ("soon", 30.0), ("0", 30.0)],
)
def test_backend_timeout(monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: float) -> None:
    if raw is None:
        monkeypatch.delenv("BACKEND_TIMEOUT", raising=False)
    else:
        monkeypatch.setenv("BACKEND_TIMEOUT", raw)

    assert settings.get_backend_timeout() == expected


def test_parser_backend_choice(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PARSER_BACKEND", "LLM")
    assert settings.get_parser_backend() == "llm"

    monkeypatch.setenv("PARSER_BACKEND", "regex")
    assert settings.get_parser_backend() == "remote"


def test_mask_env_value() -> None:
    assert settings.mask_env_value("OPENAI_API_KEY", "sk-abcdef") == "sk...ef"
    assert settings.mask_env_value("BACKEND_URL", "http://localhost") == "http://localhost"
    assert settings.mask_env_value("ANY", "Bearer abc.def") == "Be...ef"
    assert settings.mask_env_value("AUTH_TOKEN", "abc") == "****"


def test_logging_config_adds_file_handler(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = get_logging_config()

    assert config["handlers"]["file"]["filename"] == str(tmp_path / "logs" / LOG_FILENAME)
    assert config["loggers"][""]["level"] == "DEBUG"
    assert config["loggers"]["httpx"]["level"] == "WARNING"
    assert (tmp_path / "logs").is_dir()
