import os

from dotenv import find_dotenv, load_dotenv

from finance_assistant.logger import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = "config.yaml"

# Keys a config.yaml may provide; the process environment and .env win over it.
CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "BACKEND_URL",
    "BACKEND_TIMEOUT",
    "PARSER_BACKEND",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "DISPLAY_LOCALE",
    "CATEGORY_MATCH_THRESHOLD",
)

DEFAULT_BACKEND_URL = "http://localhost:3001/api"
DEFAULT_BACKEND_TIMEOUT = 30.0
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CATEGORY_MATCH_THRESHOLD = 80.0

PARSER_BACKENDS = ("remote", "llm")
DISPLAY_LOCALES = ("vi", "en")

_SENSITIVE_MARKERS = ("KEY", "TOKEN", "SECRET", "PASSWORD", "AUTH")


def config_dir() -> str:
    return os.getenv("CONFIG_DIR") or os.getcwd()


def read_config_file(path: str) -> dict[str, str]:
    """
    Read a flat ``KEY: value`` file.

    Blank lines and ``#`` comments are skipped, one level of surrounding quotes is
    removed and empty values are ignored. Nested YAML is not supported.
    """
    if not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            key, sep, raw_value = line.partition(":")
            key = key.strip()
            if not sep or not key or key.startswith("#"):
                continue
            value = raw_value.strip()
            if value[:1] in {'"', "'"} and value.endswith(value[0]) and len(value) >= 2:
                value = value[1:-1]
            elif " #" in value:
                value = value.split(" #", 1)[0].rstrip()
            if value:
                values[key] = value
    return values


def load_environment() -> None:
    dotenv_path = os.path.join(config_dir(), ".env")
    if not os.path.exists(dotenv_path):
        dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    file_values = read_config_file(os.path.join(config_dir(), CONFIG_FILENAME))
    for key in CONFIG_KEYS:
        if key in file_values:
            os.environ.setdefault(key, file_values[key])


def get_env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("[ENV] %s=%s is below %s, using default %s.", name, raw, min_value, default)
        return default
    return value


def get_env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw not in choices:
        logger.warning("[ENV] %s='%s' is not one of %s, using %s.", name, raw, "/".join(choices), default)
        return default
    return raw


def get_backend_url() -> str:
    return (os.getenv("BACKEND_URL") or DEFAULT_BACKEND_URL).rstrip("/")


def get_backend_timeout() -> float:
    return get_env_float("BACKEND_TIMEOUT", DEFAULT_BACKEND_TIMEOUT, min_value=0.1)


def get_parser_backend() -> str:
    return get_env_choice("PARSER_BACKEND", PARSER_BACKENDS, "remote")


def get_display_locale() -> str:
    return get_env_choice("DISPLAY_LOCALE", DISPLAY_LOCALES, "vi")


def get_category_match_threshold() -> float:
    return get_env_float("CATEGORY_MATCH_THRESHOLD", DEFAULT_CATEGORY_MATCH_THRESHOLD, min_value=0.0)


def mask_env_value(name: str, value: str) -> str:
    value = value.replace("\r", "\\r").replace("\n", "\\n")
    sensitive = any(marker in name.upper() for marker in _SENSITIVE_MARKERS)
    if not sensitive and not value.startswith(("sk-", "Bearer ")):
        return value
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}...{value[-2:]}"


def log_environment() -> None:
    logger.info("[ENV] Effective configuration (secrets masked):")
    for key in CONFIG_KEYS:
        raw_value = os.getenv(key)
        shown = "<unset>" if raw_value is None else mask_env_value(key, raw_value)
        logger.info("[ENV] %s=%s", key, shown)


load_environment()
