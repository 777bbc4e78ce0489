import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel

from locanara.domain.errors import ConfigurationError


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "locanara"

    buffer_max_entries: int = 20
    buffer_max_tokens: int = 2000
    summary_window: int = 8
    agent_max_steps: int = 3
    chain_max_retries: int = 1


def get_settings() -> Settings:
    """
    Return Settings built from the *current* environment.

    Tests mutate os.environ through monkeypatch, so values are re-read on
    every call instead of being cached.
    """

    # .env in the working directory fills in variables not already set
    load_dotenv(find_dotenv(usecwd=True))

    defaults = Settings()
    return Settings(
        log_level=(os.getenv("LOCANARA_LOG_LEVEL") or defaults.log_level).upper(),
        log_format=(os.getenv("LOCANARA_LOG_FORMAT") or defaults.log_format).lower(),
        service_name=os.getenv("LOCANARA_SERVICE_NAME") or defaults.service_name,
        buffer_max_entries=_get_int("LOCANARA_BUFFER_MAX_ENTRIES", defaults.buffer_max_entries),
        buffer_max_tokens=_get_int("LOCANARA_BUFFER_MAX_TOKENS", defaults.buffer_max_tokens),
        summary_window=_get_int("LOCANARA_SUMMARY_WINDOW", defaults.summary_window),
        agent_max_steps=_get_int("LOCANARA_AGENT_MAX_STEPS", defaults.agent_max_steps),
        chain_max_retries=_get_int("LOCANARA_CHAIN_MAX_RETRIES", defaults.chain_max_retries),
    )


def _get_int(name: str, default: int) -> int:
    raw: Optional[str] = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
