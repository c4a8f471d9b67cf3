from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_quotes(s: str) -> str:
    s = (s or "").strip()
    if len(s) >= 2 and ((s[0] == s[-1]) and s[0] in ("'", '"')):
        s = s[1:-1].strip()
    return s


def _env_files() -> tuple[str, str]:
    """
    Allow running CLI commands from subdirectories.
    We first check for a local .env, then fall back to the repo-root .env.
    """
    repo_root_env = str(Path(__file__).resolve().parents[2] / ".env")
    return (".env", repo_root_env)


class DemoSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # How long each simulated read (products, cart contents) takes.
    fetch_delay_seconds: float = Field(default=0.5, ge=0, alias="DEMO_FETCH_DELAY_SECONDS")
    # How long adding an item to the cart takes.
    action_delay_seconds: float = Field(default=1.0, ge=0, alias="DEMO_ACTION_DELAY_SECONDS")
    # How long the echo form's action takes before answering.
    echo_delay_seconds: float = Field(default=2.0, ge=0, alias="DEMO_ECHO_DELAY_SECONDS")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default="action-targets", alias="ACTION_TARGETS_NAME")
    log_level: str = Field(default="INFO", alias="ACTION_TARGETS_LOG_LEVEL")

    demo: DemoSettings = DemoSettings()

    @field_validator("name", mode="before")
    @classmethod
    def _norm_name(cls, v: object) -> str:
        s = _strip_quotes(str(v or ""))
        return s or "action-targets"

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_level(cls, v: object) -> str:
        s = _strip_quotes(str(v or "")).upper()
        if s not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return s
