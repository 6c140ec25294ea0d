"""Application configuration (Pydantic v2). Load from captioner.yml with optional env override."""

import os
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import BaseModel, field_validator


DEFAULT_DATABASE_URL = "sqlite:///captioner.db"
DEFAULT_CONFIG_ENV_VAR = "CAPTIONER_CONFIG"
DEFAULT_CONFIG_FILENAME = "captioner.yml"
DATABASE_URL_ENV_VAR = "CAPTIONER_DATABASE_URL"

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1/models/gemini-1.5-flash:generateContent"
OPENAI_BASE_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-4-vision-preview"


class Settings(BaseModel):
    """
    Application config loaded from YAML.

    By default, database_url may be overridden by the CAPTIONER_DATABASE_URL environment
    variable when loading the default config (but not when an explicit config_path is provided).
    """

    model_config = {"extra": "ignore"}

    database_url: str = DEFAULT_DATABASE_URL
    data_dir: str = "data"
    log_level: str = "WARNING"
    forensics_dir: str = "logs/forensics"
    max_images: int = 100
    max_image_size_mb: int = 20
    thumbnail_size: int = 400
    gemini_base_url: str = GEMINI_BASE_URL
    openai_base_url: str = OPENAI_BASE_URL
    openai_model: str = OPENAI_MODEL
    request_timeout_seconds: float = 120.0

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> str:
        if v is None or v == "":
            return "WARNING"
        return str(v).upper()


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from CAPTIONER_CONFIG / captioner.yml and
      apply CAPTIONER_DATABASE_URL override when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override and self._env.get(DATABASE_URL_ENV_VAR):
            data["database_url"] = self._env[DATABASE_URL_ENV_VAR]
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """Load the default Settings, using CAPTIONER_CONFIG or captioner.yml when present."""
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)

        settings = Settings()
        if self._env.get(DATABASE_URL_ENV_VAR):
            settings = settings.model_copy(update={"database_url": self._env[DATABASE_URL_ENV_VAR]})
        return settings


_loader = ConfigLoader()


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides for database_url) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = _loader.load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = _loader.load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
