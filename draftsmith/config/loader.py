"""YAML and env loader with fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

from draftsmith.models import SettingsConfig

DEFAULT_SETTINGS_PATH = "config/settings.yaml"

# Map model string prefixes to the env var that must be set for that provider.
_PREFIX_TO_ENV: dict[str, str] = {
    "google-gla:": "GEMINI_API_KEY",
    "google-vertex:": "GEMINI_API_KEY",
    "anthropic:": "ANTHROPIC_API_KEY",
    "openai:": "OPENAI_API_KEY",
    "groq:": "GROQ_API_KEY",
    "mistral:": "MISTRAL_API_KEY",
}

_RESEARCH_ENV_KEYS = ("DATAFORSEO_LOGIN", "DATAFORSEO_PASSWORD")


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def get_required_env_keys(settings: SettingsConfig) -> list[str]:
    """Derive which env vars are required from the configured model prefixes.

    DataForSEO credentials are always required. If no agent model carries a
    known prefix, GEMINI_API_KEY is required as the safe default.
    """
    required: set[str] = set(_RESEARCH_ENV_KEYS)
    llm_keys: set[str] = set()
    for agent_cfg in settings.agents.values():
        for prefix, env_key in _PREFIX_TO_ENV.items():
            if agent_cfg.model.startswith(prefix):
                llm_keys.add(env_key)
    if not llm_keys:
        llm_keys.add("GEMINI_API_KEY")
    return sorted(required | llm_keys)


def load_settings(path: str | None = None) -> SettingsConfig:
    """Load settings from YAML. DRAFTSMITH_SETTINGS and DRAFTSMITH_DB override defaults."""
    load_dotenv()
    settings_path = path or os.getenv("DRAFTSMITH_SETTINGS", DEFAULT_SETTINGS_PATH)
    settings = SettingsConfig.model_validate(_read_yaml(settings_path))
    db_override = os.getenv("DRAFTSMITH_DB")
    if db_override:
        settings.database.path = db_override
    return settings


def validate_secret_env(settings: SettingsConfig | None = None) -> list[str]:
    """Return list of missing required env var names."""
    load_dotenv()
    if settings is not None:
        required = get_required_env_keys(settings)
    else:
        required = sorted({"GEMINI_API_KEY", *_RESEARCH_ENV_KEYS})
    return [key for key in required if not os.getenv(key)]
