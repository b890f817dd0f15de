"""
Environment-driven settings for the questionnaire service.

Values come from the process environment after .env files are loaded
(backend/.env first, then ./.env). Invalid numbers fall back to their
defaults with a warning rather than failing startup.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from catalog.characters import DEFAULT_REGISTRY_PATH

logger = logging.getLogger(__name__)

ENV_PATHS = [
    Path(__file__).parent.parent / ".env",  # backend/.env
    Path.cwd() / ".env",  # current working directory
]


def load_env_files() -> None:
    """Load the first .env file found; existing environment values win."""
    for env_path in ENV_PATHS:
        if env_path.exists():
            load_dotenv(env_path)
            return
    load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    if default:
        return value.strip().lower() != "false"
    return value.strip().lower() == "true"


def _int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={value!r}, using default {default}")
        return default
    if parsed < 0:
        logger.warning(f"Negative value for {name}={value!r}, using default {default}")
        return default
    return parsed


def _float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {name}={value!r}, using default {default}")
        return default


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.35
    webhook_url: Optional[str] = None
    session_ttl_minutes: int = 45
    max_reprompts: int = 0
    character_registry_path: str = str(DEFAULT_REGISTRY_PATH)
    enable_eq_engine: bool = True
    enable_guardrails: bool = True
    debug: bool = False


def load_settings() -> Settings:
    """Read settings from the environment."""
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        ai_temperature=_float("AI_TEMPERATURE", 0.35),
        webhook_url=os.getenv("QUESTIONNAIRE_WEBHOOK_URL") or None,
        session_ttl_minutes=_int("QUESTIONNAIRE_SESSION_TTL_MINUTES", 45),
        max_reprompts=_int("QUESTIONNAIRE_MAX_REPROMPTS", 0),
        character_registry_path=os.getenv("CHARACTER_REGISTRY_PATH") or str(DEFAULT_REGISTRY_PATH),
        enable_eq_engine=_flag("ENABLE_EQ_ENGINE", True),
        enable_guardrails=_flag("ENABLE_GUARDRAILS", True),
        debug=_flag("DEBUG", False),
    )
