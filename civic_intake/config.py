"""
Centralized configuration with environment variable overrides.

Council details, collaborator timeouts, retry ceilings, storage and
notification settings are all configurable here. Nothing is hardcoded
in the orchestrator or its collaborators.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from civic_intake.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(session_id)s]: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _optional(env_var: str) -> Optional[str]:
    value = os.getenv(env_var, "").strip()
    return value or None


@dataclass(frozen=True)
class CouncilConfig:
    """Council-facing wording used in prompts and notifications."""

    name: str = os.getenv("COUNCIL_NAME", "Council Services")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "Guru")
    contact_line: str = os.getenv("COUNCIL_CONTACT_LINE", "+44 123 456 7890")
    review_days: str = os.getenv("COUNCIL_REVIEW_DAYS", "2-3 business days")


@dataclass(frozen=True)
class ModelConfig:
    """LLM settings for the classifier, extractor and confirmation interpreter."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.0")
    collaborator_timeout_sec: float = _safe_float("COLLABORATOR_TIMEOUT", "6.0")
    classifier_max_tokens: int = _safe_int("CLASSIFIER_MAX_TOKENS", "50")
    extractor_max_tokens: int = _safe_int("EXTRACTOR_MAX_TOKENS", "100")
    openai_api_key: Optional[str] = _optional("OPENAI_API_KEY")
    openai_base_url: Optional[str] = _optional("OPENAI_BASE_URL")


@dataclass(frozen=True)
class GuardrailConfig:
    """Retry ceilings for the dialogue and the session store."""

    max_field_attempts: int = _safe_int("MAX_FIELD_ATTEMPTS", "3")
    max_selection_attempts: int = _safe_int("MAX_SELECTION_ATTEMPTS", "3")
    store_conflict_retries: int = _safe_int("STORE_CONFLICT_RETRIES", "1")


@dataclass(frozen=True)
class StorageConfig:
    """Where sessions and intake records live."""

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///civic_intake.db")
    catalog_path: Optional[str] = _optional("CATALOG_PATH")
    echo_sql: bool = os.getenv("ECHO_SQL", "false").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class NotificationConfig:
    """Confirmation email delivery."""

    sendgrid_api_key: Optional[str] = _optional("SENDGRID_API_KEY")
    from_email: str = os.getenv("SENDGRID_FROM_EMAIL", "no-reply@council.example")
    timeout_sec: float = _safe_float("NOTIFICATION_TIMEOUT", "10.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    council: CouncilConfig = field(default_factory=CouncilConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    guardrails: GuardrailConfig = field(default_factory=GuardrailConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _safe_int("PORT", "8000")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.collaborator_timeout_sec <= 0:
        raise ValueError(
            "COLLABORATOR_TIMEOUT must be > 0, "
            f"got {config.model.collaborator_timeout_sec}"
        )
    for name, value in [
        ("CLASSIFIER_MAX_TOKENS", config.model.classifier_max_tokens),
        ("EXTRACTOR_MAX_TOKENS", config.model.extractor_max_tokens),
        ("MAX_FIELD_ATTEMPTS", config.guardrails.max_field_attempts),
        ("MAX_SELECTION_ATTEMPTS", config.guardrails.max_selection_attempts),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")
    if config.guardrails.store_conflict_retries < 0:
        raise ValueError(
            "STORE_CONFLICT_RETRIES must be >= 0, "
            f"got {config.guardrails.store_conflict_retries}"
        )
    if config.notification.timeout_sec <= 0:
        raise ValueError(
            f"NOTIFICATION_TIMEOUT must be > 0, got {config.notification.timeout_sec}"
        )
    if not config.storage.database_url:
        raise ValueError("DATABASE_URL must not be empty")
    if not 0 < config.port < 65536:
        raise ValueError(f"PORT must be between 1 and 65535, got {config.port}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
    logger.info("Configuration loaded for '%s'", config.council.name)
    return config


# Singleton instance
settings = load_config()
