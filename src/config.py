"""
Centralized configuration with environment variable overrides.

Telephony credentials, webhook URLs, storage paths, and voice model
settings are all configurable here. Nothing is hardcoded in the
orchestrator, provider, or agent logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


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


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag such as ``true``/``0``/``yes`` from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class TelephonyConfig:
    """Twilio credentials, webhook routing, and simulated-mode settings."""

    account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    from_number: str = os.getenv("TWILIO_PHONE_NUMBER", "")
    webhook_base_url: str = os.getenv("WEBHOOK_BASE_URL", "http://localhost:3000/webhook")
    simulate: bool = _safe_bool("TELEPHONY_SIMULATE", "false")
    simulated_delay_sec: float = _safe_float("SIMULATED_CALL_DELAY", "2.0")
    record_timeout_sec: int = _safe_int("RECORD_TIMEOUT_SEC", "30")
    estimated_wait: str = os.getenv("ESTIMATED_WAIT", "2-5 minutes")

    @property
    def has_live_credentials(self) -> bool:
        return (
            self.account_sid.startswith("AC")
            and len(self.auth_token) > 10
        )


@dataclass(frozen=True)
class StorageConfig:
    """Locations of the durable session and pharmacy collections."""

    data_dir: str = os.getenv("DATA_DIR", "./data")
    sessions_file: str = os.getenv("CALL_LOGS_FILE", "")
    pharmacies_file: str = os.getenv("PHARMACY_DATA_FILE", "")
    retention_days: int = _safe_int("CALL_RETENTION_DAYS", "30")

    @property
    def sessions_path(self) -> str:
        return self.sessions_file or os.path.join(self.data_dir, "call_logs.json")

    @property
    def pharmacies_path(self) -> str:
        return self.pharmacies_file or os.path.join(self.data_dir, "pharmacies.json")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings for the webhook and admin API."""

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _safe_int("PORT", "3000")
    environment: str = os.getenv("APP_ENV", "development")

    @property
    def expose_errors(self) -> bool:
        return self.environment == "development"


@dataclass(frozen=True)
class ModelConfig:
    """LLM and voice pipeline model settings."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.7")
    stt_model: str = os.getenv("STT_MODEL", "nova-3")
    stt_language: str = os.getenv("STT_LANGUAGE", "en")
    tts_model: str = os.getenv("TTS_MODEL", "sonic-2")
    tts_voice_id: str = os.getenv("TTS_VOICE_ID", "79a125e8-cd45-4c13-8a67-188112f4dd22")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    telephony: TelephonyConfig = field(default_factory=TelephonyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "pharmacy-assistant")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.telephony.simulated_delay_sec < 0:
        raise ValueError(
            f"SIMULATED_CALL_DELAY must be >= 0, got {config.telephony.simulated_delay_sec}"
        )
    if config.telephony.record_timeout_sec < 1:
        raise ValueError(
            f"RECORD_TIMEOUT_SEC must be >= 1, got {config.telephony.record_timeout_sec}"
        )
    if not config.telephony.webhook_base_url.startswith(("http://", "https://")):
        raise ValueError(
            "WEBHOOK_BASE_URL must be an http(s) URL, "
            f"got {config.telephony.webhook_base_url!r}"
        )
    if config.storage.retention_days < 1:
        raise ValueError(
            f"CALL_RETENTION_DAYS must be >= 1, got {config.storage.retention_days}"
        )
    if not 1 <= config.server.port <= 65535:
        raise ValueError(f"PORT must be between 1 and 65535, got {config.server.port}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    mode = "live" if config.telephony.has_live_credentials and not config.telephony.simulate else "simulated"
    logger.info("Configuration loaded for '%s' (telephony: %s)", config.agent_name, mode)
    return config


# Singleton instance
settings = load_config()
