"""
OMSim Configuration Module - Environment-based configuration
Experiment defaults and logging setup for the Oral-Messages simulator
"""

import os
from typing import Optional
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Default log level per ENVIRONMENT when LOG_LEVEL is unset
ENVIRONMENT_LOG_LEVELS = {
    "development": "DEBUG",
    "testing": "WARNING",
    "production": "INFO",
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


class Settings:
    """Application settings loaded from environment variables"""

    LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

    # ==========================================================================
    # Application Settings
    # Read on access so a changed environment is picked up by new Settings
    # ==========================================================================
    @property
    def ENVIRONMENT(self) -> str:
        return os.getenv("ENVIRONMENT", "production").strip().lower()

    @property
    def LOG_LEVEL(self) -> str:
        value = os.getenv("LOG_LEVEL")
        if value is None or not value.strip():
            return ENVIRONMENT_LOG_LEVELS.get(self.ENVIRONMENT, "INFO")
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    # ==========================================================================
    # Experiment Defaults
    # ==========================================================================
    @property
    def NUM_PARTICIPANTS(self) -> int:
        value = _env_int("OM_NUM_PARTICIPANTS")
        return 4 if value is None else value

    @property
    def NUM_TRAITORS(self) -> int:
        value = _env_int("OM_NUM_TRAITORS")
        return 1 if value is None else value

    @property
    def ROUNDS(self) -> Optional[int]:
        """Explicit OM(m) rounds; None lets the experiment use the traitor count"""
        return _env_int("OM_ROUNDS")

    @property
    def NUM_EXPERIMENTS(self) -> int:
        value = _env_int("OM_NUM_EXPERIMENTS")
        return 10 if value is None else value

    @property
    def ORIGINAL_ORDER(self) -> str:
        return os.getenv("OM_ORIGINAL_ORDER", "attack").strip().lower()

    @property
    def STOP_ON_FIRST_FAILURE(self) -> bool:
        return _env_bool("OM_STOP_ON_FIRST_FAILURE", "true")

    @property
    def SEED(self) -> Optional[int]:
        return _env_int("OM_SEED")

    def experiment_config(self, **overrides):
        """Build a validated ExperimentConfig from these settings"""
        from src.experiment.runner import ExperimentConfig

        values = {
            "num_participants": self.NUM_PARTICIPANTS,
            "num_traitors": self.NUM_TRAITORS,
            "m": self.ROUNDS,
            "num_experiments": self.NUM_EXPERIMENTS,
            "original_order": self.ORIGINAL_ORDER,
            "stop_on_first_failure": self.STOP_ON_FIRST_FAILURE,
            "seed": self.SEED,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ExperimentConfig(**values)

    def get_log_config(self) -> dict:
        """Get structured logging configuration"""
        handlers = ["console"]
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "trial_id": {"()": "src.telemetry.correlation.TrialIdFilter"}
            },
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] [%(trial_id)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["trial_id"],
                    "stream": "ext://sys.stdout"
                }
            },
            "root": {
                "level": self.LOG_LEVEL,
                "handlers": handlers
            }
        }
        if self.LOG_FILE:
            config["handlers"]["file"] = {
                "class": "logging.FileHandler",
                "formatter": "default",
                "filters": ["trial_id"],
                "filename": self.LOG_FILE,
            }
            handlers.append("file")
        return config


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
