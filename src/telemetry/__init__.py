# src/telemetry/__init__.py
"""
Telemetry Module - logging setup with per-trial correlation IDs
"""

import logging.config
from typing import Optional

from src.config import get_settings
from .correlation import (
    TrialIdFilter,
    trial_context,
    get_trial_id,
    generate_trial_id,
    trial_id_var,
)


def configure_logging(level: Optional[str] = None):
    """Apply the settings' logging config, optionally overriding the level"""
    log_config = get_settings().get_log_config()
    if level:
        log_config["root"]["level"] = level.upper()
    logging.config.dictConfig(log_config)


__all__ = [
    "TrialIdFilter",
    "trial_context",
    "get_trial_id",
    "generate_trial_id",
    "trial_id_var",
    "configure_logging",
]
