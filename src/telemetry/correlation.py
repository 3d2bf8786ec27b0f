# src/telemetry/correlation.py
"""
Trial Correlation IDs
Every log line emitted while a trial runs carries that trial's ID

Format: [2026-01-01T00:00:00] [INFO] [trial-abc123def456] omsim.experiment.runner: ...
"""

import uuid
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Context variable for the active trial ID
trial_id_var: ContextVar[str] = ContextVar('trial_id', default='no-trial')


def get_trial_id() -> str:
    """Get current trial ID from context"""
    return trial_id_var.get()


def generate_trial_id() -> str:
    """Generate a new trial ID"""
    return f"trial-{uuid.uuid4().hex[:12]}"


@contextmanager
def trial_context(trial_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trial ID for the duration of the block"""
    trial_id = trial_id or generate_trial_id()
    token = trial_id_var.set(trial_id)
    try:
        yield trial_id
    finally:
        trial_id_var.reset(token)


class TrialIdFilter(logging.Filter):
    """Logging filter to inject the trial ID into log records"""

    def filter(self, record):
        record.trial_id = get_trial_id()
        return True
