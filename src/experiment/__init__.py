# src/experiment/__init__.py
"""
Experiment Module - driver around the OM(m) core
Selection of traitors and first commander, trial loop, early termination
"""

from .selection import Selection, SelectionStrategy, RandomSelection, FixedSelection
from .runner import (
    ExperimentConfig,
    ExperimentContext,
    ExperimentRunner,
    ExperimentSummary,
    TrialResult,
)

__all__ = [
    # Selection
    "Selection",
    "SelectionStrategy",
    "RandomSelection",
    "FixedSelection",
    # Runner
    "ExperimentConfig",
    "ExperimentContext",
    "ExperimentRunner",
    "ExperimentSummary",
    "TrialResult",
]
