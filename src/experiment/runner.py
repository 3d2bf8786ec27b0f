# src/experiment/runner.py
"""
Experiment Runner - repeated OM(m) trials with validation

Each trial:
1. Creates a fresh arena of generals (ids 1..n)
2. Asks the selection strategy for traitors and the first commander
3. Runs OM(m) from the first commander over every other general
4. Validates IC1/IC2 on the final decisions

No state survives between trials. By default the run stops at the first
trial where consensus is not reached.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterable, List, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.oral_messages import (
    Message,
    Participant,
    ParticipantArena,
    OralMessagesOrchestrator,
    RunStats,
    ConsistencyReport,
    check_consistency,
    ToleranceBound,
    RelayPolicy,
    EventSink,
)
from src.telemetry import trial_context
from .selection import Selection, SelectionStrategy, RandomSelection

logger = logging.getLogger("omsim.experiment.runner")


class ExperimentConfig(BaseModel):
    """Validated experiment parameters"""
    num_participants: int = Field(default=4, ge=1, description="Generals, commander included")
    num_traitors: int = Field(default=1, ge=0, description="Traitors among all generals")
    m: Optional[int] = Field(default=None, ge=0, description="OM(m) rounds; defaults to num_traitors")
    num_experiments: int = Field(default=10, ge=1, description="Trials to run")
    original_order: Literal["attack", "retreat"] = Field(default="attack", description="First commander's order")
    stop_on_first_failure: bool = Field(default=True, description="Stop after the first failed trial")
    seed: Optional[int] = Field(default=None, description="Seed for the default random selection")

    @field_validator("original_order", mode="before")
    @classmethod
    def normalize_order(cls, v):
        if isinstance(v, Message):
            return str(v)
        if isinstance(v, bool):
            return "attack" if v else "retreat"
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def traitors_within_participants(self):
        if self.num_traitors > self.num_participants:
            raise ValueError(
                f"num_traitors ({self.num_traitors}) cannot exceed "
                f"num_participants ({self.num_participants})"
            )
        return self

    @property
    def rounds(self) -> int:
        return self.num_traitors if self.m is None else self.m

    @property
    def order(self) -> Message:
        return Message.parse(self.original_order)

    @property
    def bound(self) -> ToleranceBound:
        return ToleranceBound(total_participants=self.num_participants, rounds=self.rounds)


@dataclass
class ExperimentContext:
    """Everything one trial needs; created fresh and discarded after validation"""
    arena: ParticipantArena
    roster: List[int]
    first_commander_id: int
    original_order: Message
    first_commander_is_loyal: bool
    selection: Selection

    @classmethod
    def create(
        cls,
        config: ExperimentConfig,
        selection_strategy: SelectionStrategy,
        relay_policy: Optional[RelayPolicy] = None
    ) -> "ExperimentContext":
        arena = ParticipantArena.with_generals(config.num_participants)
        selection = selection_strategy.select(arena.ids, config.num_traitors)

        for traitor_id in sorted(selection.traitor_ids):
            arena[traitor_id].mark_traitor(relay_policy)

        commander = arena[selection.commander_id]
        commander.seed_order(config.order)

        return cls(
            arena=arena,
            roster=[pid for pid in arena.ids if pid != commander.id],
            first_commander_id=commander.id,
            original_order=config.order,
            first_commander_is_loyal=commander.is_loyal,
            selection=selection,
        )

    @property
    def first_commander(self) -> Participant:
        return self.arena[self.first_commander_id]

    @property
    def lieutenants(self) -> List[Participant]:
        return self.arena.resolve(self.roster)


@dataclass
class TrialResult:
    """Outcome of a single trial"""
    trial_number: int
    trial_id: str
    selection: Selection
    first_commander_is_loyal: bool
    report: ConsistencyReport
    stats: RunStats
    decisions: Dict[int, bool] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.report.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trial_number": self.trial_number,
            "trial_id": self.trial_id,
            "success": self.success,
            "selection": self.selection.to_dict(),
            "first_commander_is_loyal": self.first_commander_is_loyal,
            "report": self.report.to_dict(),
            "stats": self.stats.to_dict(),
            "decisions": {
                str(pid): ("attack" if decision else "retreat")
                for pid, decision in self.decisions.items()
            },
        }


@dataclass
class ExperimentSummary:
    """Result of a full experiment run"""
    config: ExperimentConfig
    trials: List[TrialResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def trials_run(self) -> int:
        return len(self.trials)

    @property
    def successes(self) -> int:
        return sum(1 for t in self.trials if t.success)

    @property
    def failures(self) -> int:
        return self.trials_run - self.successes

    @property
    def all_successful(self) -> bool:
        return self.failures == 0

    @property
    def first_failure(self) -> Optional[TrialResult]:
        return next((t for t in self.trials if not t.success), None)

    @property
    def duration_ms(self) -> float:
        if not self.completed_at:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        first_failure = self.first_failure
        return {
            "config": self.config.model_dump(),
            "rounds": self.config.rounds,
            "bound": self.config.bound.to_dict(),
            "trials_run": self.trials_run,
            "successes": self.successes,
            "failures": self.failures,
            "first_failure": first_failure.trial_number if first_failure else None,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "trials": [t.to_dict() for t in self.trials],
        }


class ExperimentRunner:
    """
    Runs OM(m) trials under a selection strategy.

    The tolerance bound is only reported: a configuration outside
    n >= 3m + 1 still runs, and its failures are expected.
    """

    def __init__(
        self,
        config: Optional[ExperimentConfig] = None,
        selection: Optional[SelectionStrategy] = None,
        relay_policy: Optional[RelayPolicy] = None,
        event_sinks: Optional[Iterable[EventSink]] = None
    ):
        self.config = config or ExperimentConfig()
        self.selection = selection or RandomSelection(seed=self.config.seed)
        self.relay_policy = relay_policy
        self._event_sinks: List[EventSink] = list(event_sinks or [])

        logger.info(
            f"ExperimentRunner created: n={self.config.num_participants}, "
            f"traitors={self.config.num_traitors}, m={self.config.rounds}, "
            f"experiments={self.config.num_experiments}, selection={self.selection!r}"
        )

    def on_event(self, sink: EventSink):
        """Register an event sink attached to every trial's orchestrator"""
        self._event_sinks.append(sink)

    def run_trial(self, trial_number: int = 1) -> TrialResult:
        """Run one independent trial"""
        with trial_context() as trial_id:
            context = ExperimentContext.create(self.config, self.selection, self.relay_policy)
            logger.info(
                f"Trial {trial_number} started: commander=#{context.first_commander_id} "
                f"({'loyal' if context.first_commander_is_loyal else 'traitor'}), "
                f"traitors={sorted(context.selection.traitor_ids)}, "
                f"order={context.original_order}"
            )

            orchestrator = OralMessagesOrchestrator(context.arena, self._event_sinks)
            stats = orchestrator.om(context.roster, context.first_commander_id, self.config.rounds)

            report = check_consistency(
                context.lieutenants,
                context.first_commander_is_loyal,
                context.original_order,
            )

            result = TrialResult(
                trial_number=trial_number,
                trial_id=trial_id,
                selection=context.selection,
                first_commander_is_loyal=context.first_commander_is_loyal,
                report=report,
                stats=stats,
                decisions={p.id: p.decision for p in context.lieutenants},
            )

            for participant in context.lieutenants:
                logger.debug(
                    f"General #{participant.id} decision: {participant.decision_message}"
                )
            logger.info(
                f"Trial {trial_number} {'succeeded' if result.success else 'FAILED'}: "
                f"ic1={report.ic1}, ic2={report.ic2}, messages={stats.messages_sent}"
            )
            return result

    def run(self) -> ExperimentSummary:
        """Run up to num_experiments trials"""
        summary = ExperimentSummary(config=self.config)
        bound = self.config.bound

        if not bound.is_satisfied:
            logger.warning(
                f"n={bound.n} is below 3m + 1 = {bound.min_participants}; "
                f"consensus failures are expected"
            )
        elif self.config.num_traitors > self.config.rounds:
            logger.warning(
                f"{self.config.num_traitors} traitors exceed m={self.config.rounds} rounds; "
                f"consensus failures are expected"
            )

        for trial_number in range(1, self.config.num_experiments + 1):
            result = self.run_trial(trial_number)
            summary.trials.append(result)

            if not result.success and self.config.stop_on_first_failure:
                logger.warning(f"Found a case where consensus isn't achieved (trial {trial_number})")
                break

        summary.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"Experiment complete: {summary.successes}/{summary.trials_run} trials succeeded, "
            f"duration={summary.duration_ms:.1f}ms"
        )
        return summary
