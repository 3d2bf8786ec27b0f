# tests/test_experiment.py
"""
Experiment Driver Tests - selection strategies, trial context, runner

Validates:
1. n=4, t=1, m=1 reaches agreement for every traitor and commander choice
2. n=4, t=2, m=2 has a reproducible assignment where agreement fails
3. Early termination on the first failed trial
4. No state carried between trials
"""

import itertools
import json
import logging

import pytest
from pydantic import ValidationError

from src.experiment import (
    Selection,
    RandomSelection,
    FixedSelection,
    ExperimentConfig,
    ExperimentContext,
    ExperimentRunner,
    TrialResult,
)
from src.oral_messages import (
    ATTACK,
    RETREAT,
    AlwaysFlipPolicy,
    ParityFlipPolicy,
    EventKind,
    RecordingEventSink,
    BoundStatus,
)
from src.telemetry import trial_context, get_trial_id, TrialIdFilter


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def counterexample_config():
    """n=4, t=2, m=2 violates n >= 3m + 1"""
    return ExperimentConfig(num_participants=4, num_traitors=2, m=2, num_experiments=5)


@pytest.fixture
def counterexample_selection():
    """Loyal #1 commands, #2 and #3 betray, #4 is the only loyal lieutenant"""
    return FixedSelection(traitor_ids=[2, 3], commander_id=1)


# =============================================================================
# Configuration
# =============================================================================

class TestExperimentConfig:
    """Tests for validated experiment parameters"""

    def test_defaults(self):
        config = ExperimentConfig()

        assert config.num_participants == 4
        assert config.num_traitors == 1
        assert config.rounds == 1
        assert config.order == ATTACK
        assert config.stop_on_first_failure is True

    def test_rounds_default_to_traitors(self):
        config = ExperimentConfig(num_participants=7, num_traitors=2)

        assert config.m is None
        assert config.rounds == 2

    def test_explicit_rounds(self):
        assert ExperimentConfig(num_traitors=1, m=0).rounds == 0

    def test_order_normalization(self):
        assert ExperimentConfig(original_order="RETREAT").order == RETREAT
        assert ExperimentConfig(original_order=True).order == ATTACK
        assert ExperimentConfig(original_order=RETREAT).original_order == "retreat"

    @pytest.mark.parametrize("values", [
        {"num_participants": 0},
        {"num_traitors": -1},
        {"m": -1},
        {"num_experiments": 0},
        {"original_order": "hold"},
        {"num_participants": 3, "num_traitors": 4},
    ])
    def test_invalid_values_rejected(self, values):
        with pytest.raises(ValidationError):
            ExperimentConfig(**values)

    def test_bound(self):
        assert ExperimentConfig().bound.status == BoundStatus.SATISFIED
        assert ExperimentConfig(num_traitors=2).bound.status == BoundStatus.VIOLATED


# =============================================================================
# Selection Strategies
# =============================================================================

class TestSelectionStrategies:
    """Tests for random and fixed traitor / commander selection"""

    def test_random_selection_shape(self):
        selection = RandomSelection(seed=3).select([1, 2, 3, 4, 5], 2)

        assert len(selection.traitor_ids) == 2
        assert selection.traitor_ids <= {1, 2, 3, 4, 5}
        assert selection.commander_id in {1, 2, 3, 4, 5}

    def test_seeded_random_selection_is_reproducible(self):
        a = RandomSelection(seed=42)
        b = RandomSelection(seed=42)

        picks_a = [a.select([1, 2, 3, 4], 1) for _ in range(10)]
        picks_b = [b.select([1, 2, 3, 4], 1) for _ in range(10)]
        assert picks_a == picks_b

    @pytest.mark.parametrize("num_traitors", [-1, 5])
    def test_random_selection_rejects_bad_counts(self, num_traitors):
        with pytest.raises(ValueError, match="num_traitors"):
            RandomSelection().select([1, 2, 3, 4], num_traitors)

    def test_random_selection_rejects_empty(self):
        with pytest.raises(ValueError, match="empty"):
            RandomSelection().select([], 0)

    def test_fixed_selection(self):
        selection = FixedSelection(traitor_ids=[1], commander_id=1).select([1, 2, 3, 4], 1)

        assert selection == Selection(traitor_ids=frozenset({1}), commander_id=1)
        assert selection.commander_is_traitor is True

    def test_fixed_selection_unknown_ids(self):
        with pytest.raises(ValueError, match="unknown participants"):
            FixedSelection(traitor_ids=[9], commander_id=1).select([1, 2, 3, 4], 1)


# =============================================================================
# Experiment Context
# =============================================================================

class TestExperimentContext:
    """Tests for per-trial setup"""

    def test_commander_excluded_and_seeded(self):
        config = ExperimentConfig(num_participants=4, num_traitors=1, original_order="retreat")
        context = ExperimentContext.create(config, FixedSelection([3], commander_id=2))

        assert context.first_commander_id == 2
        assert context.roster == [1, 3, 4]
        assert context.first_commander.decision is False
        assert context.first_commander.received == []
        assert context.first_commander_is_loyal is True
        assert context.original_order == RETREAT

    def test_traitors_marked_with_policy(self):
        policy = AlwaysFlipPolicy()
        config = ExperimentConfig(num_participants=4, num_traitors=2)
        context = ExperimentContext.create(config, FixedSelection([1, 4], commander_id=1), policy)

        assert context.arena.traitor_ids() == [1, 4]
        assert context.arena[4].relay_policy is policy
        assert context.first_commander_is_loyal is False

    def test_default_relay_policy_is_parity(self):
        config = ExperimentConfig(num_participants=4, num_traitors=1)
        context = ExperimentContext.create(config, FixedSelection([2], commander_id=1))

        assert isinstance(context.arena[2].relay_policy, ParityFlipPolicy)


# =============================================================================
# Protocol Guarantees
# =============================================================================

ALL_ASSIGNMENTS_N4_T1 = list(itertools.product([1, 2, 3, 4], [1, 2, 3, 4]))


class TestBoundRespectingCorrectness:
    """n=4, t=1, m=1 satisfies n >= 3m + 1: agreement always holds"""

    @pytest.mark.parametrize("traitor,commander", ALL_ASSIGNMENTS_N4_T1)
    @pytest.mark.parametrize("policy", [ParityFlipPolicy(), ParityFlipPolicy(flip_even=False), AlwaysFlipPolicy()])
    @pytest.mark.parametrize("order", ["attack", "retreat"])
    def test_every_assignment_succeeds(self, traitor, commander, policy, order):
        config = ExperimentConfig(
            num_participants=4, num_traitors=1, m=1, num_experiments=1, original_order=order
        )
        runner = ExperimentRunner(config, FixedSelection([traitor], commander), policy)

        result = runner.run_trial()

        assert result.success, result.to_dict()


class TestBoundViolatingCounterexample:
    """n=4, t=2, m=2 violates n >= 3m + 1: agreement can fail"""

    def test_fixed_counterexample_fails(self, counterexample_config, counterexample_selection):
        runner = ExperimentRunner(counterexample_config, counterexample_selection, AlwaysFlipPolicy())

        result = runner.run_trial()

        # #4 ends up outvoted by the traitors' relays and retreats
        assert result.first_commander_is_loyal is True
        assert result.decisions == {2: False, 3: True, 4: False}
        assert result.report.ic1 is True
        assert result.report.ic2 is False
        assert result.success is False

    def test_some_assignment_fails(self):
        outcomes = []
        for traitors in itertools.combinations([1, 2, 3, 4], 2):
            for commander in [1, 2, 3, 4]:
                config = ExperimentConfig(num_participants=4, num_traitors=2, m=2, num_experiments=1)
                runner = ExperimentRunner(config, FixedSelection(traitors, commander), AlwaysFlipPolicy())
                outcomes.append(runner.run_trial().success)

        assert not all(outcomes)


# =============================================================================
# Runner
# =============================================================================

class TestExperimentRunner:
    """Tests for the trial loop"""

    def test_stops_on_first_failure(self, counterexample_config, counterexample_selection):
        runner = ExperimentRunner(counterexample_config, counterexample_selection, AlwaysFlipPolicy())

        summary = runner.run()

        assert summary.trials_run == 1
        assert summary.failures == 1
        assert summary.first_failure.trial_number == 1
        assert summary.all_successful is False

    def test_continue_on_failure(self, counterexample_config, counterexample_selection):
        config = counterexample_config.model_copy(update={"stop_on_first_failure": False})
        runner = ExperimentRunner(config, counterexample_selection, AlwaysFlipPolicy())

        summary = runner.run()

        assert summary.trials_run == 5
        assert summary.failures == 5
        assert summary.first_failure.trial_number == 1

    def test_random_runs_within_bound_succeed(self):
        config = ExperimentConfig(num_participants=4, num_traitors=1, num_experiments=25, seed=11)

        summary = ExperimentRunner(config).run()

        assert summary.trials_run == 25
        assert summary.all_successful is True
        assert summary.completed_at is not None

    def test_seeded_runs_are_reproducible(self):
        config = ExperimentConfig(
            num_participants=4, num_traitors=2, m=2, num_experiments=10,
            stop_on_first_failure=False, seed=5,
        )

        first = ExperimentRunner(config).run()
        second = ExperimentRunner(config).run()

        assert [t.selection for t in first.trials] == [t.selection for t in second.trials]
        assert [t.decisions for t in first.trials] == [t.decisions for t in second.trials]

    def test_no_state_between_trials(self):
        config = ExperimentConfig(num_participants=5, num_traitors=1, num_experiments=1)
        runner = ExperimentRunner(config, FixedSelection([3], commander_id=2))

        first = runner.run_trial(1)
        second = runner.run_trial(2)

        assert first.decisions == second.decisions
        assert first.stats == second.stats
        assert first.trial_id != second.trial_id

    def test_event_sinks_attached_to_trials(self):
        sink = RecordingEventSink()
        config = ExperimentConfig(num_participants=4, num_traitors=0, m=1, num_experiments=2)
        runner = ExperimentRunner(config, FixedSelection([], commander_id=1))
        runner.on_event(sink)

        runner.run()

        assert len(sink.of_kind(EventKind.SEND)) == 18
        assert len(sink.of_kind(EventKind.DECIDE)) == 6

    def test_bound_violation_logged(self, counterexample_config, counterexample_selection, caplog):
        caplog.set_level("WARNING", logger="omsim.experiment.runner")
        runner = ExperimentRunner(counterexample_config, counterexample_selection, AlwaysFlipPolicy())

        runner.run()

        assert "below 3m + 1" in caplog.text

    def test_summary_is_json_serializable(self, counterexample_config, counterexample_selection):
        runner = ExperimentRunner(counterexample_config, counterexample_selection, AlwaysFlipPolicy())

        data = json.loads(json.dumps(runner.run().to_dict()))

        assert data["trials_run"] == 1
        assert data["first_failure"] == 1
        assert data["bound"]["status"] == "violated"
        assert data["config"]["original_order"] == "attack"
        assert data["trials"][0]["decisions"] == {"2": "retreat", "3": "attack", "4": "retreat"}

    def test_trial_result_success_mirrors_report(self):
        config = ExperimentConfig(num_participants=4, num_traitors=0)
        result = ExperimentRunner(config, FixedSelection([], commander_id=4)).run_trial(7)

        assert isinstance(result, TrialResult)
        assert result.trial_number == 7
        assert result.success is result.report.success is True
        assert result.trial_id.startswith("trial-")


# =============================================================================
# Trial Correlation IDs
# =============================================================================

class TestTrialCorrelation:
    """Tests for per-trial log correlation"""

    def test_trial_context_binds_and_resets(self):
        assert get_trial_id() == "no-trial"
        with trial_context() as trial_id:
            assert trial_id.startswith("trial-")
            assert get_trial_id() == trial_id
        assert get_trial_id() == "no-trial"

    def test_explicit_trial_id(self):
        with trial_context("trial-fixed"):
            assert get_trial_id() == "trial-fixed"

    def test_filter_injects_trial_id(self):
        record = logging.LogRecord("omsim", logging.INFO, __file__, 1, "msg", None, None)
        with trial_context("trial-abc"):
            assert TrialIdFilter().filter(record) is True
        assert record.trial_id == "trial-abc"
