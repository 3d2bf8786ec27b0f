#!/usr/bin/env python3
"""
OMSim Experiment Driver
Runs repeated Oral-Messages OM(m) trials and reports whether the loyal
generals reached Byzantine agreement.

Defaults come from the environment (see src/config.py).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from src.config import get_settings
from src.experiment import ExperimentRunner, ExperimentSummary
from src.oral_messages import LoggingEventSink, AlwaysFlipPolicy, ParityFlipPolicy
from src.telemetry import configure_logging

logger = logging.getLogger("omsim.scripts.run_experiments")

RELAY_POLICIES = {
    "parity": ParityFlipPolicy,
    "always-flip": AlwaysFlipPolicy,
}


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="OMSim - Byzantine Generals Oral-Messages experiment driver"
    )
    parser.add_argument(
        "--participants", "-n",
        type=int,
        default=settings.NUM_PARTICIPANTS,
        help=f"Number of generals, commander included. Default: {settings.NUM_PARTICIPANTS}"
    )
    parser.add_argument(
        "--traitors", "-t",
        type=int,
        default=settings.NUM_TRAITORS,
        help=f"Number of traitors. Default: {settings.NUM_TRAITORS}"
    )
    parser.add_argument(
        "--rounds", "-m",
        type=int,
        default=None,
        help="OM(m) rounds. Default: OM_ROUNDS, else the traitor count"
    )
    parser.add_argument(
        "--experiments", "-e",
        type=int,
        default=settings.NUM_EXPERIMENTS,
        help=f"Number of trials. Default: {settings.NUM_EXPERIMENTS}"
    )
    parser.add_argument(
        "--order",
        type=str,
        choices=["attack", "retreat"],
        default=settings.ORIGINAL_ORDER,
        help=f"First commander's order. Default: {settings.ORIGINAL_ORDER}"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=settings.SEED,
        help="Seed for random traitor and commander selection"
    )
    parser.add_argument(
        "--relay-policy",
        type=str,
        choices=sorted(RELAY_POLICIES),
        default="parity",
        help="How traitors falsify relayed orders. Default: parity"
    )
    parser.add_argument(
        "--continue-on-failure",
        action="store_true",
        help="Keep running trials after the first consensus failure"
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Log every send, receive and decide step (DEBUG level)"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the JSON summary to this file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=settings.LOG_LEVEL,
        help=f"Log level. Default: {settings.LOG_LEVEL}"
    )
    return parser


def print_summary(summary: ExperimentSummary):
    bound = summary.config.bound
    print("-" * 60)
    print(
        f"OM({summary.config.rounds}) with {summary.config.num_participants} generals, "
        f"{summary.config.num_traitors} traitors (bound {bound.status.value})"
    )
    print(f"Trials run: {summary.trials_run}")
    print(f"Succeeded:  {summary.successes}")
    print(f"Failed:     {summary.failures}")

    failure = summary.first_failure
    if failure:
        print(
            f"First failure: trial {failure.trial_number} "
            f"(commander #{failure.selection.commander_id}, "
            f"traitors {sorted(failure.selection.traitor_ids)}, "
            f"ic1={failure.report.ic1}, ic2={failure.report.ic2})"
        )
    print("-" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    try:
        parser = build_parser()
    except ValueError as e:
        # Malformed environment defaults; no parser to report through yet
        print(f"run_experiments: error: {e}", file=sys.stderr)
        return 2
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.trace else args.log_level)

    settings = get_settings()
    try:
        config = settings.experiment_config(
            num_participants=args.participants,
            num_traitors=args.traitors,
            m=args.rounds,
            num_experiments=args.experiments,
            original_order=args.order,
            stop_on_first_failure=False if args.continue_on_failure else None,
            seed=args.seed,
        )
    except ValidationError as e:
        parser.error(f"invalid experiment configuration:\n{e}")

    runner = ExperimentRunner(
        config=config,
        relay_policy=RELAY_POLICIES[args.relay_policy](),
    )
    if args.trace:
        runner.on_event(LoggingEventSink())

    summary = runner.run()
    print_summary(summary)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(summary.to_dict(), f, indent=2)
        logger.info(f"Summary written to {output_path}")

    return 0 if summary.all_successful else 1


if __name__ == "__main__":
    sys.exit(main())
