#!/usr/bin/env python3
"""Configure an emission program, advance time, claim as a whale and verify the payout."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src import config as cfg
from src import emission_constants as const
from src.collaborators import ScenarioCollaborators
from src.fork import build_fork_collaborators
from src.report import write_report
from src.scenario import ScenarioConfig, ScenarioStepFailed, run_claim_scenario
from src.schedule import EmissionTarget
from src.simulated import build_simulated_world
from src.verification import AssertionMode

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

SIMULATED_ADDRESSES = cfg.ForkAddresses(
    reward_token="0x" + "11" * 20,
    reward_oracle="0x" + "22" * 20,
    emission_manager="0x" + "33" * 20,
    rewards_controller="0x" + "44" * 20,
    transfer_strategy="0x" + "55" * 20,
    emission_admin="0x" + "66" * 20,
    reward_whale="0x" + "77" * 20,
    incentivized_asset="0x" + "88" * 20,
    claimant="0x" + "99" * 20,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--rpc-url",
        default=cfg.FORK_RPC_URL,
        help=f"Forked node JSON-RPC endpoint (default: {cfg.FORK_RPC_URL}).",
    )
    parser.add_argument(
        "--node-kind",
        choices=["anvil", "hardhat"],
        default="anvil",
        help="Dev node whose cheat-code namespace the fork uses (default: anvil).",
    )
    parser.add_argument(
        "--program-total",
        type=int,
        default=const.DEFAULT_PROGRAM_TOTAL // const.WAD,
        help="Reward tokens to distribute, in whole tokens (default: 10000).",
    )
    parser.add_argument(
        "--duration-days",
        type=int,
        default=const.DEFAULT_DURATION_DAYS,
        help="Distribution window in days (default: 60).",
    )
    parser.add_argument(
        "--advance-days",
        type=int,
        default=const.DEFAULT_ADVANCE_DAYS,
        help="Days to advance before claiming (default: 30).",
    )
    parser.add_argument(
        "--tolerance",
        type=int,
        default=const.DEFAULT_TOLERANCE // const.WAD,
        help="Accepted deviation in whole tokens (default: 2000).",
    )
    parser.add_argument(
        "--assertion-mode",
        choices=[mode.value for mode in AssertionMode],
        default=AssertionMode.ACCRUAL_PROXIMITY.value,
        help="balance: compare balances before/after; accrual: compare the claimed "
        "delta with rate * elapsed; both: require both (default: accrual).",
    )
    parser.add_argument(
        "--simulated",
        action="store_true",
        help="Run against the in-memory chain instead of a fork.",
    )
    parser.add_argument(
        "--write-report",
        action="store_true",
        help="Write schedule and outcome CSVs under out/.",
    )
    return parser.parse_args()


def _simulated_collaborators(
    addresses: cfg.ForkAddresses, program_total: int
) -> ScenarioCollaborators:
    world = build_simulated_world(
        reward_token=addresses.reward_token,
        reward_oracle=addresses.reward_oracle,
        transfer_strategy=addresses.transfer_strategy,
        emission_admin=addresses.emission_admin,
        whale=addresses.reward_whale,
        whale_reward_balance=program_total,
    )
    world.controller.set_holding(addresses.incentivized_asset, addresses.claimant, 1_000 * const.WAD)
    return world.collaborators()


def main() -> None:
    args = parse_args()
    program_total = args.program_total * const.WAD

    if args.simulated:
        addresses = SIMULATED_ADDRESSES
        collaborators = _simulated_collaborators(addresses, program_total)
    else:
        try:
            addresses = cfg.load_fork_addresses()
        except ValueError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            sys.exit(1)
        collaborators = build_fork_collaborators(
            args.rpc_url, addresses, cheat_prefix=args.node_kind
        )

    scenario_config = ScenarioConfig(
        targets=(EmissionTarget(addresses.incentivized_asset, program_total),),
        reward_asset=addresses.reward_token,
        reward_oracle=addresses.reward_oracle,
        transfer_strategy=addresses.transfer_strategy,
        emission_admin=addresses.emission_admin,
        funder=addresses.reward_whale,
        claimant=addresses.claimant,
        program_total=program_total,
        duration_seconds=args.duration_days * const.SECONDS_PER_DAY,
        advance_seconds=args.advance_days * const.SECONDS_PER_DAY,
        tolerance=args.tolerance * const.WAD,
        assertion_mode=AssertionMode(args.assertion_mode),
    )

    try:
        report = run_claim_scenario(scenario_config, collaborators)
    except ScenarioStepFailed as exc:
        logger.error("Scenario aborted at stage '%s'", exc.stage.value)
        for key, value in exc.values.items():
            logger.error("  %s: %s", key, value)
        sys.exit(1)

    print(
        f"Claimed {report.claimed_amount} after {report.elapsed_seconds}s "
        f"(expected {report.outcome.expected_accrued}, tolerance {report.outcome.tolerated_deviation})"
    )
    if args.write_report:
        schedule_path, outcome_path = write_report(report, scenario_config.duration_seconds)
        print(f"Wrote {schedule_path} and {outcome_path}")


if __name__ == "__main__":
    main()
