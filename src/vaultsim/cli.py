"""CLI entrypoint for the compounding workbench.

Usage::

    vaultsim
    vaultsim --config my_scenario.yaml --csv cycles.csv --json run.json
    vaultsim --scenario losing_strategy --log-level DEBUG
    vaultsim --compare high_reward_share flat_market

Exit status is 0 when every invariant holds, 1 when an invariant is
violated and 2 when the run aborted.
"""

import argparse
import logging
import sys
from typing import List, Optional

import yaml
from pydantic import ValidationError

from .analysis.scenarios import SCENARIO_LIBRARY, ScenarioRunner, format_comparison_table
from .config.loader import load_config
from .errors import FixedPointError, ScenarioAborted
from .reporting.export import export_csv, export_json
from .simulation.runner import SimulationRunner

EXIT_OK = 0
EXIT_VIOLATION = 1
EXIT_ABORTED = 2


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="vaultsim",
        description="Run a compounding scenario and verify that the depositor is no worse off.",
    )
    parser.add_argument(
        "--config",
        default=None,
        type=str,
        help="Path to the YAML configuration file (default: packaged defaults).",
    )
    parser.add_argument(
        "--scenario",
        default=None,
        choices=sorted(SCENARIO_LIBRARY),
        help="Apply a predefined scenario on top of the config.",
    )
    parser.add_argument(
        "--compare",
        nargs="+",
        default=None,
        metavar="SCENARIO",
        help="Compare predefined scenarios against the base config and print a table.",
    )
    parser.add_argument(
        "--csv",
        default=None,
        type=str,
        help="Write per-cycle metrics to this CSV file.",
    )
    parser.add_argument(
        "--json",
        default=None,
        type=str,
        help="Write the full run (config, cycles, verification) to this JSON file.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser.parse_args(argv)


def _setup_logging(level: str) -> None:
    """Configure root logger with a clean format."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Loading config from '%s'...", args.config or "packaged defaults")

    try:
        config = load_config(args.config)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_ABORTED

    runner = ScenarioRunner(config)

    if args.compare:
        unknown = [name for name in args.compare if name not in SCENARIO_LIBRARY]
        if unknown:
            logger.error("Unknown scenario(s): %s", ", ".join(unknown))
            return EXIT_ABORTED
        try:
            comparison = runner.compare_scenarios(args.compare)
        except (ScenarioAborted, FixedPointError) as exc:
            logger.error("Comparison aborted: %s", exc)
            return EXIT_ABORTED
        print(format_comparison_table(comparison))
        all_passed = all(s['passed'] for s in comparison.summary.values())
        return EXIT_OK if all_passed else EXIT_VIOLATION

    try:
        if args.scenario:
            result = runner.run_scenario(args.scenario)
        else:
            result = SimulationRunner(config).run()
    except (ScenarioAborted, FixedPointError) as exc:
        logger.error("Run aborted: %s", exc)
        return EXIT_ABORTED

    metrics = result.final_metrics()
    logger.info(
        "Final value %s (baseline %s) after %d cycles",
        metrics['final_value'],
        metrics['baseline_value'],
        metrics['cycles'],
    )

    if args.csv:
        export_csv(result, args.csv)
        logger.info("Wrote per-cycle metrics to %s", args.csv)
    if args.json:
        export_json(result, args.json)
        logger.info("Wrote run to %s", args.json)

    if not result.passed:
        for violation in result.verification.violations:
            print(f"FAILED {violation.describe()}")
        return EXIT_VIOLATION
    print(f"PASSED {len(result.verification.checked)} invariants")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
