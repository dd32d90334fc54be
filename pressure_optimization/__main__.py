"""Command-line harness: solve a reference scenario and log the result."""

from __future__ import annotations
import argparse
import logging
from typing import Optional, Sequence

from pressure_optimization.branch_bound.solver import DEFAULT_MAX_TESTS, solve_with_report
from pressure_optimization.config import TransferConfig
from pressure_optimization.logging_config import setup_logging
from pressure_optimization.scenarios import SCENARIOS, build_state

logger = logging.getLogger("pressure_optimization.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pressure_optimization",
        description="Plan donor -> target pressure-equalization transfers.",
    )
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="five_targets")
    parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="maximum number of transfers (default: scenario depth)",
    )
    parser.add_argument("--chunks", type=int, default=1, help="number of parallel chunks")
    parser.add_argument("--max-tests", type=int, default=DEFAULT_MAX_TESTS)
    parser.add_argument("--executor", choices=("process", "thread", "inline"), default="process")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--early-stopping", action="store_true",
                        help="clip transfers at the target's max pressure")
    parser.add_argument("--deduplicate", action="store_true",
                        help="skip states already visited through another transfer order")
    parser.add_argument("--timing", action="store_true", help="log a timing report")
    parser.add_argument("--log-level", default="INFO",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    parser.add_argument("--log-file", default=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    config = TransferConfig(allow_early_stopping=args.early_stopping)
    state = build_state(args.scenario, config)
    depth = args.depth if args.depth is not None else SCENARIOS[args.scenario].default_depth

    logger.info("Initial state:\n%s", state)
    result = solve_with_report(
        state,
        depth,
        num_chunks=args.chunks,
        max_tests=args.max_tests,
        executor=args.executor,
        max_workers=args.workers,
        deduplicate_states=args.deduplicate,
        enable_performance_logging=args.timing,
    )
    logger.info("Status: %s", result.status.value)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
