# File: src/smartpark/main.py
"""
Main application entry point for the SmartPark allocation engine
Parses the command line, configures logging and dispatches to the console
"""

from typing import List, Optional
import argparse
import logging
import os
import sys

from .config import ParkingConfig, load_config
from .infrastructure.factories import AllocationStrategyFactory
from .presentation.cli import run_compare, run_demo, run_interactive


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartpark",
        description="SmartPark - parking spot allocation engine."
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (defaults to the config file value, else INFO).",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write the log to this file.",
    )

    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("demo", "Run the scripted demonstration."),
        ("interactive", "Start the interactive menu."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--strategy",
            type=str,
            default=None,
            choices=AllocationStrategyFactory.available_types(),
            help="Allocation strategy.",
        )
        sub.add_argument(
            "--config",
            type=str,
            default=None,
            help="YAML configuration file (settings and optional layout).",
        )

    compare = subparsers.add_parser("compare", help="Check that both strategies agree on random lots.")
    compare.add_argument("--trials", type=int, default=200, help="Number of random lots.")
    compare.add_argument("--spots", type=int, default=60, help="Spots per random lot.")
    compare.add_argument("--seed", type=int, default=None, help="Random seed.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "demo"

    config = None
    config_path = getattr(args, "config", None)
    if config_path:
        try:
            config = load_config(config_path)
        except (OSError, ValueError) as e:
            parser.error(f"Cannot load config {config_path}: {e}")

    level = args.log_level or (config.log_level if config else "INFO")
    logger = setup_logging(level, args.log_file)
    logger.info(f"Starting SmartPark ({command})")

    if command == "compare":
        if args.trials < 1 or args.spots < 1:
            parser.error("--trials and --spots must be positive")
        return run_compare(trials=args.trials, seed=args.seed, spots=args.spots)

    strategy = getattr(args, "strategy", None) or (config or ParkingConfig()).default_strategy
    if command == "interactive":
        return run_interactive(strategy, config)
    return run_demo(strategy, config)


if __name__ == "__main__":
    sys.exit(main())
