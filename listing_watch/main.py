"""
Main entry point for the Listing Watch system.
"""

import argparse
import sys
from typing import List, Optional

from .orchestrator import ChangeDetectionOrchestrator, RunOutcome
from .services.aws_parameters import resolve_runtime_values
from .services.config_manager import ConfigurationManager
from .utils.error_handling import ConfigError, get_error_tracker
from .utils.logging import get_logger, setup_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check a listing page for changes and email a report"
    )
    parser.add_argument("config", nargs="?", help="Path to configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and compare only; do not update the store or send email",
    )
    return parser.parse_args(argv)


def run(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    dry_run: bool = False,
) -> int:
    """
    Load configuration and perform one run.

    Returns:
        Process exit code: 0 when the run completed, 1 when it was aborted.
    """
    try:
        config = ConfigurationManager(config_path).load_config()
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(log_dir=config.log_dir, log_level=log_level or config.log_level)
    logger = get_logger("main")
    logger.info(
        "Starting Listing Watch",
        extra={"config_path": config_path, "dry_run": dry_run},
    )

    try:
        resolve_runtime_values(config, include_secrets=not dry_run)
        orchestrator = ChangeDetectionOrchestrator.from_config(config, dry_run=dry_run)
    except ConfigError as e:
        logger.critical("Configuration incomplete", extra={"error": e.message})
        return 1

    report = orchestrator.run()
    logger.info(
        "Run finished",
        extra={
            "outcome": report.outcome.value,
            "run_id": report.run_id,
            "errors": get_error_tracker().get_error_stats(),
        },
    )

    if report.outcome == RunOutcome.FAILED:
        return 1
    return 0


def main(argv: Optional[List[str]] = None):
    """Main application entry point."""
    args = parse_args(argv)
    try:
        exit_code = run(args.config, log_level=args.log_level, dry_run=args.dry_run)
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        exit_code = 1
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
