"""Command-line interface for minionpipe."""

import argparse
import datetime
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config, merge_overrides
from .pipeline import build_run_context, plan_pipeline, run_pipeline
from .pipeline_core import RunStatus
from .pipeline_core.error_handling import ConfigError, PipelineError
from .utils import configure_logging
from .version import __version__

logger = logging.getLogger("minionpipe")


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the minionpipe CLI."""
    parser = argparse.ArgumentParser(
        description="minionpipe: ONT reads to small and structural variant calls."
    )

    # General Options
    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"minionpipe {__version__}",
        help="Show the current version and exit",
    )
    general_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )
    general_group.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )
    general_group.add_argument(
        "-c",
        "--config",
        help="Path to configuration file (default: packaged config.json)",
        default=None,
    )

    # Run overrides; every value has a default in the configuration file
    run_group = parser.add_argument_group("Run Overrides")
    run_group.add_argument("--work-dir", help="Working directory holding all artifacts")
    run_group.add_argument("--input-dir", help="Directory with raw FASTQ parts")
    run_group.add_argument("--input-glob", help="Glob selecting raw FASTQ parts")
    run_group.add_argument("--reference", help="Reference FASTA")
    run_group.add_argument(
        "--threads",
        type=_threads_arg,
        help="Threads passed to each external tool (integer or 'auto')",
    )

    # Execution
    exec_group = parser.add_argument_group("Execution")
    exec_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Print every stage's commands and exit without running them",
    )
    exec_group.add_argument(
        "--check-tools",
        action="store_true",
        help="Verify the external tools are on PATH before starting",
    )
    return parser


def _threads_arg(value: str) -> Any:
    if value == "auto":
        return value
    try:
        threads = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid thread count: {value!r}")
    if threads < 1:
        raise argparse.ArgumentTypeError(f"thread count must be positive: {threads}")
    return threads


def parse_args(args_list: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args_list : list of str, optional
        Arguments to parse; defaults to sys.argv

    Returns
    -------
    argparse.Namespace
        Parsed arguments
    """
    parser = create_parser()
    return parser.parse_args(args_list)


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the minionpipe CLI.

    Steps:
        1. Parse arguments and configure logging.
        2. Load the configuration and apply CLI overrides.
        3. Build the run context (validates inputs).
        4. Run the stage catalog, or print it with --dry-run.
        5. Report COMPLETE or the failing stage, exit code and log.
    """
    args = parse_args(argv)

    if args.log_file:
        Path(args.log_file).parent.mkdir(parents=True, exist_ok=True)
    configure_logging(args.log_level, args.log_file)

    start_time = datetime.datetime.now()
    logger.info(f"Run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    try:
        cfg: Dict[str, Any] = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    cfg = merge_overrides(
        cfg,
        {
            "work_dir": args.work_dir,
            "input_dir": args.input_dir,
            "input_glob": args.input_glob,
            "reference": args.reference,
            "threads": args.threads,
        },
    )
    logger.debug(f"Configuration loaded: {cfg}")

    if args.dry_run:
        try:
            context = build_run_context(cfg)
        except ConfigError as e:
            logger.error(f"Configuration error: {e}")
            return 1
        for stage_name, commands in plan_pipeline(context):
            print(f"[{stage_name}]")
            for argv_ in commands:
                print("  " + " ".join(argv_))
        return 0

    # SIGTERM from a scheduler ends the run like Ctrl-C: child terminated, run FAILED
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    try:
        run = run_pipeline(cfg, check_tools=args.check_tools)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Run interrupted between stages")
        return 1

    elapsed = datetime.datetime.now() - start_time
    if run.status is RunStatus.COMPLETE:
        logger.info(f"Run finished successfully in {elapsed}")
        return 0

    logger.error(f"Run {run.describe()}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
