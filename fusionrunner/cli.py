"""Command-line interface for fusionrunner."""

import argparse
import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config
from .context import ExecutionContext
from .errors import ConfigurationError, ExecutionError, MarkerIOError, ToolNotFoundError
from .pipeline import NORMAL, QUIET, SUCCEEDED, VERBOSE, Pipeline
from .steps import build_steps, required_tools
from .utils import check_external_tools, get_tool_version
from .validators import validate_directory, validate_positive_int, validate_read_files
from .version import __version__

logger = logging.getLogger("fusionrunner")

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

EXIT_CONFIGURATION = 1
EXIT_MARKER_IO = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the fusionrunner CLI."""
    parser = argparse.ArgumentParser(
        description=(
            "fusionrunner: Align reads, call and filter gene fusions, resuming after failures."
        )
    )

    # General Options
    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"fusionrunner {__version__}",
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
        help="Path to configuration file with step templates",
        default=None,
    )
    verbosity = general_group.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Do not report skipped or started steps"
    )
    verbosity.add_argument(
        "--verbose",
        action="store_true",
        help="Also print each command line before it is run",
    )

    # Core Input/Output
    io_group = parser.add_argument_group("Core Input/Output")
    io_group.add_argument("-1", "--reads1", help="FASTQ file with the first (or only) reads")
    io_group.add_argument("-2", "--reads2", help="FASTQ file with the mate reads")
    io_group.add_argument(
        "-o",
        "--output-dir",
        help="Directory to store intermediate and final output files",
        default="output",
    )
    io_group.add_argument(
        "--marker-dir",
        help="Directory for completion markers (default: the output directory)",
        default=None,
    )
    io_group.add_argument(
        "--stdout-log",
        help="Append the standard output of all tools to this file instead of the terminal",
        default=None,
    )

    # References & Parameters
    ref_group = parser.add_argument_group("References & Parameters")
    ref_group.add_argument("--genome-dir", help="STAR genome index directory")
    ref_group.add_argument("--genome-lib-dir", help="Fusion caller genome resource library")
    ref_group.add_argument("-t", "--threads", type=int, help="Number of threads for each tool")
    ref_group.add_argument(
        "--min-junction-reads",
        type=int,
        help="Minimum number of junction reads for a fusion to pass filtering",
    )
    ref_group.add_argument(
        "--reads-command",
        help="Decompression command STAR uses to read the input, e.g. 'zcat'",
    )

    # Resume & Execution
    run_group = parser.add_argument_group("Resume & Execution")
    run_group.add_argument(
        "--dry-run",
        action="store_true",
        help="List the steps that would run without executing them",
    )
    run_group.add_argument(
        "--show-status",
        action="store_true",
        help="Show which steps have completion markers and exit",
    )
    run_group.add_argument(
        "--verify-invocations",
        action="store_true",
        help="Re-run steps whose command line changed since their marker was written",
    )
    run_group.add_argument(
        "--skip-checks",
        action="store_true",
        help="Do not check for tools in PATH or for reference directories",
    )
    run_group.add_argument(
        "--shell",
        default="bash",
        help="Shell used to run step command lines (must support 'set -o pipefail')",
    )

    return parser


def parse_args(args_list=None):
    """
    Parse command-line arguments.

    Parameters
    ----------
    args_list : list, optional
        Arguments to parse instead of sys.argv

    Returns
    -------
    argparse.Namespace
        Parsed arguments
    """
    parser = create_parser()
    return parser.parse_args(args_list)


def configure_logging(log_level: str, log_file: Optional[str] = None) -> None:
    """Set the fusionrunner log level and add an optional file handler."""
    logger.setLevel(LOG_LEVEL_MAP[log_level])

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(log_file)
        fh.setLevel(LOG_LEVEL_MAP[log_level])
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {log_file}")


def collect_parameters(
    args: argparse.Namespace, cfg: Dict[str, Any], reads: List[str]
) -> Dict[str, Any]:
    """Merge CLI arguments over configuration values for template rendering."""
    output_dir = os.path.abspath(args.output_dir)
    params = {
        "reads": reads,
        "output_dir": output_dir,
        "genome_dir": args.genome_dir,
        "genome_lib_dir": args.genome_lib_dir,
        "threads": args.threads,
        "min_junction_reads": args.min_junction_reads,
        "reads_command": args.reads_command,
    }
    merged = {k: v for k, v in cfg.items() if k != "steps"}
    merged.update({k: v for k, v in params.items() if v is not None})
    return merged


def build_pipeline(args: argparse.Namespace, cfg: Dict[str, Any], reads: List[str]) -> Pipeline:
    """Render the configured steps and append them to a new Pipeline."""
    if args.quiet:
        verbosity = QUIET
    elif args.verbose:
        verbosity = VERBOSE
    else:
        verbosity = NORMAL

    params = collect_parameters(args, cfg, reads)
    marker_dir = args.marker_dir or params["output_dir"]
    context = ExecutionContext(stdout=args.stdout_log)

    pipeline = Pipeline(
        marker_dir,
        verbosity=verbosity,
        context=context,
        verify_invocation=args.verify_invocations,
        shell=args.shell,
    )
    pipeline.extend(build_steps(cfg, params))
    return pipeline


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the fusionrunner CLI.

    Steps:
        1. Parse arguments and configure logging.
        2. Load the configuration with the step templates.
        3. Validate inputs and check that the step tools are installed.
        4. Render the steps and run the pipeline, skipping steps whose
           completion marker already exists.

    Returns
    -------
    int
        0 on success, the failing tool's exit status when a step fails,
        1 for invalid configuration or inputs, 2 when markers cannot be
        read or written, 130 when interrupted.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    logger.debug(f"CLI arguments: {args}")

    try:
        cfg = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Cannot load configuration: {e}")
        return EXIT_CONFIGURATION
    logger.debug(f"Configuration loaded: {cfg}")

    try:
        if args.show_status:
            reads = [os.path.abspath(r) for r in (args.reads1, args.reads2) if r]
            pipeline = build_pipeline(args, cfg, reads)
            print(f"Completion markers in {pipeline.markers.directory}:")
            print(pipeline.status().to_string(index=False))
            return 0

        reads = validate_read_files([args.reads1, args.reads2])
        params = collect_parameters(args, cfg, reads)
        validate_positive_int(params.get("threads", 1), "threads")

        if not args.skip_checks:
            for key, description in (
                ("genome_dir", "Genome index directory"),
                ("genome_lib_dir", "Genome resource library"),
            ):
                if key in params:
                    validate_directory(params[key], description)
            tools = required_tools(cfg)
            check_external_tools(tools)
            for tool in tools:
                logger.debug(f"{tool} version: {get_tool_version(tool)}")

        pipeline = build_pipeline(args, cfg, reads)

        if args.dry_run:
            table = pipeline.status()
            pending = int((table["state"] == "pending").sum())
            print(table.to_string(index=False))
            print(f"{pending} of {len(pipeline)} steps would run.")
            return 0

        os.makedirs(params["output_dir"], exist_ok=True)
        start_time = datetime.datetime.now()
        logger.info(f"Run started at {start_time.isoformat()}")
        outcomes = pipeline.run()
        executed = sum(1 for outcome in outcomes if outcome.status == SUCCEEDED)
        elapsed = (datetime.datetime.now() - start_time).total_seconds()
        logger.info(
            f"Pipeline finished in {elapsed:.1f}s: {executed} step(s) run, "
            f"{len(outcomes) - executed} skipped"
        )
        return 0

    except ExecutionError as e:
        logger.error(f"Pipeline failed: {e}")
        logger.error(
            f"Completed steps keep their markers; re-run the same command to resume at "
            f"'{e.stage}'."
        )
        if 0 < e.returncode < 256:
            return e.returncode
        return 1
    except MarkerIOError as e:
        logger.error(f"Pipeline failed: {e}")
        return EXIT_MARKER_IO
    except (ConfigurationError, ToolNotFoundError) as e:
        logger.error(f"{e}")
        return EXIT_CONFIGURATION
    except KeyboardInterrupt:
        logger.error("Interrupted; the running step will be repeated on the next run.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
