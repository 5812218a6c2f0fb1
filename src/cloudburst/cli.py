#!/usr/bin/env python3
# cli.py: command line entry point for cloudburst

import argparse
import logging
import os
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from cloudburst.config import RunConfig
from cloudburst.core import RequestDispatcher
from cloudburst.errors import SetupError
from cloudburst.logging_config import setup_logging
from cloudburst.persistence import export_response_times
from cloudburst.utils import GracefulKiller

logger = logging.getLogger(__name__)

DEFAULTS = RunConfig.model_fields


def _env(name: str, field: str):
    """Default for `field`, overridable via CLOUDBURST_<name>."""
    value = os.getenv(f"CLOUDBURST_{name}")
    return value if value is not None else DEFAULTS[field].default


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cloudburst: simultaneously send paced bursts of HTTP requests and report latencies",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-i",
        "--input",
        required=True,
        help="File with one target URL per line",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=_env("LIMIT", "limit"),
        help="Number of requests to send",
    )
    parser.add_argument(
        "-p",
        "--prefix",
        default=_env("PREFIX", "prefix"),
        help="Prefix prepended to every URL",
    )

    # Pacing
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=_env("CHUNK_SIZE", "chunk_size"),
        help="Requests per chunk, spread over TIME_RANGE. Also the number of workers",
    )
    parser.add_argument(
        "--time-range",
        type=int,
        default=_env("TIME_RANGE_MS", "time_range"),
        help="Window in milliseconds that one chunk of requests is spread over",
    )
    parser.add_argument(
        "--min-time-distance",
        type=int,
        default=_env("MIN_DISTANCE_MS", "min_distance"),
        help="Minimum time between two requests in milliseconds",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Send one request at a time, waiting for each response",
    )

    # Requests
    parser.add_argument(
        "--timeout",
        type=int,
        default=_env("TIMEOUT_MS", "timeout"),
        help="Timeout of a request in milliseconds",
    )
    parser.add_argument(
        "-X",
        "--method",
        choices=["GET", "POST"],
        default=_env("METHOD", "method"),
        help="HTTP method",
    )
    parser.add_argument(
        "-d",
        "--data",
        default=None,
        help="File with one POST body per line (required for POST)",
    )
    parser.add_argument(
        "--repeat",
        action="store_true",
        help="Start over at the first body once the data file is used up",
    )
    parser.add_argument(
        "--success-code",
        type=int,
        default=_env("SUCCESS_CODE", "success_code"),
        help="Status code counted as a success",
    )

    # Output
    parser.add_argument(
        "-o",
        "--output",
        default=_env("OUTPUT", "output"),
        help="Output path for response bodies ('stdout' to print them)",
    )
    parser.add_argument(
        "--no-body",
        action="store_true",
        help="Skip getting the body of responses",
    )
    parser.add_argument(
        "--response-time-output",
        default=_env("RESPONSE_TIME_OUTPUT", "response_time_output"),
        help="Output path for raw response times as JSON ('' to disable)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not show the progress bar",
    )

    # Logging & Debugging
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file to write logs to (e.g., cloudburst.log)",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        input_file=args.input,
        prefix=args.prefix,
        limit=args.limit,
        chunk_size=args.chunk_size,
        time_range=args.time_range,
        min_distance=args.min_time_distance,
        timeout=args.timeout,
        sequential=args.sequential,
        no_body=args.no_body,
        method=args.method,
        payload_file=args.data,
        repeat_payload=args.repeat,
        success_code=args.success_code,
        output=args.output,
        response_time_output=args.response_time_output,
    )


def run(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    log_level = "DEBUG" if args.debug else "INFO"
    setup_logging(level=log_level, log_file=args.log_file)

    try:
        config = config_from_args(args)
    except ValidationError as e:
        logger.error(f"Invalid configuration:\n{e}")
        return 2

    dispatcher = RequestDispatcher(
        config,
        graceful_killer=GracefulKiller(),
        use_progress_bar=not args.no_progress,
    )
    try:
        dispatcher.run()
    except SetupError as e:
        logger.error(str(e))
        return 1

    print(dispatcher.report())
    if config.response_time_output:
        export_response_times(config.response_time_output, dispatcher.aggregator)
    return 0


def main():
    sys.exit(run())

if __name__ == "__main__":
    main()
