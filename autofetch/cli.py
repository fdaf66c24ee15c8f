"""Entry point for autofetch."""
from __future__ import annotations

import argparse
import logging
import time
from typing import Callable

from autofetch.core.config_loader import load_config
from autofetch.core.errors import AutofetchError
from autofetch.core.logger import configure_logging
from autofetch.runner.job import FetchJob

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download a file through WinHttpRequest and register it to open at logon",
    )
    parser.add_argument("url", help="URL to fetch")
    parser.add_argument("--config", default="autofetch.config.yml", help="Path to configuration file")
    parser.add_argument(
        "--no-startup",
        dest="startup",
        action="store_false",
        help="Skip the startup registry entry",
    )
    parser.add_argument("--exit-delay-ms", type=int, help="Override the delay before exiting")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    parser.set_defaults(startup=None)
    return parser


def main(argv: list[str] | None = None, *, job_factory: Callable[..., FetchJob] = FetchJob, sleep: Callable[[float], None] = time.sleep) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    if args.startup is False:
        config.startup.enabled = False
    if args.exit_delay_ms is not None:
        config.exit_delay_ms = max(0, args.exit_delay_ms)

    configure_logging(config.logging.level_value, config.logging.logfile)

    job = job_factory(config)
    try:
        report = job.run(args.url)
    except AutofetchError as exc:
        LOGGER.error("%s", exc)
        return exc.exit_code

    for warning in report.warnings:
        LOGGER.warning("%s", warning)
    LOGGER.info("Run finished: %s bytes at %s", report.bytes_written, report.path)

    if config.exit_delay_ms:
        sleep(config.exit_delay_ms / 1000)
    return 0


__all__ = ["main", "build_arg_parser"]
