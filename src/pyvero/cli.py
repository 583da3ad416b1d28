#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback
from collections.abc import Callable, Sequence
from typing import Any

from pyvero.config.system_config_settings import SystemConfigSettings
from pyvero.demos.gen_capture_pcap import COMMAND_NAME, GenCapturePcap
from pyvero.lib.types import ExitCode
from pyvero.startup.startup import StartUp
from pyvero.version import __version__ as PYVERO_VERSION

EXIT_SUCCESS: ExitCode          = ExitCode(0)
EXIT_COMMAND_FAILED: ExitCode   = ExitCode(1)
EXIT_UNCAUGHT_ERROR: ExitCode   = ExitCode(2)

logger = logging.getLogger(__name__)

RunnerFactory = Callable[..., Any]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyvero",
        usage="%(prog)s <command> [<command> ...] [options]",
        description="Run the generator and capture demo against a VERO appliance.",
        epilog=f"Example: %(prog)s {COMMAND_NAME} -b http://localhost",
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"{PYVERO_VERSION}",
        help="Show pyvero version and exit.",
    )

    parser.add_argument(
        "commands",
        nargs="+",
        choices=[COMMAND_NAME],
        metavar="command",
        help=f"Demo to run ({COMMAND_NAME}: run the generator and capture script). "
             "Repeating a command runs it again only if the previous run failed.",
    )

    parser.add_argument("-b", "--address", required=True, help="Name or IP address of the host")
    parser.add_argument("-u", "--username", default=SystemConfigSettings.appliance_username(), help="The user")
    parser.add_argument("-p", "--password", default=SystemConfigSettings.appliance_password(), help="The password")

    parser.add_argument(
        "--profile",
        type=int,
        default=None,
        help="Generator profile number (1-based). Prompts when omitted.",
    )

    parser.add_argument(
        "--capture",
        action="store_true",
        help="Record a capture once the minimum link rate is reached.",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level (default: from system.json).",
    )

    return parser


async def run_commands(args: argparse.Namespace, runner_factory: RunnerFactory = GenCapturePcap) -> ExitCode:
    """
    Run each requested command in order.

    The first command that succeeds ends the run with EXIT_SUCCESS. A failing
    command is reported and the next one is tried.
    """
    for command in args.commands:
        if command != COMMAND_NAME:
            continue
        try:
            runner = runner_factory(
                args.address,
                args.username,
                args.password,
                profile_number=args.profile,
                capture=args.capture,
            )
            await runner.run()
            logger.info("%s finished", command)
            return EXIT_SUCCESS
        except Exception as exc:
            logger.error("%s failed: %s", command, exc)
            print(f"Error: {exc}")

    return EXIT_COMMAND_FAILED


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        StartUp.initialize(log_level=args.log_level)
        return asyncio.run(run_commands(args))
    except Exception as exc:
        sys.stderr.write(f"Error: {exc} {traceback.format_exc()}\n")
        return EXIT_UNCAUGHT_ERROR


if __name__ == "__main__":
    sys.exit(main())
