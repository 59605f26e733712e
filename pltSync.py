#!/usr/bin/env python3
#****************************************************************************************************************************************************
#* BSD 3-Clause License
#*
#* Copyright (c) 2025, Mana Battery
#* All rights reserved.
#*
#* Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
#*
#* 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
#* 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
#*    documentation and/or other materials provided with the distribution.
#* 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
#*    software without specific prior written permission.
#*
#* THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
#* THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
#* CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
#* PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
#* LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
#* EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#****************************************************************************************************************************************************

"""Build or update the dialyzer PLT for a Mix project.

Reads the dialyzer settings from the project's mix.exs, then makes sure the
PLT exists and records every required application:

  - no PLT file: build one with the core Erlang/OTP applications
    (erts kernel stdlib crypto public_key), plt_add_apps, optionally the
    project's dependencies, and the Elixir standard libraries
  - PLT present but missing applications: add just the missing ones
  - otherwise: "Nothing to do."

Every dialyzer command line is printed before it runs, followed by its output.

Requirements:
    - Python 3.8+
    - Erlang/OTP (dialyzer, erl) and Elixir on PATH
    - colorama, packaging

Usage:
    pltSync.py [--project-dir DIR] [--no-color] [--verbose] [--check-env]

Positional arguments are accepted and ignored.

Exit Codes:
    0: Success
    1: Invalid arguments or project configuration
    2: Toolchain or PLT could not be queried
    3: dialyzer returned a non-zero exit status
"""

import os
import sys
import json
import signal
import logging
import argparse
from typing import Any, List, Optional

__version__ = "1.0.0"
__author__ = "Mana Battery"

from pltlib.color_utils import Colors, print_error, print_warning, should_use_color
from pltlib.constants import (
    EXIT_SUCCESS,
    EXIT_INVALID_ARGS,
    EXIT_RUNTIME_ERROR,
    EXIT_KEYBOARD_INTERRUPT,
    DialyzerFailedError,
    PltSyncError,
)
from pltlib.package_verification import check_all_packages
from pltlib.plt_sync import PltSynchronizer, SyncReport
from pltlib.project_config import load_project_config
from pltlib.tool_detection import check_all_tools
from pltlib.toolchain import detect_toolchain

# Export for tests
__all__ = ["EXIT_SUCCESS", "main", "run_sync"]

logger = logging.getLogger(__name__)


def signal_handler(signum: int, frame: Any) -> None:
    """Handle SIGINT and SIGTERM gracefully."""
    print_warning(f"\nReceived {signal.Signals(signum).name}. Exiting...", prefix=False)
    sys.exit(EXIT_KEYBOARD_INTERRUPT)


def check_environment() -> int:
    """Report Python package and external tool availability."""
    packages_ok = check_all_packages()
    tools = check_all_tools()
    print(json.dumps({"tools": tools}, indent=2))

    missing_tools = [name for name in ("dialyzer", "erl", "elixir") if name not in tools]
    if missing_tools:
        print_error(f"Missing external tools: {', '.join(missing_tools)}")
    return EXIT_SUCCESS if packages_ok and not missing_tools else EXIT_RUNTIME_ERROR


def run_sync(project_dir: str) -> SyncReport:
    """Load the project's PLT settings and run one sync pass.

    Raises:
        ConfigError: If mix.exs is missing or malformed
        ToolchainError: If the OTP/Elixir facts cannot be queried
        ArtifactUnreadableError: If the PLT's file list cannot be read
        DialyzerFailedError: If a dialyzer invocation returned non-zero
    """
    config = load_project_config(project_dir)
    toolchain = detect_toolchain()
    synchronizer = PltSynchronizer(config, toolchain)

    report = synchronizer.sync()
    failure = report.first_failure()
    if failure is not None:
        raise DialyzerFailedError(f"dialyzer exited with code {failure.exit_code}: {failure.command_line}", failure.exit_code)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the script.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    parser = argparse.ArgumentParser(
        description="Build or update the dialyzer PLT for a Mix project.",
        epilog=f"Version {__version__}\n\nExamples:\n"
        f"  %(prog)s\n"
        f"  %(prog)s --project-dir ../my_app\n"
        f"  %(prog)s --check-env\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--project-dir", default=".", metavar="DIR", help="Directory containing mix.exs (default: current directory)")

    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output to stderr")

    parser.add_argument("--check-env", action="store_true", help="Check Python packages and Erlang/Elixir tools, then exit")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # The task takes no positional arguments; anything extra is ignored
    args, ignored = parser.parse_known_args(argv)

    if not should_use_color(no_color=args.no_color):
        Colors.disable()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", stream=sys.stderr)

    if ignored:
        logger.debug("Ignoring arguments: %s", ignored)

    if args.check_env:
        return check_environment()

    if not os.path.isdir(args.project_dir):
        print_error(f"Project directory '{args.project_dir}' does not exist")
        return EXIT_INVALID_ARGS

    try:
        run_sync(args.project_dir)
    except KeyboardInterrupt:
        print_warning("\nInterrupted by user.", prefix=False)
        return EXIT_KEYBOARD_INTERRUPT
    except PltSyncError as e:
        print_error(str(e))
        return e.exit_code
    except OSError as e:
        print_error(f"Unexpected failure: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
