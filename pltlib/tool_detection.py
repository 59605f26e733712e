#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
"""External tool detection for plt-sync.

Locates the Erlang/Elixir executables plt-sync shells out to (dialyzer, erl,
elixir) and records the version each one reports.

Detection results are cached within the Python process so repeated lookups
do not spawn new subprocesses.

CLI Interface:
    python3 -m pltlib.tool_detection --find-<tool>    # Output command name, exit 0/1
    python3 -m pltlib.tool_detection --check-all      # Output JSON with all tools
    python3 -m pltlib.tool_detection --verbose        # Enable debug logging
"""

import sys
import json
import shutil
import logging
import argparse
import subprocess
from typing import Optional, Dict, List
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Tool command variants to try (in order of preference)
DIALYZER_COMMANDS = ["dialyzer"]
ERL_COMMANDS = ["erl"]
ELIXIR_COMMANDS = ["elixir"]

# Each tool reports its version differently; erl only knows the +V emulator flag
VERSION_ARGS: Dict[str, List[str]] = {
    "dialyzer": ["--version"],
    "erl": ["+V"],
    "elixir": ["--version"],
}

# Session-level cache for tool detection results (keyed by function name)
_tool_cache: Dict[str, "ToolInfo"] = {}


@dataclass
class ToolInfo:
    """Information about a detected external tool.

    Attributes:
        command: Command name as found in PATH (e.g., "dialyzer")
        full_command: Absolute path of the executable
        version: Version line as reported by the tool (e.g., "Elixir 1.15.7 (compiled with Erlang/OTP 26)")
    """

    command: Optional[str]
    full_command: Optional[str]
    version: Optional[str]

    def is_found(self) -> bool:
        """Check if tool was found.

        Returns:
            True if command is not None
        """
        return self.command is not None


def clear_cache() -> None:
    """Clear the tool detection cache.

    Useful for testing or when PATH changes during process lifetime.
    """
    _tool_cache.clear()
    logger.debug("Tool detection cache cleared")


def _try_command(cmd: str, version_args: List[str], timeout: int = 5) -> Optional[str]:
    """Run a tool with its version arguments and return what it printed.

    erl writes its version banner to stderr, so both streams are merged.

    Returns:
        Version output string if the command succeeded, None otherwise
    """
    try:
        result = subprocess.run([cmd] + version_args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=True, timeout=timeout)
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
        return None


def _extract_version(output: str) -> str:
    """Extract the version line from command output.

    elixir --version prints the Erlang banner first, so the last non-empty
    line is used.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    return lines[-1] if lines else output.strip()


def _find_tool(tool_name: str, candidates: List[str]) -> ToolInfo:
    """Try each candidate command in order and cache the first that answers."""
    cache_key = f"find_{tool_name}"
    if cache_key in _tool_cache:
        return _tool_cache[cache_key]

    version_args = VERSION_ARGS[tool_name]
    for cmd in candidates:
        logger.debug("Trying %s...", cmd)
        path = shutil.which(cmd)
        if not path:
            logger.debug("%s not in PATH", cmd)
            continue

        version_output = _try_command(cmd, version_args)
        if version_output is None:
            logger.debug("%s is in PATH but did not report a version", cmd)
            continue

        version = _extract_version(version_output)
        logger.debug("Found %s version %s", cmd, version)
        tool_info = ToolInfo(command=cmd, full_command=path, version=version)
        _tool_cache[cache_key] = tool_info
        return tool_info

    logger.debug("%s not found", tool_name)
    tool_info = ToolInfo(command=None, full_command=None, version=None)
    _tool_cache[cache_key] = tool_info
    return tool_info


def find_dialyzer() -> ToolInfo:
    """Find the dialyzer executable shipped with Erlang/OTP."""
    return _find_tool("dialyzer", DIALYZER_COMMANDS)


def find_erl() -> ToolInfo:
    """Find the erl emulator used to query OTP facts and PLT contents."""
    return _find_tool("erl", ERL_COMMANDS)


def find_elixir() -> ToolInfo:
    """Find the elixir executable used to query the Elixir version and library root."""
    return _find_tool("elixir", ELIXIR_COMMANDS)


def check_all_tools() -> Dict[str, Dict[str, str]]:
    """Check all known tools and return their status.

    Returns:
        Dictionary with tool names as keys, each containing command and version.
        Missing tools are omitted from the result.
    """
    tools: Dict[str, Dict[str, str]] = {}

    tool_checks = [
        ("dialyzer", find_dialyzer),
        ("erl", find_erl),
        ("elixir", find_elixir),
    ]

    for tool_name, find_func in tool_checks:
        tool_info = find_func()
        if tool_info.is_found():
            assert tool_info.command is not None  # For type checker
            tools[tool_name] = {"command": tool_info.command, "version": tool_info.version or "unknown"}

    return tools


def main() -> int:
    """Main entry point for CLI usage.

    Returns:
        Exit code: 0 if tool found (or check-all succeeds), 1 if not found
    """
    parser = argparse.ArgumentParser(description="Detect external tools for plt-sync", formatter_class=argparse.RawDescriptionHelpFormatter)

    parser.add_argument("--find-dialyzer", action="store_true", help="Find dialyzer")
    parser.add_argument("--find-erl", action="store_true", help="Find the erl emulator")
    parser.add_argument("--find-elixir", action="store_true", help="Find elixir")
    parser.add_argument("--check-all", action="store_true", help="Check all tools and output JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose debug logging")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.WARNING)

    if args.check_all:
        print(json.dumps({"tools": check_all_tools()}, indent=2))
        return 0

    tool_map = {
        "find_dialyzer": (args.find_dialyzer, find_dialyzer),
        "find_erl": (args.find_erl, find_erl),
        "find_elixir": (args.find_elixir, find_elixir),
    }

    for flag_value, find_func in tool_map.values():
        if flag_value:
            tool_info = find_func()
            if tool_info.is_found():
                print(tool_info.command)
                return 0
            return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
