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
"""Host Erlang/Elixir toolchain facts needed to place and build a PLT.

The default PLT is shared per toolchain, so its filename embeds the OTP
release and the Elixir version. A full build also scans the Elixir standard
libraries, which live next to each other under the Elixir library root.
"""

import os
import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from packaging.version import InvalidVersion, Version

from pltlib.command_runner import CommandResult, run_command
from pltlib.constants import (
    DEFAULT_PLT_TEMPLATE,
    EBIN_DIR,
    ELIXIR_LIBS,
    TOOLCHAIN_QUERY_TIMEOUT,
    ToolchainError,
)
from pltlib.project_config import PltConfig

logger = logging.getLogger(__name__)

Runner = Callable[..., CommandResult]

OTP_RELEASE_QUERY = ["erl", "-noshell", "-eval", 'io:format("~s", [erlang:system_info(otp_release)]), halt().']
ELIXIR_VERSION_QUERY = ["elixir", "--version"]
ELIXIR_LIB_DIR_QUERY = ["elixir", "-e", "IO.write(:code.lib_dir(:elixir))"]

RE_ELIXIR_VERSION = re.compile(r"^Elixir\s+(\S+)", re.MULTILINE)


@dataclass
class Toolchain:
    """Facts about the installed Erlang/OTP and Elixir.

    Attributes:
        otp_release: OTP major release (e.g., "26")
        elixir_version: Elixir version exactly as Elixir reports it (e.g., "1.15.7")
        elixir_lib_dir: Library root of the elixir application (e.g., /usr/lib/elixir/lib/elixir)
    """

    otp_release: str
    elixir_version: str
    elixir_lib_dir: str


def _query(runner: Runner, command: List[str], what: str) -> str:
    result = runner(command, timeout=TOOLCHAIN_QUERY_TIMEOUT)
    if not result.succeeded:
        raise ToolchainError(f"Could not determine {what}: {result.command_line} exited with code {result.exit_code}\n{result.output.strip()}")
    return result.output.strip()


def parse_elixir_version(output: str) -> str:
    """Extract the Elixir version from `elixir --version` output.

    The raw string is returned verbatim; it is part of the default PLT
    filename. Elixir versions are SemVer, so a string PEP 440 cannot parse
    (e.g. 2.0.0-alpha.beta) is only logged.

    Raises:
        ToolchainError: If no Elixir version line is present
    """
    match = RE_ELIXIR_VERSION.search(output)
    if not match:
        raise ToolchainError(f"Unrecognised elixir --version output: {output.strip()!r}")

    raw_version = match.group(1)
    try:
        Version(raw_version)
    except InvalidVersion:
        logger.debug("Elixir version %r is not PEP 440; using it as reported", raw_version)
    return raw_version


def detect_toolchain(runner: Runner = run_command) -> Toolchain:
    """Query erl and elixir for the facts a PLT build needs.

    Raises:
        ToolchainError: If any query fails
        ExternalToolError: If erl or elixir is not installed
    """
    otp_release = _query(runner, OTP_RELEASE_QUERY, "OTP release")
    elixir_version = parse_elixir_version(_query(runner, ELIXIR_VERSION_QUERY, "Elixir version"))
    elixir_lib_dir = _query(runner, ELIXIR_LIB_DIR_QUERY, "Elixir library directory")

    if not otp_release:
        raise ToolchainError("erl reported an empty OTP release")

    toolchain = Toolchain(otp_release=otp_release, elixir_version=elixir_version, elixir_lib_dir=elixir_lib_dir)
    logger.debug("Detected toolchain: %s", toolchain)
    return toolchain


def default_plt_path(toolchain: Toolchain, home: Optional[str] = None) -> str:
    """Return the shared per-toolchain PLT path in the user's home directory."""
    if home is None:
        home = str(Path.home())
    filename = DEFAULT_PLT_TEMPLATE.format(otp_release=toolchain.otp_release, elixir_version=toolchain.elixir_version)
    return f"{home}/{filename}"


def resolve_plt_path(config: PltConfig, toolchain: Toolchain, home: Optional[str] = None) -> str:
    """Return the configured plt_file, or the default shared PLT when unset.

    A relative plt_file is taken relative to the project directory and made
    absolute, since dialyzer runs inside the project directory while the
    existence check and plt_info query run from the current directory.
    """
    if config.plt_file:
        if os.path.isabs(config.plt_file):
            return config.plt_file
        return os.path.abspath(os.path.join(config.project_dir, config.plt_file))
    return default_plt_path(toolchain, home)


def elixir_scan_dirs(toolchain: Toolchain) -> List[str]:
    """Return the ebin directories of the Elixir standard libraries, for -r."""
    code_dir = os.path.join(toolchain.elixir_lib_dir, "..")
    return [os.path.join(code_dir, name, EBIN_DIR) for name in ELIXIR_LIBS]
