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
"""Run external commands and capture their combined output.

Every dialyzer, erl and elixir invocation in plt-sync goes through
run_command() so callers get a CommandResult with the exit status instead of
a bare string, and tests can substitute a fake runner with the same
signature.
"""

import shlex
import time
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pltlib.constants import ExternalToolError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command.

    Attributes:
        command: Argument vector that was executed
        output: Captured stdout and stderr, interleaved as the tool wrote them
        exit_code: Process exit status
    """

    command: List[str]
    output: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return format_command(self.command)


def format_command(command: Sequence[str]) -> str:
    """Return the shell-quoted display form of an argument vector."""
    return shlex.join(command)


def run_command(command: Sequence[str], cwd: Optional[str] = None, timeout: Optional[int] = None) -> CommandResult:
    """Run a command to completion and capture its output.

    A non-zero exit status is reported in the result, not raised.

    Args:
        command: Argument vector (e.g., ["dialyzer", "--add_to_plt", ...])
        cwd: Working directory for the process (default: current directory)
        timeout: Optional timeout in seconds; dialyzer runs use none

    Returns:
        CommandResult with merged output and exit status

    Raises:
        ExternalToolError: If the executable cannot be found or started, or times out
    """
    argv = list(command)
    logger.debug("Running: %s (cwd=%s)", format_command(argv), cwd or ".")

    start_time = time.time()
    try:
        result = subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, cwd=cwd, timeout=timeout, check=False)
    except FileNotFoundError as exc:
        raise ExternalToolError(f"{argv[0]} not found in PATH") from exc
    except PermissionError as exc:
        raise ExternalToolError(f"{argv[0]} is not executable: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ExternalToolError(f"{argv[0]} timed out after {timeout} seconds") from exc

    elapsed = time.time() - start_time
    logger.debug("%s exited with code %d after %.1fs", argv[0], result.returncode, elapsed)

    return CommandResult(command=argv, output=result.stdout or "", exit_code=result.returncode)
