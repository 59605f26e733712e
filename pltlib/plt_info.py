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
"""Read the recorded contents of an existing PLT.

dialyzer:plt_info/1 reports the files a PLT was built from, typically paths
of the form .../<app>-<version>/ebin/<module>.beam. An application counts as
present when its name occurs anywhere in one of those paths.
"""

import logging
from typing import Callable, Iterable, List

from pltlib.command_runner import CommandResult, run_command
from pltlib.constants import ArtifactUnreadableError

logger = logging.getLogger(__name__)

Runner = Callable[..., CommandResult]

PLT_INFO_EVAL = (
    'case dialyzer:plt_info("{path}") of '
    "{{ok, Info}} -> "
    'lists:foreach(fun(F) -> io:format("~ts~n", [F]) end, proplists:get_value(files, Info, [])), halt(0); '
    "{{error, Reason}} -> "
    'io:format("~p~n", [Reason]), halt(1) '
    "end."
)


def _erlang_string(value: str) -> str:
    """Escape a value for use inside an Erlang double-quoted string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def plt_info_command(plt_path: str) -> List[str]:
    """Return the erl invocation that prints a PLT's recorded files, one per line."""
    return ["erl", "-noshell", "-eval", PLT_INFO_EVAL.format(path=_erlang_string(plt_path))]


def read_plt_files(plt_path: str, runner: Runner = run_command) -> List[str]:
    """Return the file list recorded in a PLT.

    Raises:
        ArtifactUnreadableError: If dialyzer cannot read the PLT
    """
    result = runner(plt_info_command(plt_path))
    if not result.succeeded:
        raise ArtifactUnreadableError(f"Cannot read PLT {plt_path}: {result.output.strip() or f'exit code {result.exit_code}'}")

    files = [line.strip() for line in result.output.splitlines() if line.strip()]
    logger.debug("PLT %s records %d files", plt_path, len(files))
    return files


def files_contain(files: Iterable[str], name: str) -> bool:
    """Return True if any recorded path contains name as a substring.

    This is a raw substring test: "kernel" also matches "superkernel.beam".
    """
    return any(name in path for path in files)
