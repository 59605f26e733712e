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
"""Keep a dialyzer PLT in step with a project's required applications.

A sync pass has at most two steps, run in this order:

1. Build: when the PLT file does not exist, build it from scratch with every
   required application, the required dependencies on the code path (-pa)
   and the Elixir standard libraries scanned recursively (-r).
2. Add: read the PLT's recorded file list and add any required application
   whose name appears in none of the recorded paths. This check also runs
   right after a build.

When the PLT already exists and nothing is missing, the pass prints
"Nothing to do." and runs no command.
"""

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TextIO

from pltlib.color_utils import print_command, print_info, print_tool_output
from pltlib.command_runner import CommandResult, format_command, run_command
from pltlib.constants import DIALYZER
from pltlib.plt_info import files_contain, read_plt_files
from pltlib.project_config import PltConfig, compute_include_pa, compute_required_apps
from pltlib.toolchain import Toolchain, elixir_scan_dirs, resolve_plt_path

logger = logging.getLogger(__name__)

Runner = Callable[..., CommandResult]
PltReader = Callable[[str], List[str]]


@dataclass
class SyncReport:
    """What a sync pass did.

    Attributes:
        plt_file: PLT path the pass worked on
        built: True if the build step ran
        missing: Applications found missing after the (optional) build
        nothing_to_do: True if the PLT was already complete and no command ran
        results: dialyzer invocations in execution order
    """

    plt_file: str
    built: bool = False
    missing: List[str] = field(default_factory=list)
    nothing_to_do: bool = False
    results: List[CommandResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(result.succeeded for result in self.results)

    def first_failure(self) -> Optional[CommandResult]:
        for result in self.results:
            if not result.succeeded:
                return result
        return None


class PltSynchronizer:
    """Build or extend one PLT so it covers a project's required applications.

    Args:
        config: Project PLT settings
        toolchain: Installed OTP/Elixir facts (default PLT name, Elixir library root)
        runner: Executes dialyzer; same signature as run_command
        plt_reader: Returns the recorded file list of a PLT path
        plt_file: PLT path; resolved from config and toolchain when omitted
        home: Home directory for the default PLT path (default: the user's)
        output: Stream for progress output (default: sys.stdout)
    """

    def __init__(
        self,
        config: PltConfig,
        toolchain: Toolchain,
        runner: Runner = run_command,
        plt_reader: Optional[PltReader] = None,
        plt_file: Optional[str] = None,
        home: Optional[str] = None,
        output: Optional[TextIO] = None,
    ):
        self.config = config
        self.toolchain = toolchain
        self.runner = runner
        self.plt_file = plt_file or resolve_plt_path(config, toolchain, home)
        self.output = output
        self._plt_reader = plt_reader or self._read_recorded_files

    def _read_recorded_files(self, plt_file: str) -> List[str]:
        return read_plt_files(plt_file, self.runner)

    def required_apps(self) -> List[str]:
        return compute_required_apps(self.config)

    def include_pa(self) -> List[str]:
        return compute_include_pa(self.config, self.required_apps())

    def need_build(self) -> bool:
        return not os.path.exists(self.plt_file)

    def plt_contains(self, app: str, files: Optional[List[str]] = None) -> bool:
        """Return True if the PLT records a file whose path contains app."""
        if files is None:
            files = self._plt_reader(self.plt_file)
        return files_contain(files, app)

    def missing_apps(self) -> List[str]:
        """Return required applications absent from the PLT, in required order.

        Raises:
            ArtifactUnreadableError: If the PLT's file list cannot be read
        """
        files = self._plt_reader(self.plt_file)
        return [app for app in self.required_apps() if not self.plt_contains(app, files)]

    def build_command(self) -> List[str]:
        return (
            [DIALYZER, "--output_plt", self.plt_file, "--build_plt"]
            + self.include_pa()
            + ["--apps"]
            + self.required_apps()
            + ["-r"]
            + elixir_scan_dirs(self.toolchain)
        )

    def add_command(self, missing: List[str]) -> List[str]:
        return [DIALYZER, "--add_to_plt", "--plt", self.plt_file, "--apps"] + list(missing)

    def _run(self, command: List[str]) -> CommandResult:
        print_command(format_command(command), file=self.output)
        result = self.runner(command, cwd=self.config.project_dir)
        print_tool_output(result.output, file=self.output)
        if not result.succeeded:
            logger.warning("%s exited with code %d", command[0], result.exit_code)
        return result

    def build_plt(self) -> CommandResult:
        print_info("Starting PLT Core Build ... this will take awhile", file=self.output)
        return self._run(self.build_command())

    def add_plt(self, missing: List[str]) -> CommandResult:
        print_info("Some apps are missing and will be added:", file=self.output)
        print_info(json.dumps(missing), file=self.output)
        print_info("Adding Erlang/OTP Apps to existing PLT ... this will take a little time", file=self.output)
        return self._run(self.add_command(missing))

    def sync(self) -> SyncReport:
        """Run one build/add pass and report what happened.

        A failing dialyzer invocation does not stop the pass; its exit code
        is recorded in the report.
        """
        report = SyncReport(plt_file=self.plt_file)
        logger.debug("Syncing PLT %s", self.plt_file)

        if self.need_build():
            report.results.append(self.build_plt())
            report.built = True

        report.missing = self.missing_apps()
        if report.missing:
            report.results.append(self.add_plt(report.missing))
        elif not report.built:
            print_info("Nothing to do.", file=self.output)
            report.nothing_to_do = True

        return report
