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
"""Integration tests for pltSync.py"""
import os
import signal
import sys
from pathlib import Path
from typing import Any, List

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
import pltSync

from conftest import CORE_PLT_FILES, FakeRunner
from pltlib.constants import (
    EXIT_DIALYZER_FAILED,
    EXIT_INVALID_ARGS,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    ToolchainError,
)
from pltlib.plt_sync import PltSynchronizer
from pltlib.toolchain import Toolchain


@pytest.fixture
def patched_sync(monkeypatch: Any, toolchain: Toolchain) -> Any:
    """Replace toolchain detection and dialyzer with fakes; returns a setup function."""

    def setup(runner: FakeRunner, recorded: List[str]) -> None:
        monkeypatch.setattr(pltSync, "detect_toolchain", lambda: toolchain)

        def make_synchronizer(config: Any, detected: Toolchain) -> PltSynchronizer:
            return PltSynchronizer(config, detected, runner=runner, plt_reader=lambda path: recorded)

        monkeypatch.setattr(pltSync, "PltSynchronizer", make_synchronizer)

    return setup


class TestMain:
    """Tests for the pltSync entry point."""

    def test_builds_missing_plt(self, mix_project: str, patched_sync: Any, capsys: Any) -> None:
        """Test a project without its PLT triggers a build followed by an add."""
        runner = FakeRunner()
        patched_sync(runner, CORE_PLT_FILES)

        assert pltSync.main(["--project-dir", mix_project, "--no-color"]) == EXIT_SUCCESS

        assert [call[1] for call in runner.calls] == ["--output_plt", "--add_to_plt"]
        build = runner.calls[0]
        assert build[2] == os.path.join(mix_project, ".private.plt")
        # plt_add_deps is set and mnesia_ext/jason/dialyxir are required deps
        assert build[build.index("--build_plt") + 1 : build.index("--apps")] == [
            "-pa", "deps/mnesia_ext/ebin", "-pa", "deps/jason/ebin", "-pa", "deps/dialyxir/ebin",
        ]
        add = runner.calls[1]
        assert add[add.index("--apps") + 1 :] == ["mnesia", "erlzmq", "mnesia_ext", "jason", "dialyxir"]

        out = capsys.readouterr().out
        assert "Starting PLT Core Build" in out
        assert "Some apps are missing and will be added:" in out

    def test_nothing_to_do(self, mix_project: str, patched_sync: Any, capsys: Any) -> None:
        Path(mix_project, ".private.plt").write_bytes(b"")
        Path(mix_project, "mix.exs").write_text('defmodule A.Mixfile do\n  def project, do: [app: :a, dialyzer: [plt_file: ".private.plt"]]\nend\n')
        runner = FakeRunner()
        patched_sync(runner, CORE_PLT_FILES)

        assert pltSync.main(["--project-dir", mix_project, "--no-color"]) == EXIT_SUCCESS
        assert runner.calls == []
        assert capsys.readouterr().out.strip() == "Nothing to do."

    def test_positional_arguments_ignored(self, mix_project: str, patched_sync: Any) -> None:
        runner = FakeRunner()
        patched_sync(runner, CORE_PLT_FILES)

        assert pltSync.main(["whatever", "--project-dir", mix_project, "--no-color", "extra"]) == EXIT_SUCCESS

    def test_dialyzer_failure_exit_code(self, mix_project: str, patched_sync: Any, capsys: Any) -> None:
        runner = FakeRunner(responses={"dialyzer --output_plt": ("dialyzer: Could not find the PLT", 2)})
        patched_sync(runner, CORE_PLT_FILES)

        assert pltSync.main(["--project-dir", mix_project, "--no-color"]) == EXIT_DIALYZER_FAILED
        assert "dialyzer exited with code 2" in capsys.readouterr().err

    def test_missing_mix_exs(self, temp_dir: str, capsys: Any) -> None:
        assert pltSync.main(["--project-dir", temp_dir, "--no-color"]) == EXIT_INVALID_ARGS
        assert "mix.exs" in capsys.readouterr().err

    def test_missing_project_dir(self, temp_dir: str) -> None:
        assert pltSync.main(["--project-dir", os.path.join(temp_dir, "nope"), "--no-color"]) == EXIT_INVALID_ARGS

    def test_toolchain_error(self, mix_project: str, monkeypatch: Any, capsys: Any) -> None:
        def fail() -> Toolchain:
            raise ToolchainError("Could not determine OTP release")

        monkeypatch.setattr(pltSync, "detect_toolchain", fail)

        assert pltSync.main(["--project-dir", mix_project, "--no-color"]) == EXIT_RUNTIME_ERROR
        assert "Could not determine OTP release" in capsys.readouterr().err

    def test_check_env(self, monkeypatch: Any, capsys: Any) -> None:
        monkeypatch.setattr(pltSync, "check_all_packages", lambda: True)
        monkeypatch.setattr(pltSync, "check_all_tools", lambda: {"dialyzer": {}, "erl": {}, "elixir": {}})

        assert pltSync.main(["--check-env", "--no-color"]) == EXIT_SUCCESS
        assert '"dialyzer"' in capsys.readouterr().out

    def test_check_env_missing_tool(self, monkeypatch: Any, capsys: Any) -> None:
        monkeypatch.setattr(pltSync, "check_all_packages", lambda: True)
        monkeypatch.setattr(pltSync, "check_all_tools", lambda: {"erl": {}})

        assert pltSync.main(["--check-env", "--no-color"]) == EXIT_RUNTIME_ERROR
        assert "dialyzer" in capsys.readouterr().err


class TestSignalHandler:
    """Tests for signal_handler."""

    def test_sigterm_message_names_signal(self, capsys: Any) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pltSync.signal_handler(signal.SIGTERM, None)
        assert exc_info.value.code == pltSync.EXIT_KEYBOARD_INTERRUPT
        err = capsys.readouterr().err
        assert "SIGTERM" in err
        assert "by user" not in err

    def test_sigint_message_names_signal(self, capsys: Any) -> None:
        with pytest.raises(SystemExit):
            pltSync.signal_handler(signal.SIGINT, None)
        assert "SIGINT" in capsys.readouterr().err
