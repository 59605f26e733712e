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
"""Pytest configuration and shared fixtures for plt-sync tests.

External processes (dialyzer, erl, elixir) are never started: tests use
FakeRunner, which records every command and answers from a script, and a
fake PLT reader returning a fixed recorded file list.
"""

import os
import sys
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Sequence
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pltlib.command_runner import CommandResult
from pltlib.toolchain import Toolchain

SAMPLE_MIX_EXS = '''defmodule MyApp.Mixfile do
  use Mix.Project

  def project do
    [ app: :my_app,
      version: "0.0.1",
      deps: deps(),
      # dialyzer: [plt_file: "commented.plt"],
      dialyzer: [plt_add_apps: [:mnesia, :erlzmq], plt_file: ".private.plt", plt_add_deps: true]
    ]
  end

  defp deps do
    [ {:mnesia_ext, "~> 1.0"},
      {:jason, "~> 1.4", only: [:dev, :test]},
      {:dialyxir, github: "jeremyjh/dialyxir"}
    ]
  end
end
'''

# Recorded files of a PLT built with the default applications
CORE_PLT_FILES = [
    "/usr/lib/erlang/lib/erts-14.1/ebin/erlang.beam",
    "/usr/lib/erlang/lib/kernel-9.1/ebin/kernel.app",
    "/usr/lib/erlang/lib/stdlib-5.1/ebin/lists.beam",
    "/usr/lib/erlang/lib/crypto-5.3/ebin/crypto.beam",
    "/usr/lib/erlang/lib/public_key-1.14/ebin/public_key.beam",
]


class FakeRunner:
    """Stand-in for run_command that records calls instead of spawning processes.

    Args:
        responses: Maps a command's first two arguments (joined by a space) to
            (output, exit_code); unknown commands succeed with empty output
        on_call: Optional hook called with each command, e.g. to create a PLT file
    """

    def __init__(self, responses: Optional[Dict[str, tuple]] = None, on_call: Optional[Callable[[List[str]], None]] = None):
        self.responses = responses or {}
        self.on_call = on_call
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []

    def __call__(self, command: Sequence[str], cwd: Optional[str] = None, timeout: Optional[int] = None) -> CommandResult:
        argv = list(command)
        self.calls.append(argv)
        self.cwds.append(cwd)
        if self.on_call is not None:
            self.on_call(argv)
        output, exit_code = self.responses.get(" ".join(argv[:2]), ("", 0))
        return CommandResult(command=argv, output=output, exit_code=exit_code)


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="pltsync_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def mix_project(temp_dir: str) -> str:
    """Create a Mix project directory with SAMPLE_MIX_EXS."""
    Path(temp_dir, "mix.exs").write_text(SAMPLE_MIX_EXS, encoding="utf-8")
    return temp_dir


@pytest.fixture
def toolchain() -> Toolchain:
    """Toolchain facts of a typical OTP 26 / Elixir 1.15.7 install."""
    return Toolchain(otp_release="26", elixir_version="1.15.7", elixir_lib_dir="/usr/lib/elixir/lib/elixir")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def existing_plt(temp_dir: str) -> str:
    """An on-disk PLT file; its contents are never read by the fakes."""
    plt_path = os.path.join(temp_dir, "existing.plt")
    Path(plt_path).write_bytes(b"")
    return plt_path
