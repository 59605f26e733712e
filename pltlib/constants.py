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
"""Shared constants for plt-sync.

Exit codes, dialyzer defaults and the exception hierarchy used by every
module in pltlib and by the pltSync.py entry point.
"""

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_DIALYZER_FAILED = 3  # dialyzer ran but returned non-zero
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# PLT Defaults
# =============================================================================

# Core Erlang/OTP applications every PLT starts from
DEFAULT_APPS = ["erts", "kernel", "stdlib", "crypto", "public_key"]

# Elixir libraries scanned recursively (-r) during a full build
ELIXIR_LIBS = ["eex", "elixir", "ex_unit", "iex", "mix"]

# Compiled-output subdirectory of an OTP application
EBIN_DIR = "ebin"

# Dependency checkout directory, relative to the project root
DEPS_DIR = "deps"

# Default shared PLT filename, formatted with otp release and elixir version
DEFAULT_PLT_TEMPLATE = ".dialyxir_core_{otp_release}_{elixir_version}.plt"

# =============================================================================
# Project Declaration
# =============================================================================

MIX_PROJECT_FILE = "mix.exs"
DIALYZER_CONFIG_KEY = "dialyzer"

# =============================================================================
# External Tool Constants
# =============================================================================

DIALYZER = "dialyzer"
TOOLCHAIN_QUERY_TIMEOUT = 60  # Timeout for erl/elixir fact queries (seconds)

# =============================================================================
# Exception Classes
# =============================================================================


class PltSyncError(Exception):
    """Base exception for all plt-sync errors.

    Every plt-sync exception carries an exit_code attribute that tells the
    entry point which exit code to use when the error reaches it.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(PltSyncError):
    """Raised when the project declaration is missing or malformed."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ExternalToolError(PltSyncError):
    """Raised when an external tool (dialyzer, erl, elixir) cannot be run."""

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):  # pylint: disable=useless-parent-delegation
        super().__init__(message, exit_code)


class ToolchainError(ExternalToolError):
    """Raised when OTP release, Elixir version or library root cannot be queried."""


class DialyzerFailedError(ExternalToolError):
    """Raised when a dialyzer invocation returned a non-zero exit status."""

    def __init__(self, message: str, tool_exit_code: int):
        super().__init__(message, EXIT_DIALYZER_FAILED)
        self.tool_exit_code = tool_exit_code


class ArtifactUnreadableError(PltSyncError):
    """Raised when the recorded file list cannot be read from a PLT."""
