#!/usr/bin/env python3
"""Tests for pltlib/plt_info.py"""

import pytest

from conftest import CORE_PLT_FILES, FakeRunner
from pltlib.constants import ArtifactUnreadableError
from pltlib.plt_info import files_contain, plt_info_command, read_plt_files


class TestFilesContain:
    """Tests for the substring containment test."""

    def test_match_in_app_directory(self) -> None:
        assert files_contain(["kernel-9.2/ebin/kernel.app"], "kernel") is True

    def test_substring_matches_unrelated_file(self) -> None:
        assert files_contain(["lib/superkernel.beam"], "kernel") is True

    def test_no_match(self) -> None:
        assert files_contain(CORE_PLT_FILES, "mnesia") is False

    def test_empty_list(self) -> None:
        assert files_contain([], "kernel") is False


class TestPltInfoCommand:
    """Tests for plt_info_command."""

    def test_command_shape(self) -> None:
        command = plt_info_command("/home/dev/core.plt")
        assert command[:3] == ["erl", "-noshell", "-eval"]
        assert 'dialyzer:plt_info("/home/dev/core.plt")' in command[3]
        assert command[3].rstrip().endswith("end.")

    def test_quotes_escaped(self) -> None:
        command = plt_info_command('/tmp/we"ird.plt')
        assert 'dialyzer:plt_info("/tmp/we\\"ird.plt")' in command[3]


class TestReadPltFiles:
    """Tests for read_plt_files."""

    def test_reads_lines(self) -> None:
        runner = FakeRunner(responses={"erl -noshell": ("\n".join(CORE_PLT_FILES) + "\n\n", 0)})
        assert read_plt_files("/p.plt", runner) == CORE_PLT_FILES

    def test_failure_raises(self) -> None:
        runner = FakeRunner(responses={"erl -noshell": ("{no_such_file,\"/p.plt\"}\n", 1)})
        with pytest.raises(ArtifactUnreadableError, match="no_such_file"):
            read_plt_files("/p.plt", runner)
