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
"""Project declaration reader for plt-sync.

PLT settings live in the Mix project declaration (mix.exs) under the
dialyzer keyword of the project list:

    def project do
      [ app: :my_app,
        version: "0.0.1",
        deps: deps(),
        dialyzer: [plt_add_apps: [:mnesia], plt_file: ".private.plt"]
      ]
    end

Recognised keys:
    plt_apps      - list replacing the default application set entirely
    plt_add_apps  - list appended to the default application set
    plt_file      - PLT path; relative paths are relative to the project
    plt_add_deps  - true to append every declared dependency

mix.exs is Elixir source, not data. Only literal lists, strings and booleans
are understood, plus a zero-arity private function returning a literal list
(the usual `deps: deps()` idiom). Everything is read once into a PltConfig
which the synchronizer receives explicitly.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pltlib.constants import (
    DEFAULT_APPS,
    DEPS_DIR,
    DIALYZER_CONFIG_KEY,
    EBIN_DIR,
    MIX_PROJECT_FILE,
    ConfigError,
)

logger = logging.getLogger(__name__)

RE_NAME = re.compile(r':"([^"]+)"|:([A-Za-z_][\w@]*[?!]?)|"([^"]*)"')
RE_DEP_TUPLE = re.compile(r"\{\s*:([A-Za-z_]\w*)\s*,")
RE_FUNCTION_CALL = re.compile(r"([a-z_]\w*)\s*(?:\(\s*\))?")
RE_LITERAL = re.compile(r"true|false|nil|\"([^\"]*)\"")

OPEN_BRACKETS = "[{("
CLOSE_BRACKETS = "]})"


@dataclass
class PltConfig:
    """PLT settings of one Mix project.

    Attributes:
        plt_apps: Explicit full application list, or None to use the defaults
        plt_add_apps: Applications appended to the defaults
        plt_file: PLT path override, or None for the shared default
        plt_add_deps: Append the project's dependency names to the required set
        deps: Dependency application names in declaration order
        project_dir: Directory holding mix.exs; relative paths resolve against it
    """

    plt_apps: Optional[List[str]] = None
    plt_add_apps: List[str] = field(default_factory=list)
    plt_file: Optional[str] = None
    plt_add_deps: bool = False
    deps: List[str] = field(default_factory=list)
    project_dir: str = "."

    @classmethod
    def from_dict(cls, values: Mapping[str, Any], project_dir: str = ".") -> "PltConfig":
        """Build a config from plain values (e.g., {"plt_add_apps": ["mnesia"]})."""
        plt_apps = values.get("plt_apps")
        plt_add_deps = values.get("plt_add_deps") or False
        if not isinstance(plt_add_deps, bool):
            raise ConfigError(f"plt_add_deps must be a boolean, got {plt_add_deps!r}")

        return cls(
            plt_apps=[str(app) for app in plt_apps] if plt_apps is not None else None,
            plt_add_apps=[str(app) for app in values.get("plt_add_apps") or []],
            plt_file=values.get("plt_file"),
            plt_add_deps=plt_add_deps,
            deps=[str(dep) for dep in values.get("deps") or []],
            project_dir=project_dir,
        )


def compute_required_apps(config: PltConfig) -> List[str]:
    """Return the ordered application names the PLT must contain.

    plt_apps, when set, is the whole answer. Otherwise the defaults come
    first, then plt_add_apps, then the dependencies if plt_add_deps is set.
    Duplicates are kept.
    """
    if config.plt_apps is not None:
        return list(config.plt_apps)

    apps = list(DEFAULT_APPS) + list(config.plt_add_apps)
    if config.plt_add_deps:
        apps += config.deps
    return apps


def compute_include_pa(config: PltConfig, required_apps: List[str]) -> List[str]:
    """Return -pa flags for every dependency that is also a required application.

    Returns:
        Flat argument list, e.g. ["-pa", "deps/mnesia/ebin"]
    """
    flags: List[str] = []
    for dep in config.deps:
        if dep in required_apps:
            flags += ["-pa", f"{DEPS_DIR}/{dep}/{EBIN_DIR}"]
    return flags


# =============================================================================
# mix.exs parsing
# =============================================================================


def strip_comments(source: str) -> str:
    """Remove Elixir # comments, leaving string literals untouched."""
    out: List[str] = []
    in_string = False
    i = 0
    while i < len(source):
        ch = source[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < len(source):
                out.append(source[i + 1])
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch == "#":
            while i < len(source) and source[i] != "\n":
                i += 1
            continue
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _scan(source: str, start: int, stop_at_close: bool) -> int:
    """Walk brackets from start, skipping strings.

    With stop_at_close=False, source[start] must open a bracket and the index
    just past its partner is returned. With stop_at_close=True the walk stops
    at the first bracket closing an enclosing level, or at end of input.
    """
    depth = 0
    in_string = False
    i = start
    while i < len(source):
        ch = source[i]
        if in_string:
            if ch == "\\":
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in OPEN_BRACKETS:
            depth += 1
        elif ch in CLOSE_BRACKETS:
            depth -= 1
            if stop_at_close and depth < 0:
                return i
            if not stop_at_close and depth == 0:
                return i + 1
        i += 1

    if not stop_at_close:
        raise ConfigError(f"Unbalanced brackets in {MIX_PROJECT_FILE} near: {source[start:start + 40]!r}")
    return len(source)


def _find_function_list(source: str, name: str) -> Optional[str]:
    """Return the literal list a zero-arity `def`/`defp` returns, if any."""
    pattern = re.compile(r"\bdefp?\s+" + re.escape(name) + r"(?:\s*\(\s*\))?\s*(?:,\s*do:|\s+do\b)")
    match = pattern.search(source)
    if not match:
        return None

    list_start = source.find("[", match.end())
    if list_start < 0:
        return None
    return source[list_start:_scan(source, list_start, stop_at_close=False)]


def _keyword_value(source: str, key: str, trailing: bool = False) -> Optional[str]:
    """Return the source text of the value bound to `key:`.

    Lists come back with their brackets. A bare function call such as
    deps() is resolved to the list that function returns. With trailing=True
    a value that is not a list runs to the end of the enclosing list, which
    covers the bracket-less `dialyzer: plt_add_apps: [...]` form.
    """
    match = re.search(r"(?<![\w:])" + re.escape(key) + r":\s*", source)
    if not match:
        return None

    start = match.end()
    if source.startswith("[", start):
        return source[start:_scan(source, start, stop_at_close=False)]

    if trailing and re.match(r"[a-z_]\w*:", source[start:]):
        return "[" + source[start:_scan(source, start, stop_at_close=True)] + "]"

    call = RE_FUNCTION_CALL.match(source, start)
    if call and call.group(1) not in ("true", "false", "nil"):
        resolved = _find_function_list(source, call.group(1))
        if resolved is not None:
            return resolved
        logger.debug("%s: %s() does not return a literal list", key, call.group(1))

    literal = RE_LITERAL.match(source, start)
    if literal:
        return literal.group(0)

    end = _scan(source, start, stop_at_close=True)
    return source[start:end].split(",")[0].strip()


def parse_name_list(value: str, key: str) -> Optional[List[str]]:
    """Parse a literal list of atoms and/or strings into names."""
    value = value.strip()
    if value == "nil":
        return None
    if not (value.startswith("[") and value.endswith("]")):
        raise ConfigError(f"{key} must be a list of application names, got {value!r}")

    names: List[str] = []
    for quoted_atom, atom, string in RE_NAME.findall(value[1:-1]):
        names.append(quoted_atom or atom or string)
    return names


def parse_dialyzer_options(source: str) -> Dict[str, Any]:
    """Extract the dialyzer keyword options from mix.exs source (comments stripped)."""
    options: Dict[str, Any] = {}
    segment = _keyword_value(source, DIALYZER_CONFIG_KEY, trailing=True)
    if segment is None:
        logger.debug("No %s entry in project declaration", DIALYZER_CONFIG_KEY)
        return options

    for key in ("plt_apps", "plt_add_apps"):
        value = _keyword_value(segment, key)
        if value is not None:
            options[key] = parse_name_list(value, key)

    plt_file = _keyword_value(segment, "plt_file")
    if plt_file is not None and plt_file != "nil":
        if not (len(plt_file) >= 2 and plt_file.startswith('"') and plt_file.endswith('"')):
            raise ConfigError(f"plt_file must be a string, got {plt_file!r}")
        options["plt_file"] = plt_file[1:-1]

    plt_add_deps = _keyword_value(segment, "plt_add_deps")
    if plt_add_deps is not None:
        if plt_add_deps not in ("true", "false", "nil"):
            raise ConfigError(f"plt_add_deps must be true or false, got {plt_add_deps!r}")
        options["plt_add_deps"] = plt_add_deps == "true"

    return options


def parse_deps(source: str) -> List[str]:
    """Extract dependency application names from mix.exs source, in order."""
    value = _keyword_value(source, "deps")
    if value is None or not value.startswith("["):
        logger.debug("No literal deps list in project declaration")
        return []
    return RE_DEP_TUPLE.findall(value)


def parse_mix_project(source: str) -> Tuple[Dict[str, Any], List[str]]:
    """Parse mix.exs source into (dialyzer options, dependency names)."""
    source = strip_comments(source)
    return parse_dialyzer_options(source), parse_deps(source)


def load_project_config(project_dir: str = ".") -> PltConfig:
    """Read <project_dir>/mix.exs into a PltConfig.

    Raises:
        ConfigError: If mix.exs is missing, unreadable or has malformed dialyzer options
    """
    mix_file = os.path.join(project_dir, MIX_PROJECT_FILE)
    if not os.path.isfile(mix_file):
        raise ConfigError(f"No {MIX_PROJECT_FILE} found in {os.path.abspath(project_dir)}")

    try:
        with open(mix_file, "r", encoding="utf-8") as f:
            source = f.read()
    except (IOError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {mix_file}: {e}") from e

    options, deps = parse_mix_project(source)
    options["deps"] = deps
    config = PltConfig.from_dict(options, project_dir=project_dir)
    logger.debug("Loaded project config: %s", config)
    return config
