# pyright: reportAny=false, reportUnknownArgumentType=false
from __future__ import annotations

import copy
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from nanogit.config._loader import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from nanogit.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        content = """
[cache]
max_entries = 64
scan_worktree = false
"""
        path = Path("/repo/.nanogit.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result == {"cache": {"max_entries": 64, "scan_worktree": False}}

    def test_raises_file_not_found_for_missing_file(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            read_toml_file(Path("/repo/missing.toml"))

    def test_raises_config_load_error_for_invalid_toml(
        self, fs: FakeFilesystem
    ) -> None:
        path = Path("/repo/invalid.toml")
        fs.create_file(path, contents='[cache\nmax_entries = "unclosed"\n')

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert error.line is not None
        assert error.column is not None


class TestDeepMerge:
    def test_merges_nested_dicts(self) -> None:
        base = {"cache": {"max_entries": 256, "diff_context": 3}}
        override = {"cache": {"max_entries": 16}}

        result = deep_merge(base, override)

        assert result == {"cache": {"max_entries": 16, "diff_context": 3}}

    def test_arrays_are_replaced(self) -> None:
        result = deep_merge({"a": [1, 2, 3]}, {"a": [4]})

        assert result == {"a": [4]}

    def test_type_mismatch_override_wins(self) -> None:
        result = deep_merge({"a": {"b": 1}}, {"a": "flat"})

        assert result == {"a": "flat"}

    def test_inputs_are_not_modified(self) -> None:
        base = {"cache": {"max_entries": 256}, "list": [1]}
        override = {"cache": {"diff_context": 5}}
        base_before = copy.deepcopy(base)
        override_before = copy.deepcopy(override)

        result = deep_merge(base, override)
        result["list"].append(2)

        assert base == base_before
        assert override == override_before


class TestParseEnvVars:
    def test_parses_sectioned_variables(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("NANOGIT_CACHE__MAX_ENTRIES", "32")
        monkeypatch.setenv("NANOGIT_LOGGING__LEVEL", "debug")

        result = parse_env_vars()

        assert result["cache"] == {"max_entries": 32}
        assert result["logging"]["level"] == "debug"

    def test_ignores_flat_switches(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NANOGIT_DEBUG", "1")
        monkeypatch.setenv("NANOGIT_STRICT_CONFIG", "1")

        result = parse_env_vars()

        assert "debug" not in result
        assert "strict_config" not in result

    def test_ignores_other_prefixes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTHER_CACHE__MAX_ENTRIES", "1")

        assert "cache" not in parse_env_vars()


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-3", -3),
            ("1.5", 1.5),
            ("[1, 2]", [1, 2]),
            ('{"a": 1}', {"a": 1}),
            ("[not json", "[not json"),
            ("debug", "debug"),
            ("v1.2.3", "v1.2.3"),
        ],
    )
    def test_infers_types(self, raw: str, expected: object) -> None:
        assert parse_string_value(raw) == expected


class TestSetNestedKey:
    def test_creates_intermediate_dicts(self) -> None:
        d: dict[str, object] = {}

        set_nested_key(d, "cache.max_entries", 8)

        assert d == {"cache": {"max_entries": 8}}

    def test_replaces_non_dict_on_path(self) -> None:
        d: dict[str, object] = {"cache": 1}

        set_nested_key(d, "cache.max_entries", 8)

        assert d == {"cache": {"max_entries": 8}}
