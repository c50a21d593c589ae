"""Tests for redeploy.core.envfile."""

from __future__ import annotations

import pytest

from redeploy.core.envfile import (
    CLIENT_UNSET_VARS,
    build_client_env,
    parse_env_file,
    parse_env_lines,
)
from redeploy.core.errors import StepError


class TestParseEnvLines:
    def test_simple_assignments(self):
        assert parse_env_lines(["A=1", "B=two"]) == {"A": "1", "B": "two"}

    def test_comment_lines_skipped(self):
        lines = ["# heading", "#DISABLED=1", "KEEP=1"]
        assert parse_env_lines(lines) == {"KEEP": "1"}

    def test_hash_inside_value_kept(self):
        assert parse_env_lines(["URL=https://a.test/#frag"]) == {"URL": "https://a.test/#frag"}

    def test_blank_and_garbage_lines_ignored(self):
        assert parse_env_lines(["", "   ", "not an assignment", "A=1"]) == {"A": "1"}

    def test_export_prefix(self):
        assert parse_env_lines(["export REACT_APP_API_URL=https://x.test"]) == {
            "REACT_APP_API_URL": "https://x.test"
        }

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ('A="quoted value"', "quoted value"),
            ("A='single'", "single"),
            ('A="mismatched\'', '"mismatched\''),
            ("A=", ""),
            ("A = spaced ", "spaced"),
        ],
    )
    def test_values(self, line, expected):
        assert parse_env_lines([line]) == {"A": expected}

    def test_later_keys_win(self):
        assert parse_env_lines(["A=1", "A=2"]) == {"A": "2"}

    def test_crlf(self):
        assert parse_env_lines(["A=1\r\n"]) == {"A": "1"}

    def test_inline_comment_and_spaces_kept_whole(self):
        assert parse_env_lines(["A=val # note", "B=a b"]) == {"A": "val # note", "B": "a b"}


class TestParseEnvFile:
    def test_reads_file(self, tmp_path):
        path = tmp_path / ".env.client"
        path.write_text("# c\nREACT_APP_API_URL=https://x.test\n")
        assert parse_env_file(path) == {"REACT_APP_API_URL": "https://x.test"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(StepError, match="Cannot read env file") as exc_info:
            parse_env_file(tmp_path / "missing")
        assert exc_info.value.context["path"].endswith("missing")

    def test_not_utf8(self, tmp_path):
        path = tmp_path / ".env.client"
        path.write_bytes(b"REACT_APP_API_URL=caf\xe9\n")
        with pytest.raises(StepError, match="Cannot read env file") as exc_info:
            parse_env_file(path)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)


class TestBuildClientEnv:
    def test_unset_vars_removed_from_base(self, tmp_path):
        env_file = tmp_path / ".env.client"
        env_file.write_text("REACT_APP_API_URL=https://x.test\n")
        base = {"PATH": "/usr/bin", "WASP_WEB_CLIENT_URL": "a", "WASP_SERVER_URL": "b"}

        env = build_client_env(base, env_file)

        assert env == {"PATH": "/usr/bin", "REACT_APP_API_URL": "https://x.test"}
        assert base["WASP_SERVER_URL"] == "b"

    def test_unset_vars_removed_even_from_file(self, tmp_path):
        env_file = tmp_path / ".env.client"
        env_file.write_text("WASP_SERVER_URL=https://pinned.test\nA=1\n")
        env = build_client_env({}, env_file)
        assert env == {"A": "1"}

    def test_file_overrides_base(self, tmp_path):
        env_file = tmp_path / ".env.client"
        env_file.write_text("A=from-file\n")
        assert build_client_env({"A": "from-shell"}, env_file)["A"] == "from-file"

    def test_custom_unset(self, tmp_path):
        env_file = tmp_path / ".env.client"
        env_file.write_text("")
        env = build_client_env({"X": "1", "WASP_SERVER_URL": "b"}, env_file, unset=["X"])
        assert env == {"WASP_SERVER_URL": "b"}

    def test_without_env_file(self):
        env = build_client_env({"PATH": "/usr/bin", "WASP_WEB_CLIENT_URL": "a"}, None)
        assert env == {"PATH": "/usr/bin"}

    def test_default_unset_names(self):
        assert set(CLIENT_UNSET_VARS) == {"WASP_WEB_CLIENT_URL", "WASP_SERVER_URL"}
