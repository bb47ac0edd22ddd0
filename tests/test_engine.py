"""Unit tests for the subprocess analysis engine adapter."""

import json
import subprocess
import sys
from unittest.mock import patch, MagicMock

import pytest

from doc_twoslash.engine import (
    AnalysisError,
    EngineSettings,
    SubprocessEngine,
    parse_quick_infos,
)
from doc_twoslash.models import RawAnnotation


def _ok(payload):
    return MagicMock(returncode=0, stdout=json.dumps(payload), stderr="")


class TestParseQuickInfos:
    def test_parses_entries(self):
        payload = {"static_quick_infos": [
            {"start": 16, "length": 5, "text": "let value: i32", "docs": None},
            {"start": 30, "length": 3, "text": "fn len(&self) -> usize", "docs": "Returns the length."},
        ]}
        assert parse_quick_infos(payload) == [
            RawAnnotation(16, 5, "let value: i32", None),
            RawAnnotation(30, 3, "fn len(&self) -> usize", "Returns the length."),
        ]

    def test_skips_malformed_entries(self):
        payload = {"static_quick_infos": [
            "garbage",
            {"start": "4", "length": 2, "text": "x"},
            {"start": 4, "length": True, "text": "x"},
            {"start": 4, "length": 2},
            {"start": 4, "length": 2, "text": "i32", "docs": 7},
        ]}
        assert parse_quick_infos(payload) == [RawAnnotation(4, 2, "i32", None)]

    def test_missing_list_is_error(self):
        with pytest.raises(AnalysisError):
            parse_quick_infos({})

    def test_non_object_is_error(self):
        with pytest.raises(AnalysisError):
            parse_quick_infos([1, 2])

    def test_error_field_is_error(self):
        with pytest.raises(AnalysisError, match="expected `;`"):
            parse_quick_infos({"error": "expected `;`", "static_quick_infos": []})


class TestSubprocessEngine:
    def test_sends_request_on_stdin(self):
        settings = EngineSettings(cargo_toml="[package]\nname = \"demo\"\n", target_dir="/tmp/cache")
        engine = SubprocessEngine(settings)
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = _ok({"static_quick_infos": []})
            assert engine.analyze("fn main() {}") == []

        args, kwargs = mock_run.call_args
        assert args[0] == ["twoslash-rust"]
        request = json.loads(kwargs["input"])
        assert request == {
            "code": "fn main() {}",
            "cargo_toml": "[package]\nname = \"demo\"\n",
            "target_dir": "/tmp/cache",
        }
        assert kwargs["timeout"] == 60.0

    def test_custom_command(self):
        engine = SubprocessEngine(EngineSettings(command=["hover-tool", "--json"]))
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = _ok({"static_quick_infos": [
                {"start": 0, "length": 2, "text": "mod fmt"},
            ]})
            result = engine.analyze("use std::fmt;")
        assert mock_run.call_args[0][0] == ["hover-tool", "--json"]
        assert result == [RawAnnotation(0, 2, "mod fmt")]

    def test_missing_binary(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError
            with pytest.raises(AnalysisError, match="not found"):
                SubprocessEngine().analyze("let x = 1;")

    def test_timeout(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired(cmd="twoslash-rust", timeout=60)
            with pytest.raises(AnalysisError, match="timed out"):
                SubprocessEngine().analyze("let x = 1;")

    def test_nonzero_exit_reports_last_stderr_line(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr="warning: noise\nerror: failed to parse\n",
            )
            with pytest.raises(AnalysisError, match="error: failed to parse"):
                SubprocessEngine().analyze("let x = ;")

    def test_nonzero_exit_without_stderr(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=101, stdout="", stderr="")
            with pytest.raises(AnalysisError, match="exit status 101"):
                SubprocessEngine().analyze("let x = 1;")

    def test_invalid_json(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="not json", stderr="")
            with pytest.raises(AnalysisError, match="invalid JSON"):
                SubprocessEngine().analyze("let x = 1;")


class TestUndecodableOutput:
    def test_decodes_with_replacement(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.return_value = _ok({"static_quick_infos": []})
            SubprocessEngine().analyze("let x = 1;")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"

    def test_invalid_utf8_from_real_process(self):
        script = "import sys; sys.stdout.buffer.write(b'\\xff'); sys.stderr.buffer.write(b'bad \\xfe'); sys.exit(1)"
        engine = SubprocessEngine(EngineSettings(command=[sys.executable, "-c", script], timeout_seconds=30))
        with pytest.raises(AnalysisError, match="bad"):
            engine.analyze("let x = 1;")

    def test_invalid_utf8_stdout_with_success_exit(self):
        script = "import sys; sys.stdout.buffer.write(b'\\xff')"
        engine = SubprocessEngine(EngineSettings(command=[sys.executable, "-c", script], timeout_seconds=30))
        with pytest.raises(AnalysisError, match="invalid JSON"):
            engine.analyze("let x = 1;")

    def test_permission_error(self):
        with patch("doc_twoslash.engine.subprocess.run") as mock_run:
            mock_run.side_effect = PermissionError("denied")
            with pytest.raises(AnalysisError, match="cannot run"):
                SubprocessEngine().analyze("let x = 1;")
