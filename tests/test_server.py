"""Tests for the MCP tool handlers."""

import asyncio
import json

import pytest

from doc_twoslash.models import RawAnnotation
from doc_twoslash.service import AnalysisService


class _Engine:
    def analyze(self, text):
        return [RawAnnotation(start=16, length=5, text="let value: i32", docs=None)]


@pytest.fixture(autouse=True)
def _reset_server_state():
    """Reset server module-level state before each test."""
    import doc_twoslash.server as srv

    srv._service = None
    yield
    srv._service = None


def _call(name, arguments):
    from doc_twoslash.server import call_tool

    return asyncio.run(call_tool(name, arguments))


class TestListTools:
    def test_tool_names(self):
        from doc_twoslash.server import TOOLS

        assert [t.name for t in TOOLS] == ["annotate_code_block", "classify_snippet"]


class TestClassifySnippet:
    def test_split_and_wrapped_text(self):
        out = _call("classify_snippet", {"code": "use a::B;\nlet b = B;"})
        data = json.loads(out[0].text)
        assert data["preamble"] == "use a::B;\n"
        assert data["body"] == "let b = B;"
        assert data["wrapped"] == "use a::B;\nfn main() {\nlet b = B;\n}"
        assert data["preamble_len"] == 10
        assert data["wrapper_prefix_len"] == 12


class TestAnnotateCodeBlock:
    def test_disabled_returns_empty(self, monkeypatch):
        import doc_twoslash.server as srv

        monkeypatch.delenv("RUSTDOC_TWOSLASH", raising=False)
        srv._service = AnalysisService(_Engine)
        data = json.loads(_call("annotate_code_block", {"code": "let value = 5;"})[0].text)
        assert data == {"annotations": [], "diagnostics": []}

    def test_enabled(self, monkeypatch):
        import doc_twoslash.server as srv

        monkeypatch.setenv("RUSTDOC_TWOSLASH", "1")
        srv._service = AnalysisService(_Engine)
        data = json.loads(_call("annotate_code_block", {"code": "let value = 5;"})[0].text)
        assert data["annotations"] == [
            {"start": 4, "length": 5, "type_text": "let value: i32", "docs": None},
        ]
        assert data["diagnostics"] == []


class TestErrors:
    def test_unknown_tool(self):
        out = _call("nope", {})
        assert out[0].text == "Error: unknown tool 'nope'"

    def test_missing_argument(self):
        out = _call("classify_snippet", {})
        assert out[0].text.startswith("Error:")


class TestAnnotateOffLoop:
    def test_analysis_runs_in_worker_thread(self, monkeypatch):
        import threading

        import doc_twoslash.server as srv

        seen = []

        class _RecordingEngine(_Engine):
            def analyze(self, text):
                seen.append(threading.current_thread())
                return super().analyze(text)

        monkeypatch.setenv("RUSTDOC_TWOSLASH", "1")
        srv._service = AnalysisService(_RecordingEngine)
        data = json.loads(_call("annotate_code_block", {"code": "let value = 5;"})[0].text)
        assert len(data["annotations"]) == 1
        assert seen and seen[0] is not threading.main_thread()
