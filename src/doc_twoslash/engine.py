# doc-twoslash - Type hover annotations for documentation code snippets
# Copyright (C) 2026 Michael Doyle
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing available. See COMMERCIAL-LICENSE.md for details.

"""Adapter around the external type-analysis engine.

The engine is a black box: given complete program text it returns hover
information for every token it can resolve. The default implementation
shells out to a ``twoslash-rust`` style command that reads a JSON request
on stdin and writes ``{"static_quick_infos": [...]}`` to stdout.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Protocol

from doc_twoslash.models import RawAnnotation

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ["twoslash-rust"]


class AnalysisError(Exception):
    """The engine could not analyze the program (parse/type error, crash, bad output)."""


class AnalysisEngine(Protocol):
    def analyze(self, text: str) -> list[RawAnnotation]:
        """Return hover annotations for ``text`` or raise AnalysisError."""
        ...


@dataclass
class EngineSettings:
    """Construction-time configuration for the engine."""

    cargo_toml: str | None = None  # manifest text for dependency context
    target_dir: str | None = None  # build cache shared across snippets
    command: list[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    timeout_seconds: float = 60.0


def parse_quick_infos(payload: object) -> list[RawAnnotation]:
    """Convert the engine's JSON payload into RawAnnotations.

    Malformed entries are skipped; a payload without a
    ``static_quick_infos`` list is an AnalysisError.
    """
    if not isinstance(payload, dict):
        raise AnalysisError("engine output is not a JSON object")
    if "error" in payload and payload["error"]:
        raise AnalysisError(str(payload["error"]))
    infos = payload.get("static_quick_infos")
    if not isinstance(infos, list):
        raise AnalysisError("engine output has no static_quick_infos list")

    annotations: list[RawAnnotation] = []
    for info in infos:
        if not isinstance(info, dict):
            continue
        start = info.get("start")
        length = info.get("length")
        text = info.get("text")
        docs = info.get("docs")
        if isinstance(start, bool) or not isinstance(start, int):
            continue
        if isinstance(length, bool) or not isinstance(length, int):
            continue
        if not isinstance(text, str):
            continue
        annotations.append(RawAnnotation(
            start=start,
            length=length,
            text=text,
            docs=docs if isinstance(docs, str) else None,
        ))
    return annotations


class SubprocessEngine:
    """Runs the hover-extraction command once per program."""

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings or EngineSettings()

    def _request(self, text: str) -> str:
        return json.dumps({
            "code": text,
            "cargo_toml": self.settings.cargo_toml,
            "target_dir": self.settings.target_dir,
        })

    def analyze(self, text: str) -> list[RawAnnotation]:
        cmd = self.settings.command
        logger.debug("Running %s on %d bytes", cmd[0], len(text.encode("utf-8")))
        try:
            result = subprocess.run(
                cmd,
                input=self._request(text),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",  # engine output is not guaranteed UTF-8
                timeout=self.settings.timeout_seconds,
            )
        except FileNotFoundError as e:
            raise AnalysisError(f"engine command not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise AnalysisError(
                f"engine timed out after {self.settings.timeout_seconds:g}s"
            ) from e
        except OSError as e:
            raise AnalysisError(f"cannot run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()
            reason = detail[-1] if detail else f"exit status {result.returncode}"
            raise AnalysisError(reason)

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise AnalysisError(f"engine produced invalid JSON: {e}") from e
        return parse_quick_infos(payload)
