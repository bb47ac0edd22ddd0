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

"""Per-snippet pipeline: classify, wrap, analyze, remap.

The engine is not assumed to be reentrant, so an AnalysisService owns the
one engine instance and serializes every analysis behind a lock. Nothing in
this module raises to the caller; every failure degrades to an empty
annotation list with a Diagnostic explaining why.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from doc_twoslash.config import TwoslashSettings, build_engine_settings
from doc_twoslash.engine import AnalysisEngine, AnalysisError, SubprocessEngine
from doc_twoslash.models import BlockResult, Diagnostic, RawAnnotation, TypeAnnotation
from doc_twoslash.remapper import remap
from doc_twoslash.wrapper import prepare

logger = logging.getLogger(__name__)


class EnginePoisoned(Exception):
    """A previous analysis failed unexpectedly; the engine is no longer used."""


class AnalysisService:
    """Exclusive owner of the analysis engine.

    The engine is built by ``engine_factory`` on first use and lives as long
    as the service. At most one ``analyze`` call runs at a time; other
    callers block on the lock. An unexpected exception (anything other than
    AnalysisError) from the factory or the engine poisons the service, after
    which every call returns no annotations without touching the engine.
    """

    def __init__(
        self,
        engine_factory: Callable[[], AnalysisEngine],
        setup_diagnostics: list[Diagnostic] | None = None,
    ):
        self._engine_factory = engine_factory
        self._engine: AnalysisEngine | None = None
        self._lock = threading.Lock()
        self._poisoned = False
        # Filled in by the factory when the engine is built
        self.setup_diagnostics = setup_diagnostics if setup_diagnostics is not None else []

    @classmethod
    def from_settings(cls, settings: TwoslashSettings) -> AnalysisService:
        """Service whose engine is a SubprocessEngine configured from ``settings``."""
        setup: list[Diagnostic] = []

        def build() -> AnalysisEngine:
            engine_settings, diagnostics = build_engine_settings(settings)
            setup.extend(diagnostics)
            return SubprocessEngine(engine_settings)

        return cls(build, setup_diagnostics=setup)

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @property
    def started(self) -> bool:
        return self._engine is not None

    def analyze(self, text: str) -> list[RawAnnotation]:
        """Run the engine on complete program text.

        Raises AnalysisError for ordinary engine failures and EnginePoisoned
        once the service has been disabled.
        """
        with self._lock:
            if self._poisoned:
                raise EnginePoisoned("analysis engine disabled after an earlier failure")
            try:
                if self._engine is None:
                    self._engine = self._engine_factory()
                return list(self._engine.analyze(text))
            except AnalysisError:
                raise
            except Exception as e:
                self._poisoned = True
                logger.exception("Analysis engine failed; disabling it for this process")
                raise EnginePoisoned(f"analysis engine crashed: {e}") from e

    def process(self, snippet: str) -> BlockResult:
        """Annotate one snippet, returning annotations and any diagnostics."""
        if not snippet.strip():
            return BlockResult()

        _, program = prepare(snippet)
        try:
            raw = self.analyze(program.text)
        except EnginePoisoned as e:
            return BlockResult(diagnostics=[Diagnostic("poisoned", str(e))])
        except AnalysisError as e:
            logger.warning("twoslash error: %s", e)
            return BlockResult(diagnostics=[Diagnostic("engine", str(e))])

        annotations = remap(
            raw,
            program.preamble_len,
            program.wrapper_prefix_len,
            len(snippet.encode("utf-8")),
        )
        return BlockResult(annotations=annotations)

    def process_code_block(self, snippet: str) -> list[TypeAnnotation]:
        return self.process(snippet).annotations


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_default_service: AnalysisService | None = None
_default_lock = threading.Lock()


def default_service() -> AnalysisService:
    """Return the process-wide service, building it from the environment once."""
    global _default_service
    with _default_lock:
        if _default_service is None:
            _default_service = AnalysisService.from_settings(TwoslashSettings.from_env())
        return _default_service


def process_code_block(snippet: str, service: AnalysisService | None = None) -> list[TypeAnnotation]:
    """Type annotations for ``snippet``, positioned against the snippet itself."""
    if service is None:
        service = default_service()
    return service.process_code_block(snippet)
