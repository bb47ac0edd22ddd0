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

"""Environment-driven settings for hover annotation."""

from __future__ import annotations

import logging
import os
import shlex
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field

from doc_twoslash.engine import DEFAULT_COMMAND, EngineSettings
from doc_twoslash.manifest import ManifestError, add_self_dependency, resolve_manifest
from doc_twoslash.models import Diagnostic

logger = logging.getLogger(__name__)

ENABLE_ENV = "RUSTDOC_TWOSLASH"
TARGET_DIR_ENV = "RUSTDOC_TWOSLASH_TARGET_DIR"
ENGINE_ENV = "RUSTDOC_TWOSLASH_ENGINE"
TIMEOUT_ENV = "RUSTDOC_TWOSLASH_TIMEOUT"
NO_SELF_DEP_ENV = "RUSTDOC_TWOSLASH_NO_SELF_DEP"

DEFAULT_TIMEOUT_SECONDS = 60.0


def is_enabled(environ: Mapping[str, str] | None = None) -> bool:
    """Hover annotation is on when RUSTDOC_TWOSLASH is set, whatever its value."""
    environ = os.environ if environ is None else environ
    return ENABLE_ENV in environ


def _default_target_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "rustdoc-twoslash-cache")


@dataclass
class TwoslashSettings:
    environ: Mapping[str, str] = field(default_factory=dict)
    cwd: str = "."
    target_dir: str = field(default_factory=_default_target_dir)
    command: list[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    self_dependency: bool = True

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> TwoslashSettings:
        environ = dict(os.environ if environ is None else environ)
        settings = cls(environ=environ, cwd=os.getcwd() if cwd is None else cwd)

        if environ.get(TARGET_DIR_ENV):
            settings.target_dir = environ[TARGET_DIR_ENV]
        if environ.get(ENGINE_ENV):
            command = shlex.split(environ[ENGINE_ENV])
            if command:
                settings.command = command
        if environ.get(TIMEOUT_ENV):
            try:
                settings.timeout_seconds = float(environ[TIMEOUT_ENV])
            except ValueError:
                logger.warning(
                    "Ignoring %s=%r, using %gs",
                    TIMEOUT_ENV, environ[TIMEOUT_ENV], DEFAULT_TIMEOUT_SECONDS,
                )
        settings.self_dependency = NO_SELF_DEP_ENV not in environ
        return settings


def build_engine_settings(settings: TwoslashSettings) -> tuple[EngineSettings, list[Diagnostic]]:
    """Resolve the manifest and turn settings into engine construction arguments.

    Failures here reduce context (no dependency annotations) but never stop
    the engine from being built.
    """
    resolution = resolve_manifest(settings.environ, settings.cwd)
    diagnostics = list(resolution.diagnostics)
    cargo_toml = resolution.content

    if cargo_toml is not None and settings.self_dependency and resolution.path:
        package_dir = os.path.dirname(resolution.path)
        try:
            cargo_toml = add_self_dependency(cargo_toml, package_dir)
        except ManifestError as e:
            logger.warning("Cannot add self dependency to %s: %s", resolution.path, e)
            diagnostics.append(
                Diagnostic("config", f"manifest {resolution.path} not augmented: {e}")
            )

    engine_settings = EngineSettings(
        cargo_toml=cargo_toml,
        target_dir=settings.target_dir,
        command=list(settings.command),
        timeout_seconds=settings.timeout_seconds,
    )
    return engine_settings, diagnostics
