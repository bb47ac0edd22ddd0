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

"""Cargo manifest resolution and self-dependency augmentation.

Snippets in a crate's documentation refer to the crate itself
(``use mycrate::Thing;``). The engine scaffolds a throwaway project from the
manifest it is given, so the manifest is augmented with a path dependency
pointing back at the documented crate.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field

import tomli_w

from doc_twoslash.models import Diagnostic

logger = logging.getLogger(__name__)

MANIFEST_ENV = "RUSTDOC_TWOSLASH_CARGO_TOML"
DEFAULT_MANIFEST = "Cargo.toml"


class ManifestError(Exception):
    """The manifest text could not be parsed."""


@dataclass
class ManifestResolution:
    """Which manifest was picked, its text, and why others were skipped."""

    path: str | None = None
    content: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.content is not None


def _read(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def resolve_manifest(
    environ: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> ManifestResolution:
    """Find the Cargo.toml describing the documented crate.

    Order: the path in RUSTDOC_TWOSLASH_CARGO_TOML, then Cargo.toml in the
    working directory. Finding neither is not an error; the engine then runs
    without external dependency context.
    """
    environ = os.environ if environ is None else environ
    cwd = os.getcwd() if cwd is None else cwd
    resolution = ManifestResolution()

    override = environ.get(MANIFEST_ENV)
    if override:
        try:
            resolution.content = _read(override)
            resolution.path = os.path.abspath(override)
            logger.info("Using Cargo.toml from %s", override)
            return resolution
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s=%s: %s", MANIFEST_ENV, override, e)
            resolution.diagnostics.append(
                Diagnostic("config", f"cannot read {override}: {e}")
            )

    candidate = os.path.join(cwd, DEFAULT_MANIFEST)
    try:
        resolution.content = _read(candidate)
        resolution.path = os.path.abspath(candidate)
        logger.info("Using Cargo.toml from current directory")
        return resolution
    except FileNotFoundError:
        pass
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read %s: %s", candidate, e)
        resolution.diagnostics.append(Diagnostic("config", f"cannot read {candidate}: {e}"))

    logger.warning("No Cargo.toml found, external deps won't have annotations")
    resolution.diagnostics.append(
        Diagnostic("config", "no Cargo.toml found; external dependencies are not annotated")
    )
    return resolution


def _normalize(name: str) -> str:
    return name.replace("-", "_")


def _depends_on(deps: dict, name: str) -> bool:
    """True when any dependency entry, or its ``package =`` rename, is ``name``.

    Cargo treats `-` and `_` in crate names as the same.
    """
    wanted = _normalize(name)
    for key, spec in deps.items():
        if _normalize(key) == wanted:
            return True
        if isinstance(spec, dict) and isinstance(spec.get("package"), str):
            if _normalize(spec["package"]) == wanted:
                return True
    return False


def add_self_dependency(content: str, package_dir: str) -> str:
    """Add ``<name> = { path = "<package_dir>" }`` under [dependencies].

    The manifest is parsed, modified and re-serialized rather than edited as
    text. Manifests without a package name, or that already depend on a
    crate of that name, are returned unchanged. Raises ManifestError when
    the text is not valid TOML.
    """
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(str(e)) from e

    package = data.get("package")
    if not isinstance(package, dict) or not isinstance(package.get("name"), str):
        return content
    name = package["name"]

    deps = data.setdefault("dependencies", {})
    if not isinstance(deps, dict):
        raise ManifestError("[dependencies] is not a table")
    if _depends_on(deps, name):
        return content

    deps[name] = {"path": package_dir}
    return tomli_w.dumps(data)
