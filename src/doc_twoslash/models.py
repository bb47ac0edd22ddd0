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

"""Data models for snippet wrapping and hover annotations.

All offsets and lengths are UTF-8 byte counts, matching what the analysis
engine reports.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Classification:
    """Split of a snippet into top-level items and trailing statements.

    ``preamble + body`` always reproduces the original snippet. An empty
    body means no wrapping is required.
    """

    preamble: str
    body: str = ""

    @property
    def needs_wrap(self) -> bool:
        return bool(self.body)


@dataclass(frozen=True)
class WrappedProgram:
    """Program text handed to the engine, plus the lengths to undo the wrap."""

    text: str
    preamble_len: int  # bytes of preamble before the synthetic header
    wrapper_prefix_len: int  # bytes of the synthetic header, 0 when not wrapped

    @property
    def is_identity(self) -> bool:
        return self.wrapper_prefix_len == 0


@dataclass(frozen=True)
class RawAnnotation:
    """Hover result positioned against the wrapped program."""

    start: int
    length: int
    text: str
    docs: str | None = None


@dataclass(frozen=True)
class TypeAnnotation:
    """Hover result positioned against the original snippet."""

    start: int
    length: int
    type_text: str
    docs: str | None = None

    @property
    def end(self) -> int:
        return self.start + self.length

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "length": self.length,
            "type_text": self.type_text,
            "docs": self.docs,
        }


@dataclass(frozen=True)
class Diagnostic:
    """Reason an annotation batch is reduced or empty."""

    kind: str  # "config", "engine" or "poisoned"
    message: str


@dataclass
class BlockResult:
    """Annotations for one code block together with what went wrong, if anything."""

    annotations: list[TypeAnnotation] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics
