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

"""Encloses statement-level snippet code in a synthetic ``fn main``."""

from doc_twoslash.classifier import classify
from doc_twoslash.models import Classification, WrappedProgram

WRAPPER_PREFIX = "fn main() {\n"
WRAPPER_SUFFIX = "\n}"
WRAPPER_PREFIX_LEN = len(WRAPPER_PREFIX.encode("utf-8"))


def wrap(preamble: str, body: str) -> WrappedProgram:
    """Build the program text the engine sees.

    With a body: preamble + ``fn main() {\\n`` + body + ``\\n}``.
    Without one the preamble is passed through and both lengths are 0.
    """
    if not body:
        return WrappedProgram(text=preamble, preamble_len=0, wrapper_prefix_len=0)
    return WrappedProgram(
        text=f"{preamble}{WRAPPER_PREFIX}{body}{WRAPPER_SUFFIX}",
        preamble_len=len(preamble.encode("utf-8")),
        wrapper_prefix_len=WRAPPER_PREFIX_LEN,
    )


def prepare(snippet: str) -> tuple[Classification, WrappedProgram]:
    """Classify a snippet and wrap it in one step."""
    classification = classify(snippet)
    return classification, wrap(classification.preamble, classification.body)
