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

"""Line-oriented classifier that splits a Rust snippet into items and statements.

A documentation snippet usually starts with zero or more complete top-level
items (use declarations, functions, types, attributes) and may end with
statement-level code that only compiles inside a function body. The
classifier finds the line boundary between the two in a single forward scan,
tracking brace depth so multi-line items are kept whole.
"""

import re
from dataclasses import dataclass, replace

from doc_twoslash.models import Classification

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_ENTRY_POINT_RE = re.compile(r'\bfn\s+main\s*(?:<[^>]*>)?\s*\(')

_ITEM_RE = re.compile(
    r'^\s*(?:'
    r'#!?\['                                 # attribute or inner attribute
    r'|macro_rules!'
    r'|pub(?:\(|\s|$)'                       # any visibility-qualified item
    r'|(?:default\s+)?'
    r'(?:async\s+)?'
    r'(?:const\s+)?'
    r'(?:unsafe\s+)?'
    r'(?:extern(?:\s+"[^"]*")?\s+)?'         # extern "C" fn
    r'(?:'
    r'(?:fn|struct|enum|union|trait|mod|const|static|type|use|extern)\s'
    r'|impl\b'                               # impl Foo, impl<T>
    r'|extern\s*\{'
    r')'
    r')'
)


def has_entry_point(snippet: str) -> bool:
    """True when the snippet already defines ``fn main``."""
    return _ENTRY_POINT_RE.search(snippet) is not None


def is_item_line(line: str) -> bool:
    """True when the line starts a top-level item (or is an attribute)."""
    return _ITEM_RE.match(line) is not None


def _is_attribute(stripped: str) -> bool:
    return stripped.startswith('#[') or stripped.startswith('#![')


# ---------------------------------------------------------------------------
# Brace scanning
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _ScanState:
    """Lexical context carried from one line into the next."""

    comment_depth: int = 0  # /* */ nesting
    raw_hashes: int = -1  # `#` count of an open raw string, -1 when none
    in_string: bool = False
    nesting: int = 0  # open ( and [

    @property
    def in_literal(self) -> bool:
        return self.comment_depth > 0 or self.raw_hashes >= 0 or self.in_string


@dataclass(frozen=True)
class _LineScan:
    opens: int
    closes: int
    has_semicolon: bool  # a `;` outside any ( or [
    state: _ScanState


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == '_'


def _starts_raw_string(line: str, i: int) -> bool:
    """True for the `r` of r"..." / r#"..."# / br"...", not inside an identifier."""
    if i + 1 >= len(line) or line[i + 1] not in ('"', '#'):
        return False
    if i == 0 or not _is_ident_char(line[i - 1]):
        return True
    return line[i - 1] == 'b' and (i == 1 or not _is_ident_char(line[i - 2]))


def _scan_line(line: str, state: _ScanState = _ScanState()) -> _LineScan:
    """Count braces and semicolons in code, skipping strings,
    raw strings, char literals, and comments. Strings, raw strings and
    block comments left open at the end of the line stay open in the
    returned state."""
    opens = 0
    closes = 0
    has_semicolon = False
    comment_depth = state.comment_depth
    raw_hashes = state.raw_hashes
    in_string = state.in_string
    nesting = state.nesting
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if raw_hashes >= 0:
            closing = '"' + '#' * raw_hashes
            pos = line.find(closing, i)
            if pos < 0:
                break
            i = pos + len(closing)
            raw_hashes = -1
            continue
        if in_string:
            if ch == '\\':
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        # Block comment handling (Rust supports nested /* */)
        if comment_depth > 0:
            if ch == '/' and i + 1 < n and line[i + 1] == '*':
                comment_depth += 1
                i += 2
                continue
            if ch == '*' and i + 1 < n and line[i + 1] == '/':
                comment_depth -= 1
                i += 2
                continue
            i += 1
            continue
        if ch == '/' and i + 1 < n:
            if line[i + 1] == '/':
                break  # rest is line comment
            if line[i + 1] == '*':
                comment_depth += 1
                i += 2
                continue
        if ch == 'r' and _starts_raw_string(line, i):
            j = i + 1
            hash_count = 0
            while j < n and line[j] == '#':
                hash_count += 1
                j += 1
            if j < n and line[j] == '"':
                raw_hashes = hash_count
                i = j + 1
                continue
        if ch == '"':
            in_string = True
            i += 1
            continue
        # Char literal ('a', '\n', '{') but not a lifetime ('a)
        if ch == '\'' and i + 2 < n:
            if line[i + 1] == '\\':
                end = line.find('\'', i + 2)
                if 0 <= end <= i + 10:
                    i = end + 1
                    continue
            elif line[i + 2] == '\'':
                i += 3
                continue
        if ch == '{':
            opens += 1
        elif ch == '}':
            closes += 1
        elif ch in '([':
            nesting += 1
        elif ch in ')]':
            nesting = max(0, nesting - 1)
        elif ch == ';' and nesting == 0:
            has_semicolon = True
        i += 1
    return _LineScan(
        opens, closes, has_semicolon,
        _ScanState(comment_depth, raw_hashes, in_string, nesting),
    )


def brace_delta(line: str) -> int:
    """Net change in brace depth contributed by one line of code."""
    scan = _scan_line(line)
    return scan.opens - scan.closes


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------

def classify(snippet: str) -> Classification:
    """Split ``snippet`` into a preamble of items and a body of statements.

    Scanning stops at the first line, outside any item, that is neither
    blank, a comment, nor the start of an item; everything from the last
    item boundary onwards becomes the body. Returns an empty body when the
    snippet already has ``fn main``, holds only items, or ends inside an
    unterminated item.
    """
    if has_entry_point(snippet):
        return Classification(snippet)

    split = 0  # end of the last complete preamble line
    offset = 0
    depth = 0
    pending = False  # item header seen, waiting for its `{` or `;`
    attribute = False  # the pending header is a #[...] spanning lines
    state = _ScanState()

    for line in snippet.splitlines(keepends=True):
        offset += len(line)
        in_literal = state.in_literal
        scan = _scan_line(line, state)
        state = scan.state

        if depth > 0:
            depth = max(0, depth + scan.opens - scan.closes)
            if depth == 0:
                split = offset
                state = replace(state, nesting=0)
            continue

        stripped = line.strip()
        if not pending:
            if in_literal or not stripped or stripped.startswith('//') or stripped.startswith('/*'):
                split = offset
                continue
            if not is_item_line(line):
                # First statement line: the rest of the snippet is body
                body = snippet[split:]
                if not body.strip():
                    return Classification(snippet)
                return Classification(snippet[:split], body)
            attribute = _is_attribute(stripped)

        depth = max(0, scan.opens - scan.closes)
        if depth > 0:
            pending = False
        elif scan.opens or scan.has_semicolon or (
            attribute and state.nesting == 0 and not state.in_literal
        ):
            pending = False
            split = offset
            state = replace(state, nesting=0)
        else:
            pending = True

    return Classification(snippet)
