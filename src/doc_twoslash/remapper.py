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

"""Maps engine annotations on the wrapped program back onto the original snippet.

Positions in the wrapped program fall into three regions:

- ``[0, preamble_len)``: the preamble, same position in the original
- ``[preamble_len, preamble_len + wrapper_prefix_len)``: the synthetic
  ``fn main() {`` header, no counterpart in the original
- everything after: the body, shifted right by ``wrapper_prefix_len``

The engine's output is not trusted: anything that lands outside the
original text is dropped rather than clamped.
"""

import logging
from collections.abc import Iterable

from doc_twoslash.models import RawAnnotation, TypeAnnotation

logger = logging.getLogger(__name__)


def adjust_start(start: int, preamble_len: int, wrapper_prefix_len: int) -> int | None:
    """Translate a wrapped-program offset to an original offset.

    Returns None when the offset lies inside the synthetic header.
    """
    if wrapper_prefix_len == 0:
        return start
    if start < preamble_len:
        return start
    if start < preamble_len + wrapper_prefix_len:
        return None
    return start - wrapper_prefix_len


def remap(
    raw_annotations: Iterable[RawAnnotation],
    preamble_len: int,
    wrapper_prefix_len: int,
    original_len: int,
) -> list[TypeAnnotation]:
    """Reposition annotations against the original snippet, in engine order.

    Drops annotations inside the synthetic header, those starting at or past
    ``original_len`` (e.g. on the synthetic closing brace), negative starts,
    and single-byte tokens, which are operators and punctuation.
    """
    result: list[TypeAnnotation] = []
    dropped = 0
    for info in raw_annotations:
        adjusted = adjust_start(info.start, preamble_len, wrapper_prefix_len)
        if adjusted is None or adjusted < 0 or adjusted >= original_len:
            dropped += 1
            continue
        if info.length <= 1:
            dropped += 1
            continue
        result.append(TypeAnnotation(
            start=adjusted,
            length=info.length,
            type_text=info.text,
            docs=info.docs,
        ))
    if dropped:
        logger.debug("Dropped %d of %d annotations", dropped, dropped + len(result))
    return result
