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

"""MCP server exposing snippet hover annotation.

Lets a documentation renderer (or an assistant) ask for type annotations on
a code block without embedding the analysis engine itself.

Usage:
    RUSTDOC_TWOSLASH=1 python -m doc_twoslash.server
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
import traceback

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent
import mcp.types as types

from doc_twoslash.config import TwoslashSettings, is_enabled
from doc_twoslash.service import AnalysisService
from doc_twoslash.wrapper import prepare

# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

server = Server("doc-twoslash")

_service: AnalysisService | None = None


def _format_result(value: object) -> str:
    """Format a tool result as readable text."""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


def _build_service() -> None:
    """Create the analysis service from the environment."""
    global _service

    if not is_enabled():
        print(
            "[doc-twoslash] RUSTDOC_TWOSLASH is not set; annotations will be empty",
            file=sys.stderr,
        )
    settings = TwoslashSettings.from_env()
    _service = AnalysisService.from_settings(settings)
    print(
        f"[doc-twoslash] Engine: {' '.join(settings.command)} "
        f"(cache {settings.target_dir}, cwd {os.getcwd()})",
        file=sys.stderr,
    )


def _annotate(code: str) -> dict:
    if _service is None or not is_enabled():
        return {"annotations": [], "diagnostics": []}
    result = _service.process(code)
    return {
        "annotations": [a.to_dict() for a in result.annotations],
        "diagnostics": [
            {"kind": d.kind, "message": d.message}
            for d in _service.setup_diagnostics + result.diagnostics
        ],
    }


def _classify(code: str) -> dict:
    classification, program = prepare(code)
    return {
        "preamble": classification.preamble,
        "body": classification.body,
        "wrapped": program.text,
        "preamble_len": program.preamble_len,
        "wrapper_prefix_len": program.wrapper_prefix_len,
    }


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

TOOLS = [
    Tool(
        name="annotate_code_block",
        description="Type hover annotations for a Rust documentation snippet. Offsets are UTF-8 byte positions in the snippet as given.",
        inputSchema={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "Snippet text exactly as it appears in the documentation.",
                },
            },
            "required": ["code"],
        },
    ),
    Tool(
        name="classify_snippet",
        description="Show how a snippet is split into top-level items and statements, and the program sent to the engine.",
        inputSchema={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "Snippet text.",
                },
            },
            "required": ["code"],
        },
    ),
]


# ---------------------------------------------------------------------------
# MCP handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def list_tools() -> list[Tool]:
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    try:
        if name == "annotate_code_block":
            # Analysis blocks on the engine subprocess
            result = await asyncio.to_thread(_annotate, arguments["code"])

        elif name == "classify_snippet":
            result = _classify(arguments["code"])

        else:
            return [TextContent(type="text", text=f"Error: unknown tool '{name}'")]

        return [TextContent(type="text", text=_format_result(result))]

    except Exception as e:
        tb = traceback.format_exc()
        print(f"[doc-twoslash] Error in {name}: {tb}", file=sys.stderr)
        return [TextContent(type="text", text=f"Error: {e}")]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def main():
    _build_service()
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main_sync():
    """Synchronous entry point for console_scripts."""
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()
