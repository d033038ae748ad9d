"""HTTP, SSE and WebSocket transport for Minesweeper Arena."""

from minesweeper_arena.web.server import create_app, format_sse

__all__ = ["create_app", "format_sse"]
