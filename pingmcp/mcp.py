"""MCP (Model Context Protocol) stdio server for pingmcp.

Exposes a single `notify` tool that plays a notification sound so an agent
can tell the human nearby that it has finished.

Usage:
    claude mcp add pingmcp -- python3 -m pingmcp
    codex --mcp-config .mcp.json

No sound file ships with the package. Put notification.mp3 (or
custom/default.mp3) in the package directory, or point --sound-dir /
PINGMCP_SOUND_DIR at a directory holding one; without it notify rings the
terminal bell.

Wire format: newline-delimited JSON-RPC 2.0 over stdio. Protocol messages
go to stdout, everything else to stderr.
"""

import argparse
import json
import os
import sys
import threading

from .player import PLATFORM, PlaybackDriver
from .sounds import CachedResolver, SoundResolver

SERVER_NAME = "pingmcp"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSION = "2025-11-25"


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

TOOLS = [
    {
        "name": "notify",
        "description": "Play a notification sound to alert the user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": "Optional message",
                },
            },
        },
    },
]


# ---------------------------------------------------------------------------
# JSON-RPC message handling
# ---------------------------------------------------------------------------

def _response(req_id, result: dict) -> dict:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def _error(req_id, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def notify_text(label: str, message: str | None = None) -> str:
    text = f"Notification sound played: {label}"
    if message:
        return f"{message} ({text})"
    return text


class McpServer:
    """One stdio session. Requests are handled one at a time, in order."""

    def __init__(self, resolver=None, driver: PlaybackDriver | None = None, stdout=None):
        self.resolver = resolver or CachedResolver(SoundResolver())
        self.stdout = stdout or sys.stdout
        # The bell shares stdout with the protocol, so both go through one lock
        self._write_lock = threading.Lock()
        self.driver = driver or PlaybackDriver(bell=self.ring_bell)

    # --- tools ---

    def _handle_tool(self, handler, args: dict) -> dict:
        """Run a tool handler. Returns {"content": [...], "isError": bool}."""
        try:
            text = handler(args)
            return {"content": [{"type": "text", "text": text}], "isError": False}
        except Exception as e:
            return {"content": [{"type": "text", "text": f"Error: {e}"}], "isError": True}

    def _tool_handler(self, name):
        if not isinstance(name, str):
            return None
        return {"notify": self._notify}.get(name)

    def _notify(self, args: dict) -> str:
        message = args.get("message")
        if message is not None and not isinstance(message, str):
            message = str(message)
        asset = self.resolver.resolve()
        _log(f"notify: {asset.label}" + (f" ({message})" if message else ""))
        future = self.driver.play(asset)
        future.add_done_callback(_log_outcome)
        return notify_text(asset.label, message)

    def handle_message(self, msg: dict) -> dict | None:
        """Handle a JSON-RPC message. Returns a response dict, or None for notifications."""
        if not isinstance(msg, dict):
            return _error(None, -32600, "Invalid Request")

        method = msg.get("method", "")
        req_id = msg.get("id")
        params = msg.get("params") or {}
        if not isinstance(params, dict):
            params = {}

        # Notifications (no id) — handle silently
        if req_id is None:
            return None

        if method == "initialize":
            return _response(req_id, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {
                    "tools": {"listChanged": False},
                },
                "serverInfo": {
                    "name": SERVER_NAME,
                    "version": SERVER_VERSION,
                },
                "instructions": (
                    "Call the notify tool when you finish a task or need the "
                    "user's attention. It plays a short sound on their machine."
                ),
            })

        if method == "ping":
            return _response(req_id, {})

        if method == "tools/list":
            return _response(req_id, {"tools": TOOLS})

        if method == "tools/call":
            tool_name = params.get("name", "")
            arguments = params.get("arguments") or {}

            handler = self._tool_handler(tool_name)
            if handler is None:
                return _error(req_id, -32602, f"Unknown tool: {tool_name}")

            result = self._handle_tool(handler, arguments)
            return _response(req_id, result)

        return _error(req_id, -32601, f"Method not found: {method}")

    # --- stdio ---

    def serve(self, stdin=None) -> None:
        """Read requests from stdin until it closes."""
        for line in stdin or sys.stdin:
            line = line.strip()
            if not line:
                continue

            try:
                msg = json.loads(line)
            except json.JSONDecodeError:
                self.write({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}})
                continue

            try:
                resp = self.handle_message(msg)
            except Exception as e:
                _log(f"request failed: {e!r}")
                req_id = msg.get("id") if isinstance(msg, dict) else None
                resp = _error(req_id, -32603, f"Internal error: {e}")
            if resp is not None:
                self.write(resp)

    def write(self, msg: dict) -> None:
        """Write a JSON-RPC message to stdout."""
        self._write_raw(json.dumps(msg, separators=(",", ":")) + "\n")

    def ring_bell(self) -> None:
        self._write_raw("\x07")

    def _write_raw(self, data: str) -> None:
        with self._write_lock:
            try:
                self.stdout.write(data)
                self.stdout.flush()
            except ValueError:
                # stdout already closed at shutdown
                pass


def _log(msg: str) -> None:
    """Log to stderr (safe for MCP servers)."""
    print(f"[pingmcp] {msg}", file=sys.stderr, flush=True)


def _log_outcome(future) -> None:
    outcome = future.result()
    if not outcome.failed:
        _log(f"played with {outcome.player}")
    elif outcome.bell:
        _log(f"bell fallback: {outcome.error}")
    else:
        _log(f"playback failed: {outcome.error}")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingmcp-server", description="pingmcp MCP stdio server"
    )
    parser.add_argument(
        "--sound-dir",
        type=str,
        default=os.environ.get("PINGMCP_SOUND_DIR"),
        help="Directory holding notification.mp3 and custom/default.mp3 (default: package dir)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        default=_env_flag("PINGMCP_NO_CACHE"),
        help="Look the sound up again on every call",
    )
    parser.add_argument(
        "--two-tier",
        action="store_true",
        default=_env_flag("PINGMCP_TWO_TIER"),
        help="Only use custom/default.mp3 or notification.mp3, ignore other audio files",
    )
    return parser


def build_resolver(sound_dir: str | None, no_cache: bool = False, two_tier: bool = False):
    resolver = SoundResolver(sound_dir, include_others=not two_tier)
    return resolver if no_cache else CachedResolver(resolver)


def main(argv: list[str] | None = None) -> None:
    """Run the MCP stdio server."""
    args = build_parser().parse_args(argv)
    resolver = build_resolver(args.sound_dir, args.no_cache, args.two_tier)
    server = McpServer(resolver)

    _log(f"{SERVER_NAME} {SERVER_VERSION} MCP server starting")
    _log(f"sound dir: {resolver.root} ({'no cache' if args.no_cache else 'cached'}"
         f"{', two-tier' if args.two_tier else ''})")
    if not server.driver.supported:
        _log(f"platform {PLATFORM} has no native player, using terminal bell")
    if len(SoundResolver(resolver.root, include_others=not args.two_tier).discover()) == 1:
        _log(f"no sound files in {resolver.root}; add notification.mp3 or "
             "custom/default.mp3 there, or pass --sound-dir (terminal bell until then)")

    try:
        server.serve()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
