"""CLI subcommands for running the server and checking sound playback."""

import json
import os
import platform
import shutil
import subprocess
import sys
import time
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from pathlib import Path

from .models import SoundAsset
from .player import PLATFORM, PLAYERS, PlaybackDriver, ring_bell
from .sounds import DEFAULT_SOUND, SoundResolver

CATEGORIES = ("custom", "notification", "other", "beep")
TEST_MESSAGE = "Cross-platform test notification"
NATIVE_TIMEOUT = 5
SERVER_TIMEOUT = 10


def _resolver() -> SoundResolver:
    return SoundResolver(os.environ.get("PINGMCP_SOUND_DIR"))


def _beep_loud(times: int = 3, gap: float = 0.2) -> None:
    """Several bells in a row; a single one is easy to miss when checking by ear."""
    for i in range(times):
        ring_bell()
        if i < times - 1:
            time.sleep(gap)


# --- Sound commands ---

def cmd_sounds() -> None:
    resolver = _resolver()
    chosen = resolver.resolve()
    sounds = resolver.discover()

    print(f"sound dir: {resolver.root}")
    print(f"{'PRIORITY':<9} {'CATEGORY':<13} {'SOUND':<30} PATH")
    print("-" * 72)
    for sound in sounds:
        marker = "*" if sound == chosen else " "
        print(f"{marker}{sound.priority:<8} {sound.category:<13} {sound.label:<30} {sound.path or ''}")
    print()
    print(f"notify will use: {chosen.label}")


def cmd_play(only: str | None = None) -> None:
    sounds = _resolver().discover()
    if only:
        sounds = [s for s in sounds if s.category == only]
    if not sounds:
        print(f"no {only} sounds found")
        return

    # The bell only rings here for the beep entry, so a failing player is visible
    driver = PlaybackDriver(bell=lambda: None)
    failed = 0
    for i, sound in enumerate(sounds, 1):
        print(f"{i}/{len(sounds)} {sound.category}: {sound.label}", flush=True)
        if sound.is_beep:
            _beep_loud()
            print("   bell sent (silent if the terminal bell is disabled)")
        else:
            outcome = driver.play(sound).result()
            if outcome.failed:
                failed += 1
                print(f"   failed: {outcome.error}")
            else:
                print(f"   played with {outcome.player}")
        if i < len(sounds):
            time.sleep(1)

    if failed:
        sys.exit(1)


# --- Cross-platform check ---

def detect_environment() -> dict:
    return {
        "os": PLATFORM,
        "python": platform.python_version(),
        "arch": platform.machine(),
        "is_wsl": bool(os.environ.get("WSL_DISTRO_NAME")),
        "wsl_distro": os.environ.get("WSL_DISTRO_NAME", ""),
    }


def check_native_audio(resolver: SoundResolver) -> dict:
    path = resolver.root / DEFAULT_SOUND
    if not path.is_file():
        return {"success": False, "reason": "No audio file"}
    if PLATFORM not in PLAYERS:
        return {"success": False, "reason": "Unsupported platform"}

    asset = SoundAsset.from_path(path, resolver.root, "notification", 2)
    future = PlaybackDriver(bell=lambda: None).play(asset)
    try:
        outcome = future.result(timeout=NATIVE_TIMEOUT)
    except FutureTimeout:
        return {"success": False, "reason": "Timeout"}
    if outcome.failed:
        return {"success": False, "reason": outcome.error or f"Exit code {outcome.returncode}"}
    return {"success": True, "player": outcome.player}


def check_system_beep() -> dict:
    ring_bell()
    time.sleep(0.5)
    return {"success": True}


def check_mcp_server() -> dict:
    request = {
        "jsonrpc": "2.0",
        "method": "tools/call",
        "params": {"name": "notify", "arguments": {"message": TEST_MESSAGE}},
        "id": 1,
    }
    try:
        proc = subprocess.run(
            [sys.executable, "-m", "pingmcp"],
            input=json.dumps(request) + "\n",
            capture_output=True,
            text=True,
            timeout=SERVER_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        return {"success": False, "reason": "Timeout"}
    except OSError as e:
        return {"success": False, "reason": str(e)}

    output = proc.stdout.replace("\x07", "").strip()
    if TEST_MESSAGE in output or "Notification" in output:
        return {"success": True, "output": output}
    if proc.returncode != 0:
        return {"success": False, "reason": f"Exit code {proc.returncode}", "output": proc.stderr.strip()}
    return {"success": False, "reason": "Invalid response", "output": output}


def cmd_check(save: bool = False) -> None:
    env = detect_environment()
    print("pingmcp cross-platform check")
    print(f"  platform: {env['os']} {env['arch']}")
    print(f"  python:   {env['python']}")
    if env["is_wsl"]:
        print(f"  wsl:      {env['wsl_distro']}")
    print()

    resolver = _resolver()
    checks = [
        ("Native Audio", "native_audio", lambda: check_native_audio(resolver)),
        ("System Beep", "system_beep", check_system_beep),
        ("MCP Server", "mcp_server", check_mcp_server),
    ]

    results = {"platform": env["os"]}
    passed = 0
    for title, key, check in checks:
        print(f"{title}...", flush=True)
        result = check()
        results[key] = result
        if result["success"]:
            passed += 1
            print("   PASS")
        else:
            print(f"   FAIL: {result.get('reason', '')}")

    print()
    print(f"{passed}/{len(checks)} checks passed")

    if save:
        out = Path.cwd() / f"test-results-{env['os']}-{int(time.time() * 1000)}.json"
        out.write_text(json.dumps({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": env,
            "results": results,
            "summary": {"passed": passed, "total": len(checks)},
        }, indent=2) + "\n")
        print(f"results saved to: {out}")

    if passed != len(checks):
        sys.exit(1)


def cmd_mcp_config() -> None:
    """Print a .mcp.json entry for Codex, Gemini, and other stdio clients."""
    config = {
        "mcpServers": {
            "pingmcp": {
                "type": "stdio",
                "command": sys.executable,
                "args": ["-m", "pingmcp"],
            }
        }
    }
    print(json.dumps(config, indent=2))
    if shutil.which("claude"):
        print()
        print(f"Claude Code: claude mcp add pingmcp -- {sys.executable} -m pingmcp")


def main() -> None:
    if len(sys.argv) < 2:
        _usage()
        sys.exit(1)

    command = sys.argv[1]
    rest = sys.argv[2:]

    if command == "serve":
        from .mcp import main as mcp_main
        mcp_main(rest)
    elif command == "sounds":
        cmd_sounds()
    elif command == "play":
        only = rest[0] if rest else None
        if only and only not in CATEGORIES:
            print(f"Usage: pingmcp play [{'|'.join(CATEGORIES)}]", file=sys.stderr)
            sys.exit(1)
        cmd_play(only)
    elif command == "check":
        cmd_check(save="--save" in rest)
    elif command == "mcp-config":
        cmd_mcp_config()
    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        _usage()
        sys.exit(1)


def _usage() -> None:
    print("Usage: pingmcp <serve|sounds|play|check|mcp-config> [args]", file=sys.stderr)
    print("", file=sys.stderr)
    print("  serve       [--sound-dir DIR] [--no-cache] [--two-tier]", file=sys.stderr)
    print("  sounds      list discovered sounds in priority order", file=sys.stderr)
    print("  play        [custom|notification|other|beep]", file=sys.stderr)
    print("  check       [--save]", file=sys.stderr)
    print("  mcp-config  print a .mcp.json entry", file=sys.stderr)


if __name__ == "__main__":
    main()
