"""Native audio playback with a terminal-bell fallback.

Each platform maps to an ordered list of command-line players. The first
player whose executable is on PATH is launched detached (null stdio, own
session) and play() returns at once. A watcher thread waits on the child;
if it exits non-zero the next player is tried, and if the list runs out the
bell rings. The bell rings at most once per play() call and never after a
clean exit.

Nothing raised in here reaches the caller: play() hands back a Future that
always resolves to a PlaybackOutcome.
"""

import base64
import shutil
import subprocess
import sys
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable

from .models import PlaybackOutcome, SoundAsset

BELL = "\x07"


def detect_platform() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


# Detected once at import.
PLATFORM = detect_platform()


@dataclass(frozen=True)
class Player:
    command: str
    build_args: Callable[[str], list[str]]

    def argv(self, executable: str, path: str) -> list[str]:
        return [executable, *self.build_args(path)]


def _file_only(path: str) -> list[str]:
    return [path]


def _ffplay_args(path: str) -> list[str]:
    return ["-nodisp", "-autoexit", "-loglevel", "error", path]


def _powershell_args(path: str) -> list[str]:
    # -EncodedCommand takes base64 of UTF-16LE, which sidesteps shell quoting
    escaped = path.replace('"', '""')
    command = f'(New-Object Media.SoundPlayer "{escaped}").PlaySync()'
    encoded = base64.b64encode(command.encode("utf-16-le")).decode("ascii")
    return ["-NoProfile", "-EncodedCommand", encoded]


PLAYERS: dict[str, tuple[Player, ...]] = {
    "darwin": (
        Player("afplay", _file_only),
    ),
    "linux": (
        Player("paplay", _file_only),   # PulseAudio / PipeWire
        Player("aplay", _file_only),    # ALSA
        Player("play", _file_only),     # SoX
        Player("ffplay", _ffplay_args),
    ),
    "win32": (
        Player("powershell", _powershell_args),
    ),
}


def ring_bell(stream=None) -> None:
    """Write the BEL control character to stdout."""
    stream = stream or sys.stdout
    try:
        stream.write(BELL)
        stream.flush()
    except (OSError, ValueError):
        # stdout closed; there is nowhere left to ring
        pass


def _spawn_kwargs(platform: str) -> dict:
    kwargs = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
    }
    if platform == "win32":
        kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    else:
        kwargs["start_new_session"] = True
    return kwargs


class PlaybackDriver:
    def __init__(
        self,
        platform: str = PLATFORM,
        players: dict[str, tuple[Player, ...]] | None = None,
        bell: Callable[[], None] | None = None,
    ):
        self.platform = platform
        self.players = PLAYERS if players is None else players
        self.bell = bell or ring_bell

    @property
    def supported(self) -> bool:
        return bool(self.players.get(self.platform))

    def play(self, asset: SoundAsset) -> Future:
        """Start playback and return immediately.

        The returned future resolves to a PlaybackOutcome once the player
        exits (or at once when no player could be started). Callers may
        ignore it.
        """
        future: Future = Future()
        outcome = PlaybackOutcome()

        if asset.path is None:
            outcome.error = "no sound file"
            self._finish_with_bell(future, outcome)
            return future

        candidates = list(self.players.get(self.platform, ()))
        if not candidates:
            outcome.error = f"unsupported platform: {self.platform}"
            self._finish_with_bell(future, outcome)
            return future

        proc = self._launch_next(candidates, asset.path, outcome)
        if proc is None:
            self._finish_with_bell(future, outcome)
            return future

        watcher = threading.Thread(
            target=self._watch,
            args=(proc, candidates, asset.path, outcome, future),
            name="pingmcp-playback",
            daemon=True,
        )
        watcher.start()
        return future

    def _launch_next(self, candidates: list[Player], path: str, outcome: PlaybackOutcome):
        """Pop players off ``candidates`` until one starts. Returns the Popen or None."""
        while candidates:
            player = candidates.pop(0)
            outcome.player = player.command
            executable = shutil.which(player.command)
            if not executable:
                outcome.error = f"command not found: {player.command}"
                continue
            try:
                proc = subprocess.Popen(
                    player.argv(executable, path), **_spawn_kwargs(self.platform)
                )
            except OSError as e:
                outcome.error = f"{player.command}: {e}"
                continue
            outcome.attempted = True
            outcome.returncode = None
            return proc
        return None

    def _watch(self, proc, candidates, path, outcome, future) -> None:
        try:
            while proc is not None:
                returncode = proc.wait()
                outcome.returncode = returncode
                if returncode == 0:
                    outcome.failed = False
                    outcome.error = ""
                    future.set_result(outcome)
                    return
                outcome.error = f"{outcome.player} exited with code {returncode}"
                proc = self._launch_next(candidates, path, outcome)
        except OSError as e:
            outcome.error = str(e)
        self._finish_with_bell(future, outcome)

    def _finish_with_bell(self, future: Future, outcome: PlaybackOutcome) -> None:
        outcome.failed = True
        try:
            self.bell()
            outcome.bell = True
        except OSError as e:
            outcome.error = outcome.error or str(e)
        future.set_result(outcome)


def play_and_wait(asset: SoundAsset, timeout: float | None = None, **driver_kwargs) -> PlaybackOutcome:
    """Blocking helper for the diagnostics CLI."""
    future = PlaybackDriver(**driver_kwargs).play(asset)
    return future.result(timeout=timeout)
