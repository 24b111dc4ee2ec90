import sys

import pytest

from pingmcp.models import SoundAsset
from pingmcp.player import Player


def python_player(code: str) -> Player:
    """A player backed by the running interpreter, for deterministic exit codes."""
    return Player(sys.executable, lambda path: ["-c", code, path])


OK_PLAYER = python_player("pass")
FAILING_PLAYER = python_player("import sys; sys.exit(3)")
SLOW_PLAYER = python_player("import time; time.sleep(3)")
MISSING_PLAYER = Player("pingmcp-no-such-player", lambda path: [path])


class BellCounter:
    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1


@pytest.fixture
def bell():
    return BellCounter()


@pytest.fixture
def sound_file(tmp_path):
    path = tmp_path / "notification.mp3"
    path.write_bytes(b"ID3")
    return SoundAsset(path=str(path), label="notification.mp3", category="notification", priority=2)
