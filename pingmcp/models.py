"""Dataclasses for resolved sounds and playback outcomes."""

from dataclasses import dataclass
from pathlib import Path

BEEP_LABEL = "system beep"


@dataclass(frozen=True)
class SoundAsset:
    path: str | None = None
    label: str = BEEP_LABEL
    category: str = "beep"  # custom, notification, other, beep
    priority: int = 4

    @property
    def is_beep(self) -> bool:
        return self.path is None

    @classmethod
    def beep(cls) -> "SoundAsset":
        return cls()

    @classmethod
    def from_path(cls, path: Path, root: Path, category: str, priority: int) -> "SoundAsset":
        """Build an asset whose label is the path relative to ``root``."""
        try:
            label = path.relative_to(root).as_posix()
        except ValueError:
            label = path.name
        return cls(path=str(path), label=label, category=category, priority=priority)


@dataclass
class PlaybackOutcome:
    """What happened to one play() call. Never returned to the tool caller."""
    attempted: bool = False
    failed: bool = False
    player: str = ""
    returncode: int | None = None
    error: str = ""
    bell: bool = False
