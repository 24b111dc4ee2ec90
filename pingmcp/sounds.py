"""Notification sound lookup.

Resolution order, first existing regular file wins:

  1. custom/default.mp3        operator override, relative to the sound root
  2. notification.mp3          bundled default
  3. any other .mp3/.wav/.m4a in the sound root, alphabetically
  4. system beep               no file, ring the terminal bell

Tier 3 can be switched off (include_others=False) for the narrower
custom → notification.mp3 → beep policy.

A missing file is never an error. A directory that cannot be listed counts
as having no candidates.
"""

import os
from pathlib import Path

from .models import SoundAsset

DEFAULT_ROOT = Path(__file__).resolve().parent

CUSTOM_SOUND = Path("custom") / "default.mp3"
DEFAULT_SOUND = "notification.mp3"
AUDIO_EXTENSIONS = (".mp3", ".wav", ".m4a")


def is_audio_file(name: str) -> bool:
    return name.lower().endswith(AUDIO_EXTENSIONS)


def _is_file(path: Path) -> bool:
    """Path.is_file, with an unreadable parent counting as no file."""
    try:
        return path.is_file()
    except OSError:
        return False


class SoundResolver:
    """Re-scans the sound root on every call."""

    def __init__(self, root: str | Path | None = None, include_others: bool = True):
        self.root = Path(root).resolve() if root else DEFAULT_ROOT
        self.include_others = include_others

    def resolve(self) -> SoundAsset:
        custom = self._custom()
        if custom:
            return custom

        others = self._listing() if self.include_others else []
        default = self.root / DEFAULT_SOUND
        if DEFAULT_SOUND in others or _is_file(default):
            return SoundAsset.from_path(default, self.root, "notification", 2)

        if others:
            return SoundAsset.from_path(self.root / others[0], self.root, "other", 3)

        return SoundAsset.beep()

    def discover(self) -> list[SoundAsset]:
        """Every candidate in priority order, ending with the beep."""
        found = []
        custom = self._custom()
        if custom:
            found.append(custom)

        default = self.root / DEFAULT_SOUND
        if _is_file(default):
            found.append(SoundAsset.from_path(default, self.root, "notification", 2))

        if self.include_others:
            for name in self._listing():
                if name == DEFAULT_SOUND:
                    continue
                found.append(SoundAsset.from_path(self.root / name, self.root, "other", 3))

        found.append(SoundAsset.beep())
        return found

    def _custom(self) -> SoundAsset | None:
        path = self.root / CUSTOM_SOUND
        if _is_file(path):
            return SoundAsset.from_path(path, self.root, "custom", 1)
        return None

    def _listing(self) -> list[str]:
        """Audio filenames directly in the root, sorted. One scan, no retry."""
        try:
            with os.scandir(self.root) as it:
                names = [
                    entry.name for entry in it
                    if is_audio_file(entry.name) and entry.is_file()
                ]
        except OSError:
            return []
        return sorted(names)


class CachedResolver:
    """Resolves once, on first use, and reuses that asset for the process lifetime."""

    def __init__(self, resolver: SoundResolver):
        self.resolver = resolver
        self._asset: SoundAsset | None = None

    @property
    def root(self) -> Path:
        return self.resolver.root

    @property
    def resolved(self) -> bool:
        return self._asset is not None

    def resolve(self) -> SoundAsset:
        if self._asset is None:
            self._asset = self.resolver.resolve()
        return self._asset
