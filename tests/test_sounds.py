from pathlib import Path
from unittest.mock import patch

from pingmcp.models import BEEP_LABEL
from pingmcp.sounds import CachedResolver, SoundResolver


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"ID3")
    return path


def test_custom_wins_over_notification(tmp_path):
    custom = _touch(tmp_path / "custom" / "default.mp3")
    _touch(tmp_path / "notification.mp3")

    asset = SoundResolver(tmp_path).resolve()
    assert asset.path == str(custom.resolve())
    assert asset.label == "custom/default.mp3"
    assert asset.category == "custom"
    assert asset.priority == 1


def test_notification_when_no_custom(tmp_path):
    _touch(tmp_path / "notification.mp3")
    asset = SoundResolver(tmp_path).resolve()
    assert asset.label == "notification.mp3"
    assert Path(asset.path).is_absolute()


def test_beep_when_nothing_found(tmp_path):
    asset = SoundResolver(tmp_path).resolve()
    assert asset.path is None
    assert asset.label == BEEP_LABEL
    assert asset.is_beep


def test_missing_root_is_not_an_error(tmp_path):
    asset = SoundResolver(tmp_path / "does-not-exist").resolve()
    assert asset.path is None
    assert asset.label == "system beep"


def test_non_audio_files_are_ignored(tmp_path):
    _touch(tmp_path / "readme.txt")
    _touch(tmp_path / "sound.ogg")
    assert SoundResolver(tmp_path).resolve().is_beep


def test_other_audio_picked_alphabetically(tmp_path):
    _touch(tmp_path / "zebra.mp3")
    _touch(tmp_path / "chime.wav")
    _touch(tmp_path / "ding.m4a")

    asset = SoundResolver(tmp_path).resolve()
    assert asset.label == "chime.wav"
    assert asset.category == "other"
    assert asset.priority == 3


def test_extension_match_is_case_insensitive(tmp_path):
    _touch(tmp_path / "ALERT.WAV")
    assert SoundResolver(tmp_path).resolve().label == "ALERT.WAV"


def test_notification_preferred_over_other_audio(tmp_path):
    _touch(tmp_path / "aaa.mp3")
    _touch(tmp_path / "notification.mp3")
    assert SoundResolver(tmp_path).resolve().label == "notification.mp3"


def test_directories_are_not_sounds(tmp_path):
    (tmp_path / "notification.mp3").mkdir()
    (tmp_path / "custom" / "default.mp3").mkdir(parents=True)
    (tmp_path / "folder.wav").mkdir()
    assert SoundResolver(tmp_path).resolve().is_beep


def test_two_tier_ignores_other_audio(tmp_path):
    _touch(tmp_path / "chime.wav")
    assert SoundResolver(tmp_path, include_others=False).resolve().is_beep

    _touch(tmp_path / "notification.mp3")
    assert SoundResolver(tmp_path, include_others=False).resolve().label == "notification.mp3"


def test_listing_failure_falls_through(tmp_path):
    _touch(tmp_path / "chime.wav")
    with patch("pingmcp.sounds.os.scandir", side_effect=PermissionError("denied")):
        assert SoundResolver(tmp_path).resolve().is_beep

    _touch(tmp_path / "notification.mp3")
    with patch("pingmcp.sounds.os.scandir", side_effect=PermissionError("denied")):
        assert SoundResolver(tmp_path).resolve().label == "notification.mp3"


def test_resolve_is_deterministic(tmp_path):
    for name in ("b.mp3", "a.wav", "c.m4a"):
        _touch(tmp_path / name)
    resolver = SoundResolver(tmp_path)
    assert resolver.resolve() == resolver.resolve()
    assert resolver.resolve().label == "a.wav"


def test_uncached_resolver_sees_new_files(tmp_path):
    resolver = SoundResolver(tmp_path)
    assert resolver.resolve().is_beep
    _touch(tmp_path / "notification.mp3")
    assert resolver.resolve().label == "notification.mp3"


def test_cached_resolver_resolves_once(tmp_path):
    cached = CachedResolver(SoundResolver(tmp_path))
    assert not cached.resolved

    first = cached.resolve()
    assert first.is_beep
    assert cached.resolved

    _touch(tmp_path / "notification.mp3")
    assert cached.resolve() is first


def test_cached_resolver_is_lazy(tmp_path):
    resolver = SoundResolver(tmp_path)
    with patch.object(resolver, "resolve", wraps=resolver.resolve) as spy:
        cached = CachedResolver(resolver)
        spy.assert_not_called()
        cached.resolve()
        cached.resolve()
        assert spy.call_count == 1


def test_discover_lists_every_candidate_in_order(tmp_path):
    _touch(tmp_path / "custom" / "default.mp3")
    _touch(tmp_path / "notification.mp3")
    _touch(tmp_path / "zebra.mp3")
    _touch(tmp_path / "chime.wav")

    labels = [s.label for s in SoundResolver(tmp_path).discover()]
    assert labels == [
        "custom/default.mp3",
        "notification.mp3",
        "chime.wav",
        "zebra.mp3",
        "system beep",
    ]


def test_discover_always_ends_with_beep(tmp_path):
    sounds = SoundResolver(tmp_path).discover()
    assert len(sounds) == 1
    assert sounds[0].category == "beep"
    assert sounds[0].priority == 4


def test_unreadable_custom_dir_falls_through(tmp_path):
    _touch(tmp_path / "custom" / "default.mp3")
    _touch(tmp_path / "notification.mp3")
    real_is_file = Path.is_file

    def is_file(self):
        if self.parent.name == "custom":
            raise PermissionError(13, "Permission denied", str(self))
        return real_is_file(self)

    with patch("pathlib.Path.is_file", is_file):
        resolver = SoundResolver(tmp_path)
        assert resolver.resolve().label == "notification.mp3"
        assert [s.label for s in resolver.discover()] == ["notification.mp3", "system beep"]


def test_unreadable_root_resolves_to_beep(tmp_path):
    _touch(tmp_path / "notification.mp3")
    with patch("pathlib.Path.is_file", side_effect=PermissionError(13, "Permission denied")), \
         patch("pingmcp.sounds.os.scandir", side_effect=PermissionError(13, "Permission denied")):
        assert SoundResolver(tmp_path).resolve().is_beep
