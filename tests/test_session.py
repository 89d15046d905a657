"""Tests for playback sequencing."""

from __future__ import annotations

import random
from typing import List, Optional

import pytest

from conftest import p
from musictagger.errors import NotFound
from musictagger.library import LibraryIndex, Song
from musictagger.session import NullDevice, PlaybackSession


class RecordingDevice(NullDevice):
    def __init__(self, length: Optional[float] = 10.0) -> None:
        super().__init__()
        self.opened: List[str] = []
        self.fixed_length = length

    def open(self, path: str) -> None:
        self.opened.append(path)
        self.path = path
        self.position = 0.0
        self.length = self.fixed_length


@pytest.fixture
def songs(index: LibraryIndex) -> List[Song]:
    return [index.register_song(p(f"{n}.mp3")) for n in ("one", "two", "three")]


@pytest.fixture
def device() -> RecordingDevice:
    return RecordingDevice()


@pytest.fixture
def session(device: RecordingDevice, songs: List[Song]) -> PlaybackSession:
    ses = PlaybackSession(device, rng=random.Random(1))
    ses.set_playlist(songs)
    return ses


class TestSequencing:
    def test_starts_with_nothing_selected(self, session: PlaybackSession) -> None:
        assert session.current_index == -1
        assert session.current_song() is None

    def test_play_starts_at_first(self, session: PlaybackSession, device: RecordingDevice, songs) -> None:
        session.play()
        assert session.current_song() is songs[0]
        assert device.playing
        assert device.opened == [songs[0].path]

    def test_next_previous_first_last(self, session: PlaybackSession, songs) -> None:
        session.first()
        session.next()
        assert session.current_song() is songs[1]
        session.last()
        assert session.current_song() is songs[2]
        session.previous()
        assert session.current_song() is songs[1]

    def test_next_at_end_stops_without_repeat(self, session: PlaybackSession, songs) -> None:
        session.play_song(songs[2])
        session.next()
        assert session.playing is False
        assert session.current_song() is songs[2]

    def test_next_at_end_wraps_with_repeat(self, session: PlaybackSession, songs, device) -> None:
        session.repeat = True
        session.play_song(songs[2])
        session.next()
        assert session.current_song() is songs[0]
        assert session.playing and device.playing

    def test_previous_at_start(self, session: PlaybackSession, songs) -> None:
        session.first()
        session.previous()
        assert session.current_song() is songs[0]
        session.repeat = True
        session.previous()
        assert session.current_song() is songs[2]

    def test_random_never_repeats_current(self, session: PlaybackSession) -> None:
        session.random = True
        session.first()
        for _ in range(30):
            before = session.current_index
            session.next()
            assert session.current_index != before

    def test_set_current_requires_playlist_member(self, session: PlaybackSession, index: LibraryIndex) -> None:
        with pytest.raises(NotFound):
            session.set_current(index.register_song(p("other.mp3")))

    def test_set_current_does_not_start(self, session: PlaybackSession, songs) -> None:
        session.set_current(songs[1])
        assert session.current_song() is songs[1]
        assert session.playing is False

    def test_empty_playlist(self, device: RecordingDevice) -> None:
        ses = PlaybackSession(device)
        ses.play()
        ses.next()
        ses.previous()
        ses.first()
        assert ses.current_song() is None
        assert device.opened == []


class TestPlaylistSwap:
    def test_keeps_current_when_still_listed(self, session: PlaybackSession, songs) -> None:
        session.play_song(songs[1])
        session.set_playlist([songs[2], songs[1]])
        assert session.current_index == 1
        assert session.current_song() is songs[1]

    def test_resets_when_gone(self, session: PlaybackSession, songs) -> None:
        session.play_song(songs[1])
        session.set_playlist([songs[0]])
        assert session.current_index == -1
        session.next()
        assert session.current_song() is songs[0]


class TestPolling:
    def test_tick_advances_when_finished(self, session: PlaybackSession, device: RecordingDevice, songs) -> None:
        session.play()
        assert session.tick() is False
        device.seek(10.0)
        assert session.tick() is True
        assert session.current_song() is songs[1]
        assert device.position == 0.0

    def test_tick_ignored_when_paused(self, session: PlaybackSession, device: RecordingDevice) -> None:
        session.play()
        session.pause()
        device.seek(99)
        assert session.tick() is False

    def test_unknown_length_never_advances(self, songs) -> None:
        device = RecordingDevice(length=None)
        ses = PlaybackSession(device)
        ses.set_playlist(songs)
        ses.play()
        device.seek(1000)
        # The song files do not exist, so mutagen reports no length either.
        assert ses.tick() is False

    def test_media_ended_and_failed(self, session: PlaybackSession, songs) -> None:
        session.play()
        session.on_media_ended()
        assert session.current_song() is songs[1]
        session.on_media_failed()
        assert session.current_song() is songs[2]


class TestVolume:
    def test_volume_is_clamped(self, session: PlaybackSession, device: RecordingDevice) -> None:
        session.volume = 140
        assert session.volume == 100 and device.volume == 100
        session.volume = -3
        assert session.volume == 0

    def test_mute(self, session: PlaybackSession, device: RecordingDevice) -> None:
        session.muted = True
        assert device.muted

    def test_fade_out(self, session: PlaybackSession) -> None:
        session.volume = 3
        session.play()
        session.start_fade()
        assert session.fade_interval() == 1.0
        steps = 0
        while session.fade_step():
            steps += 1
        assert steps == 3
        assert session.playing is False
        assert session.volume == 3
        assert not session.fading

    def test_fade_interval_scales(self, session: PlaybackSession) -> None:
        session.volume = 60
        session.start_fade()
        assert session.fade_interval() == pytest.approx(0.05)
