"""Playback sequencing over the current playlist.

The session never touches songs or tags; it only reads the playlist it was
handed and drives a playback device. A periodic caller (UI timer, browser
poll) calls tick() to advance when the current song has finished.
"""

from __future__ import annotations

import logging
import random as _random
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from .errors import NotFound
from .library import Song
from .utils import audio_length_seconds

logger = logging.getLogger(__name__)


class PlaybackDevice(Protocol):
    position: float
    length: Optional[float]

    def open(self, path: str) -> None:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def seek(self, seconds: float) -> None:
        ...

    def set_volume(self, volume: int) -> None:
        ...

    def set_muted(self, muted: bool) -> None:
        ...


class NullDevice:
    """Device that renders nothing and only keeps time.

    Used when the real output lives elsewhere (a browser tab reports its
    position back) and in tests.
    """

    def __init__(self) -> None:
        self.path: Optional[str] = None
        self.position = 0.0
        self.length: Optional[float] = None
        self.volume = 50
        self.muted = False
        self.playing = False

    def open(self, path: str) -> None:
        self.path = path
        self.position = 0.0
        self.length = audio_length_seconds(Path(path))
        self.playing = False

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def stop(self) -> None:
        self.playing = False
        self.position = 0.0

    def seek(self, seconds: float) -> None:
        self.position = max(0.0, float(seconds))

    def set_volume(self, volume: int) -> None:
        self.volume = volume

    def set_muted(self, muted: bool) -> None:
        self.muted = muted


class PlaybackSession:
    def __init__(self, device: Optional[PlaybackDevice] = None, rng: Optional[_random.Random] = None) -> None:
        self.device: PlaybackDevice = device or NullDevice()
        self.rng = rng or _random.Random()
        self.playlist: List[Song] = []
        self.current_index = -1
        self.playing = False
        self.random = False
        self.repeat = False
        self._volume = 50
        self._muted = False
        self._pre_fade_volume: Optional[int] = None

    # ---- volume

    @property
    def volume(self) -> int:
        return self._volume

    @volume.setter
    def volume(self, value: int) -> None:
        self._volume = max(0, min(100, int(value)))
        self.device.set_volume(self._volume)

    @property
    def muted(self) -> bool:
        return self._muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self._muted = bool(value)
        self.device.set_muted(self._muted)

    # ---- playlist

    def set_playlist(self, songs: Iterable[Song]) -> None:
        """Install a new playlist, keeping the current song selected if it is still in it."""
        current = self.current_song()
        self.playlist = list(songs)
        self.current_index = self._index_of(current) if current is not None else -1

    def current_song(self) -> Optional[Song]:
        if 0 <= self.current_index < len(self.playlist):
            return self.playlist[self.current_index]
        return None

    def _index_of(self, song: Song) -> int:
        for i, s in enumerate(self.playlist):
            if s is song:
                return i
        return -1

    # ---- sequencing

    def set_current(self, song: Song) -> None:
        i = self._index_of(song)
        if i < 0:
            raise NotFound("Song", getattr(song, "path", None))
        self._go(i)

    def play_song(self, song: Song) -> None:
        self.set_current(song)
        self.play()

    def first(self) -> None:
        if self.playlist:
            self._go(0)

    def last(self) -> None:
        if self.playlist:
            self._go(len(self.playlist) - 1)

    def next(self) -> None:
        n = len(self.playlist)
        if n == 0:
            self.stop()
            return
        if self.random and n > 1:
            if self.current_index < 0:
                i = self.rng.randrange(n)
            else:
                # Any entry but the current one.
                i = self.rng.randrange(n - 1)
                if i >= self.current_index:
                    i += 1
        elif self.current_index + 1 < n:
            i = self.current_index + 1
        elif self.repeat:
            i = 0
        else:
            self.stop()
            return
        self._go(i)

    def previous(self) -> None:
        n = len(self.playlist)
        if n == 0:
            return
        if self.current_index > 0:
            i = self.current_index - 1
        elif self.repeat:
            i = n - 1
        else:
            i = 0
        self._go(i)

    def _go(self, i: int) -> None:
        self.current_index = i
        self.device.open(self.playlist[i].path)
        if self.playing:
            self.device.play()

    # ---- transport

    def play(self) -> None:
        if self.current_song() is None:
            if not self.playlist:
                return
            self._go(0)
        self.device.play()
        self.playing = True

    def pause(self) -> None:
        self.device.pause()
        self.playing = False

    def stop(self) -> None:
        self.device.stop()
        self.playing = False

    def seek(self, seconds: float) -> None:
        self.device.seek(seconds)

    @property
    def position(self) -> float:
        return float(self.device.position or 0.0)

    def current_length(self) -> Optional[float]:
        if self.device.length is not None:
            return self.device.length
        song = self.current_song()
        return song.probe_length() if song is not None else None

    def tick(self) -> bool:
        """Advance if the current song has run out. Returns True if it did."""
        if not self.playing or self.current_song() is None:
            return False
        length = self.current_length()
        if length is not None and self.position >= length:
            self.next()
            return True
        return False

    # ---- device notifications

    def on_media_ended(self) -> None:
        if self.playing:
            self.next()

    def on_media_failed(self) -> None:
        song = self.current_song()
        logger.warning("Playback failed for %s; skipping", song.path if song else None)
        self.next()

    # ---- fade out

    def start_fade(self) -> None:
        self._pre_fade_volume = self._volume

    def fade_interval(self) -> float:
        """Seconds between fade steps so a full fade takes about three seconds."""
        base = self._pre_fade_volume if self._pre_fade_volume is not None else self._volume
        if base <= 3:
            return 1.0
        return 3.0 / base

    def fade_step(self) -> bool:
        """Lower the volume one notch. Returns False once the fade is over."""
        if self._pre_fade_volume is None:
            return False
        if self._volume > 0:
            self.volume = self._volume - 1
            return True
        self.stop()
        self.volume = self._pre_fade_volume
        self._pre_fade_volume = None
        return False

    @property
    def fading(self) -> bool:
        return self._pre_fade_volume is not None
