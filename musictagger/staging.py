"""Holding area for songs that still need tags."""

from __future__ import annotations

from typing import Iterable, List

from .library import LibraryIndex, Song, Tag
from .utils import expand_import_paths


class ImportStaging:
    def __init__(self, index: LibraryIndex) -> None:
        self.index = index
        self._songs: List[Song] = []

    @property
    def songs(self) -> List[Song]:
        return list(self._songs)

    @property
    def paths(self) -> List[str]:
        return [s.path for s in self._songs]

    def __len__(self) -> int:
        return len(self._songs)

    def __contains__(self, song: object) -> bool:
        return any(s is song for s in self._songs)

    def add_to_import(self, paths: Iterable[str]) -> List[Song]:
        """Register each path and stage it once.

        Directories are expanded to the audio files beneath them. Returns the
        songs that were newly staged.
        """
        added: List[Song] = []
        for path in expand_import_paths(paths):
            song = self.index.register_song(path)
            if song not in self:
                self._songs.append(song)
                added.append(song)
        return added

    def retag(self, songs: Iterable[Song]) -> List[Song]:
        """Send already indexed songs back to staging for reclassification."""
        batch = list(songs)
        for song in batch:
            self.index.require_song(song)
        added: List[Song] = []
        for song in batch:
            if song not in self:
                self._songs.append(song)
                added.append(song)
        return added

    def remove_from_import(self, songs: Iterable[Song]) -> None:
        drop = {id(s) for s in songs}
        self._songs = [s for s in self._songs if id(s) not in drop]

    def clear_import(self) -> None:
        """Drop staged songs that already carry at least one tag."""
        self._songs = [s for s in self._songs if not s.tag_ids]

    def assign_tags(
        self,
        songs: Iterable[Song],
        tags: Iterable[Tag],
        remove_from_import_after: bool = False,
        overwrite_existing: bool = False,
    ) -> None:
        """Link every selected tag to every selected song.

        All songs and tags are validated before anything changes, so a bad
        reference leaves every song as it was.
        """
        song_list = _unique(songs)
        tag_list = _unique(tags)
        for song in song_list:
            self.index.require_song(song)
        for tag in tag_list:
            self.index.require_tag(tag)

        for song in song_list:
            if overwrite_existing:
                self.index.clear_tags(song)
            for tag in tag_list:
                self.index.link_tag(song, tag)

        if remove_from_import_after:
            self.remove_from_import(song_list)

    def reset(self, songs: Iterable[Song] = ()) -> None:
        self._songs = _unique(songs)


def _unique(items: Iterable) -> list:
    out = []
    seen = set()
    for item in items:
        if id(item) in seen:
            continue
        seen.add(id(item))
        out.append(item)
    return out
