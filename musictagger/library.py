"""In-memory registry of songs and tags.

Songs and tags reference each other by key only: a Song keeps the ids of its
tags and a Tag keeps the paths of its songs. The LibraryIndex owns both sides
and is the only place that mutates the relation, so the two halves always
mirror each other.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .errors import CorruptDocument, DeleteFailed, DuplicateIdentifier, MoveFailed, NotFound, PathCollision, TaggerError
from .fs import FileSystem, LocalFileSystem
from .utils import audio_length_seconds, normalize_path


@dataclass(eq=False)
class Song:
    path: str
    # Registration order; survives relocation and drives playlist ordering.
    seq: int = 0
    tag_ids: Set[int] = field(default_factory=set)
    length_sec: Optional[float] = field(default=None, repr=False)

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)

    @property
    def song_name(self) -> str:
        return os.path.splitext(self.file_name)[0]

    def probe_length(self) -> Optional[float]:
        if self.length_sec is None:
            self.length_sec = audio_length_seconds(Path(self.path))
        return self.length_sec


@dataclass(eq=False)
class Tag:
    id: int
    name: str = ""
    category: str = ""
    # Member song paths; a dict keeps insertion order.
    song_paths: Dict[str, None] = field(default_factory=dict)

    def __str__(self) -> str:
        names = ", ".join(os.path.basename(p) for p in self.song_paths)
        return f"ID: {self.id}, Name: {self.name}, Category: {self.category}, SongNames: {names}"


class LibraryIndex:
    def __init__(self, fs: Optional[FileSystem] = None) -> None:
        self.fs: FileSystem = fs or LocalFileSystem()
        self._tags: Dict[int, Tag] = {}
        self._songs: Dict[str, Song] = {}
        self._next_seq = 0

    # ---- queries

    @property
    def tags(self) -> List[Tag]:
        return list(self._tags.values())

    @property
    def songs(self) -> List[Song]:
        return sorted(self._songs.values(), key=lambda s: s.seq)

    def get_tag(self, tag_id: int) -> Optional[Tag]:
        return self._tags.get(tag_id)

    def get_song(self, path: str) -> Optional[Song]:
        return self._songs.get(normalize_path(path))

    def has_tag(self, tag: Optional[Tag]) -> bool:
        return tag is not None and self._tags.get(tag.id) is tag

    def has_song(self, song: Optional[Song]) -> bool:
        return song is not None and self._songs.get(song.path) is song

    def tags_of(self, song: Song) -> List[Tag]:
        self.require_song(song)
        return [t for t in self._tags.values() if t.id in song.tag_ids]

    def songs_of(self, tag: Tag) -> List[Song]:
        self.require_tag(tag)
        return sorted((self._songs[p] for p in tag.song_paths), key=lambda s: s.seq)

    def tags_by_category(self) -> Dict[str, List[Tag]]:
        """Group tags by category for display. Categories sort by name."""
        groups: Dict[str, List[Tag]] = {}
        for t in self._tags.values():
            groups.setdefault(t.category, []).append(t)
        return {k: groups[k] for k in sorted(groups, key=str.lower)}

    def require_tag(self, tag: Optional[Tag]) -> Tag:
        if not self.has_tag(tag):
            raise NotFound("Tag", getattr(tag, "id", None))
        return tag

    def require_song(self, song: Optional[Song]) -> Song:
        if not self.has_song(song):
            raise NotFound("Song", getattr(song, "path", None))
        return song

    # ---- tags

    def create_tag(self, name: str, category: str, requested_id: Optional[int] = None) -> Tag:
        if requested_id is not None:
            tag_id = int(requested_id)
            if tag_id in self._tags:
                raise DuplicateIdentifier(tag_id)
        else:
            # Freed ids can come back: max is taken over the live tags only.
            tag_id = max(self._tags) + 1 if self._tags else 0
        tag = Tag(id=tag_id, name=name, category=category)
        self._tags[tag_id] = tag
        return tag

    def update_tag(self, tag: Tag, name: str, category: str) -> Tag:
        self.require_tag(tag)
        tag.name = name
        tag.category = category
        return tag

    def remove_tag(self, tag: Optional[Tag]) -> None:
        if not self.has_tag(tag):
            return
        for path in list(tag.song_paths):
            song = self._songs.get(path)
            if song is not None:
                self._unlink(song, tag)
        tag.song_paths.clear()
        del self._tags[tag.id]

    # ---- songs

    def register_song(self, path: str) -> Song:
        key = normalize_path(path)
        song = self._songs.get(key)
        if song is None:
            song = Song(path=key, seq=self._next_seq)
            self._next_seq += 1
            self._songs[key] = song
        return song

    def link_tag(self, song: Song, tag: Tag) -> None:
        self.require_song(song)
        self.require_tag(tag)
        self._link(song, tag)

    def unlink_tag(self, song: Song, tag: Tag) -> None:
        self.require_song(song)
        self.require_tag(tag)
        self._unlink(song, tag)

    def clear_tags(self, song: Song) -> None:
        self.require_song(song)
        for tag_id in list(song.tag_ids):
            self._unlink(song, self._tags[tag_id])

    def relocate_song(self, song: Song, new_path: str) -> Song:
        """Move the song's file and re-key it under new_path.

        The index is only touched after the filesystem reports success.
        """
        self.require_song(song)
        new_key = normalize_path(new_path)
        if new_key == song.path:
            return song
        if new_key in self._songs:
            raise PathCollision(new_key)

        old_key = song.path
        try:
            self.fs.move(old_key, new_key)
        except OSError as exc:
            raise MoveFailed(old_key, new_key, str(exc)) from exc

        del self._songs[old_key]
        song.path = new_key
        song.length_sec = None
        self._songs[new_key] = song
        for tag_id in song.tag_ids:
            members = self._tags[tag_id].song_paths
            members.pop(old_key, None)
            members[new_key] = None
        return song

    def move_songs(self, songs: Iterable[Song], directory: str) -> List[TaggerError]:
        """Relocate each song into directory, keeping its file name.

        Failures are collected per song; the rest of the batch still runs.
        """
        failures: List[TaggerError] = []
        for song in list(songs):
            try:
                self.relocate_song(song, os.path.join(directory, song.file_name))
            except (NotFound, PathCollision, MoveFailed) as exc:
                failures.append(exc)
        return failures

    def remove_song(self, song: Song, also_delete_file: bool = False) -> None:
        """Drop a song from the index, optionally deleting its file.

        The index removal is committed before the delete is attempted, so a
        DeleteFailed leaves the song unindexed.
        """
        self.require_song(song)
        for tag_id in list(song.tag_ids):
            self._unlink(song, self._tags[tag_id])
        del self._songs[song.path]
        if also_delete_file:
            try:
                self.fs.delete(song.path)
            except OSError as exc:
                raise DeleteFailed(song.path, str(exc)) from exc

    def remove_songs(self, songs: Iterable[Song], also_delete_file: bool = False) -> List[DeleteFailed]:
        batch = list(songs)
        for song in batch:
            self.require_song(song)
        failures: List[DeleteFailed] = []
        for song in batch:
            if not self.has_song(song):
                # Same song listed twice.
                continue
            try:
                self.remove_song(song, also_delete_file=also_delete_file)
            except DeleteFailed as exc:
                failures.append(exc)
        return failures

    # ---- integrity

    def check_integrity(self) -> None:
        """Raise CorruptDocument if the song/tag mappings do not mirror."""
        for song in self._songs.values():
            for tag_id in song.tag_ids:
                tag = self._tags.get(tag_id)
                if tag is None or song.path not in tag.song_paths:
                    raise CorruptDocument(f"Song '{song.path}' points at tag {tag_id} which does not list it")
        for tag in self._tags.values():
            for path in tag.song_paths:
                song = self._songs.get(path)
                if song is None or tag.id not in song.tag_ids:
                    raise CorruptDocument(f"Tag {tag.id} lists '{path}' which does not point back")

    # Both halves of the relation change together, only here.

    @staticmethod
    def _link(song: Song, tag: Tag) -> None:
        song.tag_ids.add(tag.id)
        tag.song_paths[song.path] = None

    @staticmethod
    def _unlink(song: Song, tag: Tag) -> None:
        song.tag_ids.discard(tag.id)
        tag.song_paths.pop(song.path, None)
