"""Shared fixtures for musictagger tests.

- Fakes: an in-memory filesystem collaborator that records calls and can be
  told to fail.
- Factories: a library index pre-populated with the Rock/Favorite scenario.
"""

from __future__ import annotations

import os
from typing import Dict, List, Set, Tuple

import pytest

from musictagger.errors import DeleteFailed, MoveFailed
from musictagger.library import LibraryIndex, Song, Tag
from musictagger.utils import normalize_path


class FakeFileSystem:
    def __init__(self) -> None:
        self.moves: List[Tuple[str, str]] = []
        self.deletes: List[str] = []
        self.fail_moves: Set[str] = set()
        self.fail_deletes: Set[str] = set()

    def move(self, src: str, dst: str) -> None:
        if src in self.fail_moves:
            raise MoveFailed(src, dst, "disk says no")
        self.moves.append((src, dst))

    def delete(self, path: str) -> None:
        if path in self.fail_deletes:
            raise DeleteFailed(path, "file is locked")
        self.deletes.append(path)


def p(name: str) -> str:
    """Absolute song path under a fixed fake music root."""
    return normalize_path(os.path.join(os.sep, "music", name))


def assert_mirrored(index: LibraryIndex) -> None:
    for song in index.songs:
        for tag_id in song.tag_ids:
            assert song.path in index.get_tag(tag_id).song_paths
    for tag in index.tags:
        for path in tag.song_paths:
            assert tag.id in index.get_song(path).tag_ids
    index.check_integrity()


@pytest.fixture
def fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def index(fs: FakeFileSystem) -> LibraryIndex:
    return LibraryIndex(fs)


@pytest.fixture
def scenario(index: LibraryIndex) -> Dict[str, object]:
    """Tags 1 Rock/Genre and 2 Favorite/Rating; a.mp3 -> 1,2 and b.mp3 -> 1."""
    rock = index.create_tag("Rock", "Genre", 1)
    fav = index.create_tag("Favorite", "Rating", 2)
    a = index.register_song(p("a.mp3"))
    b = index.register_song(p("b.mp3"))
    index.link_tag(a, rock)
    index.link_tag(a, fav)
    index.link_tag(b, rock)
    return {"index": index, "rock": rock, "fav": fav, "a": a, "b": b}
