from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Set

from .library import LibraryIndex, Song, Tag


class FilterMode(str, Enum):
    # Standard behaves exactly like Or; it is the default when at most one tag is picked.
    STANDARD = "standard"
    AND = "and"
    OR = "or"


def build_playlist(index: LibraryIndex, tags: Iterable[Tag], mode: FilterMode = FilterMode.STANDARD) -> List[Song]:
    """Songs matching the selected tags, in registration order.

    Duplicate tags in the selection collapse. An empty selection gives an
    empty playlist for every mode.
    """
    selected: Dict[int, Tag] = {}
    for t in tags:
        index.require_tag(t)
        selected[t.id] = t
    if not selected:
        return []

    mode = FilterMode(mode)
    members = [set(t.song_paths) for t in selected.values()]
    if mode is FilterMode.AND:
        paths: Set[str] = set.intersection(*members)
    else:
        paths = set.union(*members)

    songs = (index.get_song(p) for p in paths)
    return sorted((s for s in songs if s is not None), key=lambda s: s.seq)
