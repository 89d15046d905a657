"""Tests for the playlist filter engine."""

from __future__ import annotations

import pytest

from conftest import p
from musictagger.errors import NotFound
from musictagger.library import LibraryIndex, Tag
from musictagger.playlist import FilterMode, build_playlist


def names(songs) -> list:
    return [s.file_name for s in songs]


class TestFilterModes:
    def test_and_is_intersection(self, scenario) -> None:
        index = scenario["index"]
        result = build_playlist(index, {scenario["rock"], scenario["fav"]}, FilterMode.AND)
        assert names(result) == ["a.mp3"]

    def test_or_is_union(self, scenario) -> None:
        index = scenario["index"]
        result = build_playlist(index, [scenario["fav"], scenario["rock"]], FilterMode.OR)
        assert names(result) == ["a.mp3", "b.mp3"]

    def test_standard_matches_or(self, scenario) -> None:
        index = scenario["index"]
        tags = [scenario["rock"], scenario["fav"]]
        assert build_playlist(index, tags, FilterMode.STANDARD) == build_playlist(index, tags, FilterMode.OR)

    def test_single_tag(self, scenario) -> None:
        assert names(build_playlist(scenario["index"], [scenario["fav"]])) == ["a.mp3"]

    @pytest.mark.parametrize("mode", list(FilterMode))
    def test_empty_selection_is_empty(self, scenario, mode: FilterMode) -> None:
        assert build_playlist(scenario["index"], [], mode) == []

    def test_duplicate_tags_collapse(self, scenario) -> None:
        rock = scenario["rock"]
        result = build_playlist(scenario["index"], [rock, rock], FilterMode.AND)
        assert names(result) == ["a.mp3", "b.mp3"]

    def test_no_match_is_empty(self, scenario) -> None:
        index = scenario["index"]
        empty = index.create_tag("Jazz", "Genre")
        assert build_playlist(index, [scenario["rock"], empty], FilterMode.AND) == []

    def test_mode_accepts_strings(self, scenario) -> None:
        result = build_playlist(scenario["index"], [scenario["rock"], scenario["fav"]], "and")
        assert names(result) == ["a.mp3"]

    def test_unregistered_tag(self, scenario) -> None:
        with pytest.raises(NotFound):
            build_playlist(scenario["index"], [Tag(id=77)], FilterMode.OR)


class TestOrdering:
    def test_registration_order_not_link_order(self, index: LibraryIndex) -> None:
        tag = index.create_tag("Mix", "x")
        songs = [index.register_song(p(n)) for n in ("z.mp3", "m.mp3", "a.mp3")]
        for s in reversed(songs):
            index.link_tag(s, tag)
        assert names(build_playlist(index, [tag])) == ["z.mp3", "m.mp3", "a.mp3"]

    def test_repeatable(self, index: LibraryIndex) -> None:
        tags = [index.create_tag(f"t{i}", "x") for i in range(3)]
        for i in range(20):
            s = index.register_song(p(f"{i:02d}.mp3"))
            index.link_tag(s, tags[i % 3])
        first = build_playlist(index, tags, FilterMode.OR)
        again = build_playlist(index, list(reversed(tags)), FilterMode.OR)
        assert first == again
        assert len(first) == 20

    def test_remove_tag_scenario(self, scenario) -> None:
        index = scenario["index"]
        index.remove_tag(scenario["fav"])
        assert scenario["a"].tag_ids == {1}
        assert names(build_playlist(index, [scenario["rock"]], FilterMode.AND)) == ["a.mp3", "b.mp3"]
