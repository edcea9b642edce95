from __future__ import annotations

import fnmatch
from typing import AbstractSet, FrozenSet, Iterable, List, Sequence

GLOB_CHARS = frozenset("*?[")


def is_pattern(entry: str) -> bool:
    return any(ch in GLOB_CHARS for ch in entry)


def resolve_genre_groups(groups: Sequence[Sequence[str]], known_genres: Iterable[str]) -> List[FrozenSet[str]]:
    """Expand wildcard entries of each group against the known genres.

    Matching is case-insensitive; literal entries are kept even when no track
    carries them.
    """
    known = sorted({genre.lower() for genre in known_genres})
    resolved: List[FrozenSet[str]] = []
    for group in groups:
        genres = set()
        for entry in group:
            entry = entry.strip().lower()
            if not entry:
                continue
            if is_pattern(entry):
                genres.update(genre for genre in known if fnmatch.fnmatchcase(genre, entry))
            else:
                genres.add(entry)
        if genres:
            resolved.append(frozenset(genres))
    return resolved


class GenreFilter:
    def __init__(self, groups: Sequence[FrozenSet[str]]) -> None:
        self.groups = list(groups)
        self.all_genres: FrozenSet[str] = frozenset().union(*self.groups)

    @classmethod
    def resolve(cls, groups: Sequence[Sequence[str]], known_genres: Iterable[str]) -> "GenreFilter":
        return cls(resolve_genre_groups(groups, known_genres))

    def matching_groups(self, genres: AbstractSet[str]) -> FrozenSet[str]:
        """Union of every configured group sharing a genre with ``genres``."""
        matched = set()
        for group in self.groups:
            if not group.isdisjoint(genres):
                matched.update(group)
        return frozenset(matched)

    def filter_genre(self, track_genres: AbstractSet[str], acceptable_genres: AbstractSet[str]) -> bool:
        """Return True when a candidate should be rejected."""
        if not track_genres:
            return False
        if not acceptable_genres:
            # seed is in no group; a candidate that is in one is off-topic
            return not track_genres.isdisjoint(self.all_genres)
        return track_genres.isdisjoint(acceptable_genres)
