from blissmixer.services.genres import GenreFilter, resolve_genre_groups

KNOWN = {"rock", "rock'n'roll", "jazz"}


def test_wildcard_group_resolves_against_known_genres():
    groups = resolve_genre_groups([["rock*"]], KNOWN)
    assert groups == [frozenset({"rock", "rock'n'roll"})]


def test_patterns_are_case_insensitive_and_literals_kept():
    groups = resolve_genre_groups([["ROCK*", "Blues"], ["", "   "]], KNOWN)
    assert groups == [frozenset({"rock", "rock'n'roll", "blues"})]


def test_seed_outside_groups_rejects_grouped_candidates():
    genre_filter = GenreFilter.resolve([["rock*"]], KNOWN)
    acceptable = genre_filter.matching_groups({"jazz"})
    assert acceptable == frozenset()
    assert genre_filter.filter_genre({"rock"}, acceptable) is True
    assert genre_filter.filter_genre({"jazz"}, acceptable) is False
    assert genre_filter.filter_genre(set(), acceptable) is False


def test_seed_inside_group_accepts_only_group_members():
    genre_filter = GenreFilter.resolve([["rock*"], ["jazz", "swing"]], KNOWN)
    acceptable = genre_filter.matching_groups({"jazz"})
    assert acceptable == frozenset({"jazz", "swing"})
    assert genre_filter.filter_genre({"swing", "pop"}, acceptable) is False
    assert genre_filter.filter_genre({"rock"}, acceptable) is True
    assert genre_filter.filter_genre({"pop"}, acceptable) is True


def test_no_groups_never_rejects():
    genre_filter = GenreFilter.resolve([], KNOWN)
    assert genre_filter.filter_genre({"rock"}, frozenset()) is False
