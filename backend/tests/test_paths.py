import pytest

from blissmixer.services.paths import decode_path, encode_path, fix_music_root


@pytest.mark.parametrize(
    "root, expected",
    [
        ("", ""),
        ("/music", "/music/"),
        ("/music/", "/music/"),
        ("c:\\Users\\me\\Music", "/c:/Users/me/Music/"),
    ],
)
def test_fix_music_root(root, expected):
    assert fix_music_root(root) == expected


def test_decode_strips_scheme_and_root():
    assert decode_path("file:///music/A%20B/01%20Song.mp3", "/music/") == "A B/01 Song.mp3"
    assert decode_path("tmp:///music/x.flac", "/music/") == "x.flac"
    assert decode_path("Artist/x.flac") == "Artist/x.flac"


def test_decode_strips_both_schemes_in_turn():
    assert decode_path("file://tmp:///music/x.flac", "/music/") == "x.flac"
    assert decode_path("file://tmp://Artist/x.flac") == "Artist/x.flac"


def test_decode_cue_track():
    assert decode_path("file:///music/album.flac#12.5-200", "/music/") == "album.flac.CUE_TRACK.12.5-200.mp3"
    assert decode_path("/music/odd#name.flac", "/music/") == "odd#name.flac"


def test_encode_without_root_returns_stored_path():
    assert encode_path("A B/01 Song.mp3") == "A B/01 Song.mp3"
    assert encode_path("album.flac.CUE_TRACK.12.5-200.mp3") == "album.flac#12.5-200"


def test_encode_with_root():
    assert encode_path("A B/01 Song.mp3", "/music/") == "file:///music/A%20B/01%20Song.mp3"
    assert encode_path("x.mp3", "/C:/Music/") == "file:///C:/Music/x.mp3"
    assert encode_path("album.flac.CUE_TRACK.1-2.mp3", "/music/") == "file:///music/album.flac#1-2"
