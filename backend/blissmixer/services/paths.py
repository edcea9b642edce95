from __future__ import annotations

import re
from urllib.parse import quote, unquote

CUE_TRACK = ".CUE_TRACK."
FILE_PREFIX = "file://"
TMP_PREFIX = "tmp://"
# characters left as-is when encoding, matching what the media server sends
SAFE_CHARS = "/-._~!'()"

_WINDOWS_ROOT_RE = re.compile(r"^[A-Za-z]:\\")
_WINDOWS_PATH_RE = re.compile(r"^/[A-Za-z]:")


def fix_music_root(root: str) -> str:
    if not root:
        return ""
    if _WINDOWS_ROOT_RE.match(root):
        root = "/" + root.replace("\\", "/")
    if not root.endswith("/"):
        root += "/"
    return root


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def decode_path(locator: str, music_root: str = "") -> str:
    """Convert a locator from a request into the path stored in the database."""
    path = unquote(locator)
    if path.startswith(FILE_PREFIX):
        path = path[len(FILE_PREFIX):]
    if path.startswith(TMP_PREFIX):
        path = path[len(TMP_PREFIX):]
    if music_root and path.startswith(music_root):
        path = path[len(music_root):]

    idx = path.find("#")
    if idx > 0:
        parts = path[idx + 1:].split("-")
        if len(parts) == 2 and all(_is_number(part) for part in parts):
            path = path.replace("#", CUE_TRACK) + ".mp3"
    return path


def encode_path(path: str, music_root: str = "") -> str:
    """Convert a stored path back into a locator for the response."""
    if CUE_TRACK in path:
        base, _, position = path.partition(CUE_TRACK)
        if position.endswith(".mp3"):
            position = position[:-len(".mp3")]
        if not music_root:
            return f"{base}#{position}"
        return f"{FILE_PREFIX}{quote(music_root + base, safe=SAFE_CHARS)}#{position}"

    if not music_root:
        return path
    full = music_root + path
    if _WINDOWS_PATH_RE.match(full):
        return f"{FILE_PREFIX}{full[:3]}{quote(full[3:], safe=SAFE_CHARS)}"
    return f"{FILE_PREFIX}{quote(full, safe=SAFE_CHARS)}"
