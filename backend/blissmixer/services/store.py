from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

import numpy as np
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.errors import InvalidDatabaseError
from ..db import models
from .features import FeatureVector, WeightVector, tempo_to_bpm

logger = logging.getLogger("store")

ALBUM_KEY_SEPARATOR = "::"
VARIOUS_ARTISTS = frozenset({"various", "various artists"})
GENRE_SEPARATOR = ";"


@dataclass(slots=True)
class TrackRecord:
    id: int
    file: str
    title: str = ""
    artist: str = ""
    artist_original: str = ""
    album_artist: str = ""
    album: str = ""
    genres: FrozenSet[str] = field(default_factory=frozenset)
    duration: int = 0
    bpm: int = 0
    is_various: bool = False
    ignored: bool = False
    vector: Optional[np.ndarray] = None


def split_genres(genre: str | None) -> FrozenSet[str]:
    if not genre:
        return frozenset()
    return frozenset(g.strip().lower() for g in genre.split(GENRE_SEPARATOR) if g.strip())


def album_key(album: str | None, album_artist: str | None, artist: str | None) -> str:
    if not album:
        return ""
    owner = (album_artist or "").lower() or (artist or "").lower()
    return album.lower() + ALBUM_KEY_SEPARATOR + owner


def record_from_row(row: models.Track, weights: WeightVector) -> TrackRecord:
    metrics = FeatureVector.from_row(row)
    album_artist = (row.album_artist or "").lower()
    return TrackRecord(
        id=row.rowid,
        file=row.file,
        title=(row.title or "").lower(),
        artist=(row.artist or "").lower(),
        artist_original=row.artist or "",
        album_artist=album_artist,
        album=album_key(row.album, row.album_artist, row.artist),
        genres=split_genres(row.genre),
        duration=row.duration or 0,
        bpm=tempo_to_bpm(row.tempo),
        is_various=album_artist in VARIOUS_ARTISTS,
        ignored=row.ignore == 1,
        vector=weights.apply(metrics) if metrics is not None else None,
    )


class FeatureStore:
    """Read access to the Bliss analysis database.

    Every vector handed out is already scaled by the configured weights, so
    indexed vectors and query vectors always live in the same metric space.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], weights: WeightVector | None = None) -> None:
        self.session_factory = session_factory
        self.weights = weights or WeightVector()

    async def load_all(self, *, include_ignored: bool = False) -> List[TrackRecord]:
        stmt = select(models.Track)
        if not include_ignored:
            stmt = stmt.where(or_(models.Track.ignore.is_(None), models.Track.ignore != 1))
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        records = [record_from_row(row, self.weights) for row in rows]
        logger.debug("Loaded %d track(s)", len(records))
        return records

    async def distinct_genres(self) -> Set[str]:
        stmt = select(models.Track.genre).where(models.Track.genre.is_not(None)).distinct()
        async with self.session_factory() as session:
            values = (await session.execute(stmt)).scalars().all()
        genres: Set[str] = set()
        for value in values:
            genres.update(split_genres(value))
        return genres

    async def validate(self) -> int:
        """Check the database has a readable ``Tracks`` table, return its row count."""
        try:
            async with self.session_factory() as session:
                await session.execute(select(models.Track).limit(1))
                return int((await session.execute(select(func.count()).select_from(models.Track))).scalar_one())
        except SQLAlchemyError as exc:
            raise InvalidDatabaseError(f"not a bliss database: {exc}") from exc


class TrackCatalog:
    """Every track of one database load, ignored ones included.

    Lookups never touch the database, so a catalog keeps answering for the
    file it was loaded from after that file has been replaced.
    """

    def __init__(self, records: Iterable[TrackRecord]) -> None:
        self._by_id: Dict[int, TrackRecord] = {}
        self._by_file: Dict[str, int] = {}
        for record in records:
            self._by_id[record.id] = record
            self._by_file[record.file] = record.id

    def __len__(self) -> int:
        return len(self._by_id)

    def indexable(self) -> List[TrackRecord]:
        return [record for record in self._by_id.values() if not record.ignored]

    def load_by_artist(self, artist: str) -> List[TrackRecord]:
        return [record for record in self._by_id.values() if record.artist_original == artist]

    def lookup_by_id(self, track_id: int) -> Optional[TrackRecord]:
        return self._by_id.get(track_id)

    def resolve_path_to_id(self, path: str) -> Optional[int]:
        return self._by_file.get(path)
