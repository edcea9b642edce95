from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Sequence

import faiss
import numpy as np

from ..core.config import DIMENSIONS, Settings, get_settings
from ..db.session import create_engine_for, make_session_factory
from .features import WeightVector
from .store import FeatureStore, TrackCatalog, TrackRecord

logger = logging.getLogger("index")


class Neighbour(NamedTuple):
    id: int
    distance: float


class SpatialIndex:
    """Exact k-nearest-neighbour index, squared euclidean distance.

    Read-only once built.
    """

    def __init__(self, ids: np.ndarray, matrix: np.ndarray) -> None:
        self._ids = ids
        self._matrix = matrix
        self._positions: Dict[int, int] = {int(track_id): pos for pos, track_id in enumerate(ids)}
        self._index = faiss.IndexFlatL2(DIMENSIONS)
        if len(ids):
            self._index.add(matrix)

    @classmethod
    def build(cls, ids: Sequence[int], vectors: Sequence[np.ndarray]) -> "SpatialIndex":
        if len(ids) != len(vectors):
            raise ValueError("ids and vectors differ in length")
        id_array = np.asarray(ids, dtype=np.int64)
        if vectors:
            matrix = np.ascontiguousarray(np.stack(vectors), dtype=np.float32)
        else:
            matrix = np.zeros((0, DIMENSIONS), dtype=np.float32)
        if matrix.shape[1] != DIMENSIONS:
            raise ValueError(f"index dimension mismatch (have {matrix.shape[1]}, expected {DIMENSIONS})")
        return cls(id_array, matrix)

    @classmethod
    def from_records(cls, records: Sequence[TrackRecord]) -> "SpatialIndex":
        usable = [record for record in records if record.vector is not None]
        return cls.build([r.id for r in usable], [r.vector for r in usable])

    def __len__(self) -> int:
        return int(self._index.ntotal)

    def vector(self, track_id: int) -> Optional[np.ndarray]:
        pos = self._positions.get(track_id)
        if pos is None:
            return None
        return self._matrix[pos]

    def query(self, point: np.ndarray, k: int) -> List[Neighbour]:
        total = len(self)
        if total == 0 or k <= 0:
            return []
        matrix = np.ascontiguousarray(np.asarray(point, dtype=np.float32).reshape(1, -1))
        distances, positions = self._index.search(matrix, min(k, total))
        neighbours: List[Neighbour] = []
        for pos, distance in zip(positions[0], distances[0]):
            if pos == -1:
                continue
            neighbours.append(Neighbour(int(self._ids[pos]), float(distance)))
        return neighbours


@dataclass(frozen=True)
class Library:
    catalog: TrackCatalog
    index: SpatialIndex
    genres: FrozenSet[str]


class LibraryService:
    """Owns the process-wide index snapshot.

    Requests take a reference to the current ``Library`` and use it for their
    whole lifetime; ``reload`` swaps in a complete new snapshot. A snapshot
    holds no database connection once built.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.weights = WeightVector.of(self.settings.weights)
        self.lock = asyncio.Lock()
        self._library: Library | None = None

    @property
    def loaded(self) -> bool:
        return self._library is not None

    @property
    def library(self) -> Library:
        if self._library is None:
            raise RuntimeError("library not loaded")
        return self._library

    async def ensure_loaded(self) -> Library:
        async with self.lock:
            if self._library is None:
                self._library = await self._build(self.settings.db_path)
            return self._library

    async def reload(self) -> Library:
        async with self.lock:
            return await self.reload_locked()

    async def reload_locked(self) -> Library:
        """Rebuild the snapshot; caller must hold ``lock``."""
        self._library = await self._build(self.settings.db_path)
        return self._library

    async def _build(self, db_path: Path) -> Library:
        engine = create_engine_for(db_path, echo=self.settings.sql_echo)
        try:
            store = FeatureStore(make_session_factory(engine), self.weights)
            records = await store.load_all(include_ignored=True)
            genres = frozenset(await store.distinct_genres())
        finally:
            await engine.dispose()
        catalog = TrackCatalog(records)
        index = SpatialIndex.from_records(catalog.indexable())
        logger.info("Index loaded %d of %d track(s), %d genre(s)", len(index), len(catalog), len(genres))
        return Library(catalog=catalog, index=index, genres=genres)

    async def close(self) -> None:
        async with self.lock:
            self._library = None


def build_artist_index(catalog: TrackCatalog, artist: str) -> SpatialIndex:
    return SpatialIndex.from_records(catalog.load_by_artist(artist))
