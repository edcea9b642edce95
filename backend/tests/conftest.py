from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from blissmixer.core.config import Settings
from blissmixer.db import models
from blissmixer.db.base import Base
from blissmixer.db.session import create_engine_for, make_session_factory
from blissmixer.services.features import FeatureVector

METRIC_ATTRS = FeatureVector._fields


def tempo_for_bpm(bpm: int) -> float:
    return bpm / 103.0 - 1.0


def metrics(x: float = 0.0, y: float = 0.0, *, bpm: int = 120) -> List[float]:
    values = [0.0] * len(METRIC_ATTRS)
    values[0] = tempo_for_bpm(bpm)
    values[1] = x
    values[2] = y
    return values


def track_row(
    file: str,
    vector: Sequence[float] | None,
    *,
    title: str | None = None,
    artist: str | None = None,
    album: str | None = None,
    album_artist: str | None = None,
    genre: str | None = None,
    duration: int = 200,
    ignore: int | None = None,
) -> models.Track:
    values: Dict[str, Any] = dict(zip(METRIC_ATTRS, vector)) if vector is not None else {}
    stem = Path(file).stem
    return models.Track(
        file=file,
        title=title if title is not None else f"Title {stem}",
        artist=artist if artist is not None else f"Artist {stem}",
        album=album if album is not None else f"Album {stem}",
        album_artist=album_artist,
        genre=genre,
        duration=duration,
        ignore=ignore,
        **values,
    )


async def _create_db(path: Path, rows: Sequence[models.Track]) -> None:
    engine = create_engine_for(path)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with make_session_factory(engine)() as session:
            session.add_all(list(rows))
            await session.commit()
    finally:
        await engine.dispose()


def create_db(path: Path, rows: Sequence[models.Track]) -> Path:
    asyncio.run(_create_db(path, rows))
    return path


@pytest.fixture
def make_settings(tmp_path: Path):
    def _make(rows: Sequence[models.Track], **overrides: Any) -> Settings:
        db_path = create_db(tmp_path / "bliss.db", rows)
        options: Dict[str, Any] = {"forest_trees": 100, "forest_workers": 2}
        options.update(overrides)
        return Settings(db_path=db_path, **options)

    return _make
