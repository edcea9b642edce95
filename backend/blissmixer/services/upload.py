from __future__ import annotations

import logging
import os
from pathlib import Path

from ..core.errors import InvalidDatabaseError
from ..db.session import create_engine_for, make_session_factory
from .features import WeightVector
from .index import Library, LibraryService
from .store import FeatureStore

logger = logging.getLogger("upload")


def temp_path_for(db_path: Path) -> Path:
    return db_path.with_name(db_path.name + ".tmp")


def write_chunks(path: Path, body: bytes, chunk_size: int) -> int:
    written = 0
    with open(path, "wb") as fh:
        for start in range(0, len(body), chunk_size):
            written += fh.write(body[start:start + chunk_size])
    return written


async def validate_database(path: Path) -> int:
    engine = create_engine_for(path)
    try:
        return await FeatureStore(make_session_factory(engine), WeightVector()).validate()
    finally:
        await engine.dispose()


async def replace_database(service: LibraryService, body: bytes) -> Library:
    """Validate an uploaded database, move it over the live one, rebuild the index.

    The live database and index are left untouched when validation fails.
    """
    db_path = service.settings.db_path
    tmp_path = temp_path_for(db_path)
    async with service.lock:
        try:
            if not body:
                raise InvalidDatabaseError("empty upload")
            write_chunks(tmp_path, body, service.settings.upload_chunk_size)
            count = await validate_database(tmp_path)
            os.replace(tmp_path, db_path)
        finally:
            tmp_path.unlink(missing_ok=True)
        logger.info("Replaced %s with uploaded database (%d track(s))", db_path, count)
        return await service.reload_locked()
