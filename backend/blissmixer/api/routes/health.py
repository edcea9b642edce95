from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ...services.index import Library
from ..deps import get_library

router = APIRouter(prefix="/api", tags=["health"])

READY = "ready"


@router.get("/ready", response_class=PlainTextResponse)
async def get_ready(library: Library = Depends(get_library)) -> str:
    return READY
