from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from ...core.errors import InvalidDatabaseError
from ...services.index import LibraryService
from ...services.upload import replace_database
from ..deps import get_library_service

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_class=PlainTextResponse)
async def upload_database(
    request: Request,
    service: LibraryService = Depends(get_library_service),
) -> str:
    body = await request.body()
    try:
        await replace_database(service, body)
    except InvalidDatabaseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ""
