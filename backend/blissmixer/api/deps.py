from __future__ import annotations

from fastapi import Request

from ..core.config import Settings
from ..services.index import Library, LibraryService


async def get_library_service(request: Request) -> LibraryService:
    return request.app.state.library_service


async def get_settings_dep(request: Request) -> Settings:
    return request.app.state.library_service.settings


async def get_library(request: Request) -> Library:
    return await request.app.state.library_service.ensure_loaded()
