from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ...core.config import Settings
from ...schemas.mixer import ListRequest, MixRequest
from ...services.index import Library
from ...services.mixer import Mixer, format_locators
from ..deps import get_library, get_settings_dep

router = APIRouter(prefix="/api", tags=["mixer"])


@router.post("/similar", response_class=PlainTextResponse)
async def create_mix(
    payload: MixRequest,
    *,
    library: Library = Depends(get_library),
    settings: Settings = Depends(get_settings_dep),
) -> str:
    mixer = Mixer(library, settings)
    files = await mixer.mix(payload)
    return format_locators(files, mixer.music_root)


@router.post("/list", response_class=PlainTextResponse)
async def create_list(
    payload: ListRequest,
    *,
    library: Library = Depends(get_library),
    settings: Settings = Depends(get_settings_dep),
) -> str:
    mixer = Mixer(library, settings)
    files = await mixer.list_tracks(payload)
    return format_locators(files, mixer.music_root)
