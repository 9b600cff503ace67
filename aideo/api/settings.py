from __future__ import annotations

from fastapi import APIRouter, Depends

from aideo.api.schemas import SettingsBody
from aideo.deps import get_chat_service, get_settings_repo
from aideo.errors import MissingBaseUrlError

router = APIRouter(prefix="/v1", tags=["settings"])


@router.get("/settings")
async def get_settings(repo=Depends(get_settings_repo)):
    settings = await repo.get()
    return {"settings": settings.to_dict()}


@router.put("/settings")
async def save_settings(body: SettingsBody, repo=Depends(get_settings_repo)):
    settings = body.to_settings()
    if not settings.api_base_url:
        raise MissingBaseUrlError()
    await repo.save(settings)
    return {"settings": settings.to_dict()}


@router.post("/settings/test-connection")
async def test_connection(chat_service=Depends(get_chat_service)):
    ok = await chat_service.check_connection()
    return {"ok": ok}
