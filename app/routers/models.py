from __future__ import annotations

from fastapi import APIRouter, Depends

from app.config import Settings
from app.dependencies import get_app_settings
from app.ollama.adapter import model_card, running_model_card, show_payload
from app.ollama.schemas import ShowRequest

router = APIRouter(prefix="/api", tags=["ollama"])


@router.get("/tags")
@router.get("/list")
async def list_models(settings: Settings = Depends(get_app_settings)) -> dict:
    return {"models": [model_card(settings)]}


@router.post("/show")
async def show_model(
    _payload: ShowRequest,
    settings: Settings = Depends(get_app_settings),
) -> dict:
    return show_payload(settings)


@router.get("/ps")
async def running_models(settings: Settings = Depends(get_app_settings)) -> dict:
    return {"models": [running_model_card(settings)]}


@router.get("/status")
async def status(settings: Settings = Depends(get_app_settings)) -> dict:
    return {
        "status": "running",
        "models": [running_model_card(settings)],
    }
