from __future__ import annotations

from fastapi import APIRouter

from aideo.observability.metrics import get_runtime_metrics

router = APIRouter(prefix="/v1", tags=["ops"])

VERSION = "0.1.0"


@router.get("/health")
async def health():
    return {
        "ok": True,
        "version": VERSION,
        "runtime_status": "ok",
    }


@router.get("/metrics")
async def metrics():
    return get_runtime_metrics().snapshot()
