
from fastapi import APIRouter
from ..core.adapter_manager import manager

router = APIRouter(prefix="", tags=["health"])

@router.get("/health")
async def health():
    return {"status": "ok"}

@router.get("/ready")
async def ready():
    adapters = list(manager.adapters.values())
    return {"ready": bool(adapters) and all(a.bound for a in adapters)}
