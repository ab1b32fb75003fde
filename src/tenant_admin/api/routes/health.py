"""Liveness endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    """Liveness only; no database round trip."""
    return {"status": "ok", "service": "tenant-admin"}
