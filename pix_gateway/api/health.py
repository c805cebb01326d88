from fastapi import APIRouter

from pix_gateway.providers.registry import REGISTRY

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok", "adapters": sorted(REGISTRY)}
