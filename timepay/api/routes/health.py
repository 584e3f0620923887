from fastapi import APIRouter

from timepay import __version__
from timepay.core.config import settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Liveness check")
def healthcheck() -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name, "version": __version__}
