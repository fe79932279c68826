"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from medixpos.api.schemas import HealthResponse
from medixpos.entitlements import FeatureLicensingService

router = APIRouter(tags=["health"])

_licensing: FeatureLicensingService | None = None
_version: str = "0.1.0"


def init_router(licensing: FeatureLicensingService, version: str = "0.1.0") -> None:
    global _licensing, _version  # noqa: PLW0603
    _licensing = licensing
    _version = version


@router.get("/api/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    assert _licensing is not None, "FeatureLicensingService not initialized"
    return HealthResponse(
        version=_version,
        tier=_licensing.get_current_tier(),
        features=len(_licensing.catalog),
    )
