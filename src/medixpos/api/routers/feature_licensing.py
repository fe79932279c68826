"""Feature licensing endpoints: tier, entitlement checks and upgrades."""

from __future__ import annotations

from fastapi import APIRouter, Query

from medixpos.api.schemas import (
    ComponentRenderResponse,
    FeatureEnabledResponse,
    FeatureListResponse,
    LicenseStatusResponse,
    LimitationsResponse,
    LimitsRequest,
    LimitsResponse,
    PageAccessibleResponse,
    PageValidationResponse,
    SuccessResponse,
    TierResponse,
    UpgradeResponse,
)
from medixpos.entitlements import FeatureLicensingService

router = APIRouter(prefix="/api/feature-licensing", tags=["feature-licensing"])

_service: FeatureLicensingService | None = None


def init_router(service: FeatureLicensingService) -> None:
    global _service  # noqa: PLW0603
    _service = service


def _svc() -> FeatureLicensingService:
    assert _service is not None, "FeatureLicensingService not initialized"
    return _service


async def _run_refresh(force: bool) -> SuccessResponse:
    svc = _svc()
    if force:
        await svc.force_refresh()
    else:
        await svc.refresh_license_status()
    return SuccessResponse()


@router.post("/initialize", response_model=SuccessResponse)
async def initialize() -> SuccessResponse:
    return await _run_refresh(force=False)


@router.post("/refresh-status", response_model=SuccessResponse)
async def refresh_status() -> SuccessResponse:
    return await _run_refresh(force=False)


@router.post("/force-refresh", response_model=SuccessResponse)
async def force_refresh() -> SuccessResponse:
    return await _run_refresh(force=True)


@router.get("/tier", response_model=TierResponse)
def get_tier() -> TierResponse:
    svc = _svc()
    return TierResponse(
        tier=svc.get_current_tier(), tier_info=svc.get_current_tier_info(),
    )


@router.get("/status", response_model=LicenseStatusResponse)
def get_license_status() -> LicenseStatusResponse:
    return LicenseStatusResponse(status=_svc().get_license_status())


@router.get("/features/available", response_model=FeatureListResponse)
def get_available_features() -> FeatureListResponse:
    return FeatureListResponse(features=_svc().get_available_features())


@router.get("/features/blocked", response_model=FeatureListResponse)
def get_blocked_features() -> FeatureListResponse:
    return FeatureListResponse(features=_svc().get_blocked_features())


@router.get("/features/{feature_id}/enabled", response_model=FeatureEnabledResponse)
def is_feature_enabled(feature_id: str) -> FeatureEnabledResponse:
    return FeatureEnabledResponse(enabled=_svc().is_feature_enabled(feature_id))


@router.get("/features/{feature_id}/limitations", response_model=LimitationsResponse)
def get_feature_limitations(feature_id: str) -> LimitationsResponse:
    return LimitationsResponse(limitations=_svc().get_feature_limitations(feature_id))


@router.post("/features/{feature_id}/limits", response_model=LimitsResponse)
async def check_feature_limits(feature_id: str, body: LimitsRequest) -> LimitsResponse:
    result = await _svc().check_feature_limits(feature_id, body.usage)
    return LimitsResponse(result=result)


@router.get("/features/{feature_id}/upgrade", response_model=UpgradeResponse)
def get_upgrade_suggestions(feature_id: str) -> UpgradeResponse:
    return UpgradeResponse(suggestions=_svc().get_upgrade_suggestions(feature_id))


@router.get("/pages/access", response_model=PageAccessibleResponse)
def can_access_page(route: str = Query(...)) -> PageAccessibleResponse:
    return PageAccessibleResponse(accessible=_svc().can_access_page(route))


@router.get("/pages/validate", response_model=PageValidationResponse)
def validate_page_access(route: str = Query(...)) -> PageValidationResponse:
    return PageValidationResponse(result=_svc().validate_page_access(route))


@router.get(
    "/components/{component_name}/render", response_model=ComponentRenderResponse,
)
def can_render_component(component_name: str) -> ComponentRenderResponse:
    return ComponentRenderResponse(
        can_render=_svc().can_render_component(component_name),
    )
