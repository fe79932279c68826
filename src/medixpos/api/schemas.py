"""Pydantic request/response schemas for the licensing API.

Every response carries ``success`` so the UI can treat all channels alike.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from medixpos.models import (
    FeatureConfig,
    FeatureLimitations,
    LicenseStatusReport,
    LicenseTier,
    LimitCheckResult,
    LimitResource,
    PageAccessResult,
    TierInfo,
    UpgradeSuggestion,
)

# --- Generic ---


class SuccessResponse(BaseModel):
    success: bool = True
    error: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    tier: LicenseTier
    features: int


# --- Feature licensing ---


class TierResponse(SuccessResponse):
    tier: LicenseTier
    tier_info: TierInfo


class FeatureEnabledResponse(SuccessResponse):
    enabled: bool


class PageAccessibleResponse(SuccessResponse):
    accessible: bool


class ComponentRenderResponse(SuccessResponse):
    can_render: bool


class LimitationsResponse(SuccessResponse):
    limitations: FeatureLimitations | None = None


class LimitsRequest(BaseModel):
    """Current usage per resource, e.g. ``{"daily_sales": 12}``."""

    usage: dict[LimitResource, int] = Field(default_factory=dict)


class LimitsResponse(SuccessResponse):
    result: LimitCheckResult


class FeatureListResponse(SuccessResponse):
    features: list[FeatureConfig]


class UpgradeResponse(SuccessResponse):
    suggestions: UpgradeSuggestion | None = None


class PageValidationResponse(SuccessResponse):
    result: PageAccessResult


class LicenseStatusResponse(SuccessResponse):
    status: LicenseStatusReport


# --- License ---


class ValidateRequest(BaseModel):
    license_key: str | None = None
    activation_id: str | None = None


class ActivateRequest(BaseModel):
    license_key: str = Field(..., min_length=1)
    label: str | None = None


class RevalidationResponse(SuccessResponse):
    needs_revalidation: bool


class MachineIdResponse(SuccessResponse):
    machine_id: str
