"""Core data models for MedixPOS licensing.

Defines the schemas for:
- License tiers and their ordering
- Feature definitions and usage caps (the plan catalog)
- Entitlement query results (limits, upgrades, page access)
- License records, validation responses and status reports
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class LicenseTier(enum.StrEnum):
    TRIAL = "TRIAL"
    LITE = "LITE"
    BASIC = "BASIC"
    PRO = "PRO"

    @property
    def rank(self) -> int:
        """Position of the tier in ``TIER_ORDER`` (TRIAL is 0)."""
        return TIER_ORDER.index(self)


TIER_ORDER: tuple[LicenseTier, ...] = (
    LicenseTier.TRIAL,
    LicenseTier.LITE,
    LicenseTier.BASIC,
    LicenseTier.PRO,
)


def tier_index(tier: LicenseTier) -> int:
    return TIER_ORDER.index(tier)


class FeatureCategory(enum.StrEnum):
    CORE = "core"
    SALES = "sales"
    INVENTORY = "inventory"
    CUSTOMERS = "customers"
    REPORTS = "reports"
    ADVANCED = "advanced"
    ENTERPRISE = "enterprise"


class ReportsAccess(enum.StrEnum):
    BASIC = "basic"
    ADVANCED = "advanced"
    FULL = "full"


class BackupFrequency(enum.StrEnum):
    NONE = "none"
    WEEKLY = "weekly"
    DAILY = "daily"
    REALTIME = "realtime"


class SupportLevel(enum.StrEnum):
    COMMUNITY = "community"
    EMAIL = "email"
    PRIORITY = "priority"
    DEDICATED = "dedicated"


class LimitResource(enum.StrEnum):
    """Countable resources that a feature may cap.

    Declaration order is the order in which caps are checked.
    """

    PRODUCTS = "products"
    CUSTOMERS = "customers"
    USERS = "users"
    DAILY_SALES = "daily_sales"
    BANK_ACCOUNTS = "bank_accounts"

    @property
    def label(self) -> str:
        """Human-readable name used in limit messages."""
        return self.value.replace("_", " ")


class LicenseStatus(enum.StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    INVALID = "invalid"
    INACTIVE = "inactive"


# --- Plan catalog ---


class FeatureLimitations(BaseModel):
    """Optional caps attached to a feature. A missing field means no cap."""

    model_config = ConfigDict(frozen=True)

    max_products: int | None = Field(default=None, ge=0)
    max_customers: int | None = Field(default=None, ge=0)
    max_users: int | None = Field(default=None, ge=0)
    max_sales_per_day: int | None = Field(default=None, ge=0)
    max_bank_accounts: int | None = Field(default=None, ge=0)
    data_retention_days: int | None = Field(default=None, ge=0)
    reports_access: ReportsAccess | None = None
    backup_frequency: BackupFrequency | None = None
    support_level: SupportLevel | None = None

    def cap_for(self, resource: LimitResource) -> int | None:
        return getattr(self, LIMIT_FIELDS[resource])


LIMIT_FIELDS: dict[LimitResource, str] = {
    LimitResource.PRODUCTS: "max_products",
    LimitResource.CUSTOMERS: "max_customers",
    LimitResource.USERS: "max_users",
    LimitResource.DAILY_SALES: "max_sales_per_day",
    LimitResource.BANK_ACCOUNTS: "max_bank_accounts",
}


class FeatureConfig(BaseModel):
    """A licensable capability and the minimum tier that unlocks it."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    name: str
    description: str = ""
    category: FeatureCategory
    required_tier: LicenseTier
    is_core: bool = False
    limitations: FeatureLimitations | None = None


class TierInfo(BaseModel):
    """Display information for a tier (pricing page, license dialogs)."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    color: str
    features: list[str] = Field(default_factory=list)
    limitations: list[str] = Field(default_factory=list)
    price: str | None = None


# --- Entitlement results ---


class LimitCheckResult(BaseModel):
    """Outcome of checking resource usage against a feature's caps."""

    within_limits: bool
    resource: LimitResource | None = None
    limit: int | None = None
    usage: dict[LimitResource, int] = Field(default_factory=dict)
    message: str | None = None


class UpgradeSuggestion(BaseModel):
    """The cheapest tier that unlocks a blocked feature, and what it adds."""

    required_tier: LicenseTier
    tier_info: TierInfo
    benefits: list[str] = Field(default_factory=list)


class PageAccessResult(BaseModel):
    allowed: bool
    redirect_to: str | None = None
    message: str | None = None
    upgrade_info: UpgradeSuggestion | None = None


# --- License records ---


class LicenseRecord(BaseModel):
    """License state persisted locally between sessions.

    Written to disk as a signed token by ``LicenseStore``.
    """

    organization_id: str
    license_key: str | None = None
    activation_id: str | None = None
    last_validated: datetime | None = None
    expires_at: datetime | None = None
    status: LicenseStatus | None = None
    validations: int | None = None
    usage: int | None = None
    limit_usage: int | None = None
    machine_id: str | None = None
    details: dict[str, Any] | None = None


class LicenseValidationResponse(BaseModel):
    """Result of validating a license key (online or from cache)."""

    valid: bool
    status: LicenseStatus
    expires_at: datetime | None = None
    usage: int | None = None
    limit_usage: int | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


class ActivationResult(BaseModel):
    success: bool
    activation_id: str | None = None
    message: str | None = None


class LicenseInfo(BaseModel):
    is_licensed: bool
    status: LicenseStatus | None = None
    expires_at: datetime | None = None
    last_validated: datetime | None = None
    usage: int | None = None
    limit_usage: int | None = None


class LicenseStatusReport(BaseModel):
    """License summary shown in the UI header and settings page."""

    is_active: bool
    tier: LicenseTier
    tier_info: TierInfo
    expires_at: datetime | None = None
    days_remaining: int | None = None
