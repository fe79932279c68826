"""Feature licensing service -- the entitlement API used by the UI layer.

Holds the current tier in an explicit ``EntitlementContext`` and answers
entitlement queries against a plan catalog. The tier is derived from the
license service on ``initialize()`` and on every refresh; until then, and
whenever the license cannot be confirmed, the tier is TRIAL.

Usage::

    licensing = FeatureLicensingService(license_service)
    await licensing.initialize()

    if not licensing.can_access_page("/purchases"):
        result = licensing.validate_page_access("/purchases")
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from medixpos.licensing.polar import LicenseBackendError
from medixpos.licensing.resolver import resolve_tier
from medixpos.licensing.service import LicenseError, LicenseService
from medixpos.licensing.store import LicenseStoreError
from medixpos.models import (
    FeatureConfig,
    FeatureLimitations,
    LicenseStatus,
    LicenseStatusReport,
    LicenseTier,
    LimitCheckResult,
    LimitResource,
    PageAccessResult,
    TierInfo,
    UpgradeSuggestion,
)
from medixpos.plans import evaluator
from medixpos.plans.catalog import DEFAULT_CATALOG, PlanCatalog

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


class EntitlementContext:
    """The current tier of a session.

    Refresh replaces the tier wholesale; the lock only guards readers on
    other threads from a torn write.
    """

    def __init__(self, tier: LicenseTier = LicenseTier.TRIAL) -> None:
        self._tier = tier
        self._lock = threading.Lock()

    @property
    def tier(self) -> LicenseTier:
        with self._lock:
            return self._tier

    def set_tier(self, tier: LicenseTier) -> None:
        with self._lock:
            self._tier = tier


class FeatureLicensingService:
    """Entitlement queries for the current license tier."""

    def __init__(
        self,
        license_service: LicenseService | None = None,
        catalog: PlanCatalog = DEFAULT_CATALOG,
        context: EntitlementContext | None = None,
        _clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._license = license_service
        self._catalog = catalog
        self._context = context or EntitlementContext()
        self._clock = _clock or (lambda: datetime.now(tz=UTC))

    @property
    def catalog(self) -> PlanCatalog:
        return self._catalog

    @property
    def context(self) -> EntitlementContext:
        return self._context

    @property
    def license_service(self) -> LicenseService | None:
        return self._license

    # --- tier lifecycle ---

    async def initialize(self) -> None:
        """Derive the tier from the license service. Safe to call repeatedly."""
        await self.refresh_license_status()

    async def refresh_license_status(self) -> None:
        """Re-derive the current tier from the stored license."""
        tier = await self._derive_tier(force=False)
        self._context.set_tier(tier)
        logger.info("License tier resolved: %s", tier.value)

    async def force_refresh(self) -> None:
        """Revalidate online, ignoring a fresh cache, then re-derive the tier."""
        tier = await self._derive_tier(force=True)
        self._context.set_tier(tier)
        logger.info("License tier resolved after forced refresh: %s", tier.value)

    async def _derive_tier(self, force: bool) -> LicenseTier:
        if self._license is None:
            return LicenseTier.TRIAL

        try:
            info = self._license.get_license_info()
            if not info.is_licensed or info.status != LicenseStatus.ACTIVE:
                return LicenseTier.TRIAL
            validation = await asyncio.to_thread(
                self._license.validate_license, force=force,
            )
        except (LicenseError, LicenseBackendError, LicenseStoreError, OSError) as e:
            logger.warning("License validation unavailable, using TRIAL: %s", e)
            return LicenseTier.TRIAL

        if not validation.valid or not validation.details:
            return LicenseTier.TRIAL
        return resolve_tier(validation.details)

    def get_current_tier(self) -> LicenseTier:
        return self._context.tier

    def get_current_tier_info(self) -> TierInfo:
        return self._catalog.tier_info(self._context.tier)

    # --- checks ---

    def is_feature_enabled(self, feature_id: str) -> bool:
        return evaluator.is_feature_available(
            feature_id, self._context.tier, self._catalog,
        )

    def can_access_page(self, route: str) -> bool:
        return evaluator.is_page_accessible(route, self._context.tier, self._catalog)

    def can_render_component(self, component_name: str) -> bool:
        return evaluator.is_component_enabled(
            component_name, self._context.tier, self._catalog,
        )

    # --- queries ---

    def get_feature_limitations(self, feature_id: str) -> FeatureLimitations | None:
        return evaluator.feature_limitations(
            feature_id, self._context.tier, self._catalog,
        )

    def get_available_features(self) -> list[FeatureConfig]:
        return evaluator.features_for_tier(self._context.tier, self._catalog)

    def get_blocked_features(self) -> list[FeatureConfig]:
        return evaluator.blocked_features(self._context.tier, self._catalog)

    async def check_feature_limits(
        self,
        feature_id: str,
        usage: Mapping[LimitResource | str, int],
    ) -> LimitCheckResult:
        """Check per-resource usage against the feature's caps at this tier."""
        return evaluator.check_limits(
            feature_id, self._context.tier, usage, self._catalog,
        )

    def get_upgrade_suggestions(self, feature_id: str) -> UpgradeSuggestion | None:
        return evaluator.upgrade_suggestion(
            feature_id, self._context.tier, self._catalog,
        )

    def validate_page_access(self, route: str) -> PageAccessResult:
        return evaluator.validate_page_access(
            route, self._context.tier, self._catalog,
        )

    def get_license_status(self) -> LicenseStatusReport:
        """Summarize license state and tier for display."""
        tier = self._context.tier
        is_active = False
        expires_at = None
        days_remaining = None

        if self._license is not None:
            info = self._license.get_license_info()
            is_active = info.is_licensed and info.status == LicenseStatus.ACTIVE
            expires_at = info.expires_at
            if expires_at is not None:
                remaining = (expires_at - self._clock()).total_seconds()
                days_remaining = math.ceil(remaining / _SECONDS_PER_DAY)

        return LicenseStatusReport(
            is_active=is_active,
            tier=tier,
            tier_info=self._catalog.tier_info(tier),
            expires_at=expires_at,
            days_remaining=days_remaining,
        )
