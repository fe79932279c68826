"""MedixPOS licensing: feature entitlements by license tier."""

__version__ = "0.1.0"

from medixpos.config import MedixConfig, find_config, load_config
from medixpos.entitlements import EntitlementContext, FeatureLicensingService
from medixpos.licensing import (
    LicenseBackend,
    LicenseBackendError,
    LicenseError,
    LicenseService,
    LicenseStore,
    LicenseStoreError,
    PolarClient,
    resolve_tier,
)
from medixpos.models import (
    FeatureConfig,
    FeatureLimitations,
    LicenseStatus,
    LicenseTier,
    LimitCheckResult,
    LimitResource,
    PageAccessResult,
    TierInfo,
    UpgradeSuggestion,
)
from medixpos.plans import DEFAULT_CATALOG, CatalogError, PlanCatalog, load_catalog

__all__ = [
    "CatalogError",
    "DEFAULT_CATALOG",
    "EntitlementContext",
    "FeatureConfig",
    "FeatureLicensingService",
    "FeatureLimitations",
    "LicenseBackend",
    "LicenseBackendError",
    "LicenseError",
    "LicenseService",
    "LicenseStatus",
    "LicenseStore",
    "LicenseStoreError",
    "LicenseTier",
    "LimitCheckResult",
    "LimitResource",
    "MedixConfig",
    "PageAccessResult",
    "PlanCatalog",
    "PolarClient",
    "TierInfo",
    "UpgradeSuggestion",
    "find_config",
    "load_catalog",
    "load_config",
    "resolve_tier",
    "__version__",
]
