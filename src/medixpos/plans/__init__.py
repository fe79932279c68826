"""Plan catalog and entitlement evaluation."""

from medixpos.plans.catalog import (
    COMPONENT_FEATURE_MAP,
    DEFAULT_CATALOG,
    FEATURE_PLANS,
    LICENSE_TIER_INFO,
    PAGE_FEATURE_MAP,
    CatalogError,
    PlanCatalog,
)
from medixpos.plans.loader import load_catalog

__all__ = [
    "COMPONENT_FEATURE_MAP",
    "CatalogError",
    "DEFAULT_CATALOG",
    "FEATURE_PLANS",
    "LICENSE_TIER_INFO",
    "PAGE_FEATURE_MAP",
    "PlanCatalog",
    "load_catalog",
]
