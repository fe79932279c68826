"""Feature entitlement evaluation.

Pure functions over a ``PlanCatalog`` and a ``LicenseTier``. Nothing here
performs I/O or holds state; the current tier is supplied by the caller.

Evaluation rules:
1. A feature is available iff the tier ranks at or above its required tier
2. Unknown feature ids are never available (fail closed)
3. A page or component with no mapped features is public
4. Otherwise access needs ANY one of its mapped features (OR, not AND)
"""

from __future__ import annotations

from collections.abc import Mapping

from medixpos.models import (
    FeatureConfig,
    FeatureLimitations,
    LicenseTier,
    LimitCheckResult,
    LimitResource,
    PageAccessResult,
    UpgradeSuggestion,
    tier_index,
)
from medixpos.plans.catalog import DEFAULT_CATALOG, PlanCatalog
from medixpos.plans.routes import ROOT_ROUTE, route_lookup_keys


def features_for_tier(
    tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> list[FeatureConfig]:
    """Return the features available at *tier*, in catalog order."""
    rank = tier_index(tier)
    return [f for f in catalog.features if tier_index(f.required_tier) <= rank]


def blocked_features(
    tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> list[FeatureConfig]:
    """Return the features *not* available at *tier*, in catalog order."""
    rank = tier_index(tier)
    return [f for f in catalog.features if tier_index(f.required_tier) > rank]


def is_feature_available(
    feature_id: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> bool:
    feature = catalog.get(feature_id)
    if feature is None:
        return False
    return tier_index(tier) >= tier_index(feature.required_tier)


def feature_limitations(
    feature_id: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> FeatureLimitations | None:
    """Return the caps of a feature if it is available at *tier*."""
    if not is_feature_available(feature_id, tier, catalog):
        return None
    feature = catalog.get(feature_id)
    return feature.limitations if feature is not None else None


def features_for_route(
    route: str, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> list[str]:
    """Union of feature ids mapped to any spelling or alias of *route*."""
    found: dict[str, None] = {}
    for key in route_lookup_keys(route):
        for feature_id in catalog.features_for_page(key):
            found[feature_id] = None
    return list(found)


def _any_available(
    feature_ids: list[str] | tuple[str, ...],
    tier: LicenseTier,
    catalog: PlanCatalog,
) -> bool:
    if not feature_ids:
        return True
    return any(is_feature_available(fid, tier, catalog) for fid in feature_ids)


def is_page_accessible(
    route: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> bool:
    return _any_available(features_for_route(route, catalog), tier, catalog)


def is_component_enabled(
    component_name: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> bool:
    return _any_available(
        catalog.features_for_component(component_name), tier, catalog,
    )


def check_limits(
    feature_id: str,
    tier: LicenseTier,
    usage: Mapping[LimitResource | str, int],
    catalog: PlanCatalog = DEFAULT_CATALOG,
) -> LimitCheckResult:
    """Check per-resource usage against a feature's caps at *tier*.

    Each usage figure is compared only with the cap for its own resource.
    Resources are checked in ``LimitResource`` declaration order and the
    first exhausted cap (``usage >= cap``) is reported. Resources missing
    from *usage* are not checked.

    Raises:
        ValueError: If *usage* names an unknown resource.
    """
    normalized = {LimitResource(key): int(value) for key, value in usage.items()}

    limitations = feature_limitations(feature_id, tier, catalog)
    if limitations is None:
        return LimitCheckResult(within_limits=True, usage=normalized)

    for resource in LimitResource:
        cap = limitations.cap_for(resource)
        current = normalized.get(resource)
        if cap is None or current is None:
            continue
        if current >= cap:
            return LimitCheckResult(
                within_limits=False,
                resource=resource,
                limit=cap,
                usage=normalized,
                message=(
                    f"You've reached the {resource.label} limit for "
                    f"{tier.value} plan ({cap})"
                ),
            )

    return LimitCheckResult(within_limits=True, usage=normalized)


def check_limit(
    feature_id: str,
    tier: LicenseTier,
    resource: LimitResource | str,
    current_usage: int,
    catalog: PlanCatalog = DEFAULT_CATALOG,
) -> LimitCheckResult:
    """Check a single resource's usage against its cap."""
    return check_limits(feature_id, tier, {resource: current_usage}, catalog)


def upgrade_suggestion(
    feature_id: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> UpgradeSuggestion | None:
    """Describe the cheapest upgrade that unlocks *feature_id*.

    Returns None if the feature is unknown or already available.
    """
    feature = catalog.get(feature_id)
    if feature is None or is_feature_available(feature_id, tier, catalog):
        return None

    required = feature.required_tier
    current_ids = {f.id for f in features_for_tier(tier, catalog)}
    benefits = [
        f.name for f in features_for_tier(required, catalog)
        if f.id not in current_ids
    ]
    return UpgradeSuggestion(
        required_tier=required,
        tier_info=catalog.tier_info(required),
        benefits=benefits,
    )


def validate_page_access(
    route: str, tier: LicenseTier, catalog: PlanCatalog = DEFAULT_CATALOG,
) -> PageAccessResult:
    """Decide page access and, when denied, where to send the user."""
    if is_page_accessible(route, tier, catalog):
        return PageAccessResult(allowed=True)

    blocked = next(
        (
            fid for fid in features_for_route(route, catalog)
            if not is_feature_available(fid, tier, catalog)
        ),
        None,
    )
    upgrade = upgrade_suggestion(blocked, tier, catalog) if blocked else None
    required = upgrade.required_tier.value if upgrade else "a higher"

    return PageAccessResult(
        allowed=False,
        redirect_to=ROOT_ROUTE,
        message=f"This feature requires {required} plan",
        upgrade_info=upgrade,
    )
