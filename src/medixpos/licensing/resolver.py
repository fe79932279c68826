"""Derive a license tier from a license-validation payload.

The hosted license service returns loosely-typed details. Tier evidence
is looked for in priority order, first match wins:

1. ``meta.tier`` naming a tier (any case)
2. ``key`` prefixed with ``PRO_``, ``BASIC_``, ``LITE_`` or ``TRIAL_``
3. ``subscription.product.name`` containing PRO, BASIC or LITE (any case)
4. TRIAL

Fields of the wrong type are skipped, never raised on.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from medixpos.models import LicenseTier

_KEY_PREFIXES: tuple[tuple[str, LicenseTier], ...] = (
    ("PRO_", LicenseTier.PRO),
    ("BASIC_", LicenseTier.BASIC),
    ("LITE_", LicenseTier.LITE),
    ("TRIAL_", LicenseTier.TRIAL),
)

_PRODUCT_MARKERS: tuple[tuple[str, LicenseTier], ...] = (
    ("PRO", LicenseTier.PRO),
    ("BASIC", LicenseTier.BASIC),
    ("LITE", LicenseTier.LITE),
)


def _tier_from_meta(details: Mapping[str, Any]) -> LicenseTier | None:
    meta = details.get("meta")
    if not isinstance(meta, Mapping):
        return None
    tier = meta.get("tier")
    if not isinstance(tier, str):
        return None
    try:
        return LicenseTier(tier.upper())
    except ValueError:
        return None


def _tier_from_key(details: Mapping[str, Any]) -> LicenseTier | None:
    key = details.get("key")
    if not isinstance(key, str):
        return None
    for prefix, tier in _KEY_PREFIXES:
        if key.startswith(prefix):
            return tier
    return None


def _tier_from_product(details: Mapping[str, Any]) -> LicenseTier | None:
    subscription = details.get("subscription")
    if not isinstance(subscription, Mapping):
        return None
    product = subscription.get("product")
    if not isinstance(product, Mapping):
        return None
    name = product.get("name")
    if not isinstance(name, str):
        return None
    upper = name.upper()
    for marker, tier in _PRODUCT_MARKERS:
        if marker in upper:
            return tier
    return None


def resolve_tier(details: Mapping[str, Any] | None) -> LicenseTier:
    """Return the tier a validated license grants. Defaults to TRIAL."""
    if not isinstance(details, Mapping):
        return LicenseTier.TRIAL
    for source in (_tier_from_meta, _tier_from_key, _tier_from_product):
        tier = source(details)
        if tier is not None:
            return tier
    return LicenseTier.TRIAL
