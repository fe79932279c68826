"""Load a plan catalog from YAML.

Deployments can ship their own plan table instead of the built-in one.
The file layout mirrors the built-in catalog::

    features:
      - id: pos_basic
        name: Basic Point of Sale
        category: sales
        required_tier: TRIAL
        limitations:
          max_sales_per_day: 20
    pages:
      /pos: [pos_basic]
    components:
      BarcodeScanner: [pos_basic]
    tiers:
      TRIAL: {name: Trial, description: ..., color: "#9e9e9e"}
      ...

``pages`` and ``components`` are optional; ``tiers`` may be omitted to
reuse the built-in tier info.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from medixpos.models import FeatureConfig, LicenseTier, TierInfo
from medixpos.plans.catalog import LICENSE_TIER_INFO, CatalogError, PlanCatalog


def load_catalog(path: str | Path) -> PlanCatalog:
    """Load and validate a plan catalog YAML file.

    Raises CatalogError on missing files, invalid YAML, schema errors,
    duplicate ids or dangling feature references.
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"Catalog file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict) or "features" not in raw:
        raise CatalogError(f"Catalog file must have a 'features' key: {path}")

    return parse_catalog(raw, source=str(path))


def parse_catalog(raw: dict[str, Any], source: str = "<catalog>") -> PlanCatalog:
    """Build a ``PlanCatalog`` from an already-parsed mapping."""
    raw_features = raw.get("features")
    if not isinstance(raw_features, list):
        raise CatalogError(f"'features' must be a list: {source}")

    features: list[FeatureConfig] = []
    for i, entry in enumerate(raw_features):
        try:
            features.append(FeatureConfig(**entry))
        except (ValidationError, TypeError) as e:
            raise CatalogError(
                f"Invalid feature at index {i} in {source}: {e}"
            ) from e

    pages = _parse_map(raw.get("pages") or {}, "pages", source)
    components = _parse_map(raw.get("components") or {}, "components", source)

    tier_info = dict(LICENSE_TIER_INFO)
    raw_tiers = raw.get("tiers") or {}
    if not isinstance(raw_tiers, dict):
        raise CatalogError(f"'tiers' must be a mapping: {source}")
    for name, entry in raw_tiers.items():
        try:
            tier_info[LicenseTier(str(name).upper())] = TierInfo(**entry)
        except (ValidationError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid tier '{name}' in {source}: {e}") from e

    return PlanCatalog(
        features=features,
        page_features=pages,
        component_features=components,
        tier_info=tier_info,
    )


def _parse_map(value: Any, key: str, source: str) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        raise CatalogError(f"'{key}' must be a mapping: {source}")
    parsed: dict[str, list[str]] = {}
    for name, ids in value.items():
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise CatalogError(
                f"'{key}.{name}' must be a list of feature ids: {source}"
            )
        parsed[str(name)] = ids
    return parsed


def catalog_digest(path: str | Path) -> str:
    """SHA-256 of a catalog file, for support diagnostics."""
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()
