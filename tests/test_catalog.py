"""Tests for the plan catalog and the YAML catalog loader."""

from pathlib import Path

import pytest

from medixpos.models import FeatureConfig, LicenseTier
from medixpos.plans.catalog import (
    COMPONENT_FEATURE_MAP,
    DEFAULT_CATALOG,
    FEATURE_PLANS,
    LICENSE_TIER_INFO,
    PAGE_FEATURE_MAP,
    CatalogError,
    PlanCatalog,
)
from medixpos.plans.loader import catalog_digest, load_catalog, parse_catalog


def _feature(fid: str, tier: str = "TRIAL", **kwargs) -> FeatureConfig:
    return FeatureConfig(
        id=fid, name=fid.title(), category="core", required_tier=tier, **kwargs,
    )


# --- Built-in catalog ---


class TestDefaultCatalog:
    def test_feature_count(self):
        assert len(DEFAULT_CATALOG) == 31
        assert len(FEATURE_PLANS) == 31

    def test_tier_counts(self):
        counts = {t: 0 for t in LicenseTier}
        for f in DEFAULT_CATALOG.features:
            counts[f.required_tier] += 1
        assert counts == {
            LicenseTier.TRIAL: 6,
            LicenseTier.LITE: 5,
            LicenseTier.BASIC: 8,
            LicenseTier.PRO: 12,
        }

    def test_core_features(self):
        core = {f.id for f in DEFAULT_CATALOG.features if f.is_core}
        assert core == {"auth", "dashboard"}

    def test_pos_basic_limitations(self):
        pos = DEFAULT_CATALOG.get("pos_basic")
        assert pos is not None
        assert pos.limitations.max_sales_per_day == 20
        assert pos.limitations.max_products == 100
        assert pos.limitations.max_customers == 50

    def test_maps_reference_known_features(self):
        for ids in list(PAGE_FEATURE_MAP.values()) + list(COMPONENT_FEATURE_MAP.values()):
            for fid in ids:
                assert fid in DEFAULT_CATALOG

    def test_every_tier_has_info(self):
        for tier in LicenseTier:
            assert DEFAULT_CATALOG.tier_info(tier) == LICENSE_TIER_INFO[tier]

    def test_pricing(self):
        assert DEFAULT_CATALOG.tier_info(LicenseTier.TRIAL).price is None
        assert DEFAULT_CATALOG.tier_info(LicenseTier.PRO).price == "$99/month"

    def test_get_unknown(self):
        assert DEFAULT_CATALOG.get("nonexistent") is None
        assert "nonexistent" not in DEFAULT_CATALOG

    def test_features_returns_copy(self):
        DEFAULT_CATALOG.features.clear()
        assert len(DEFAULT_CATALOG.features) == 31


# --- PlanCatalog validation ---


class TestPlanCatalog:
    def test_duplicate_id(self):
        with pytest.raises(CatalogError, match="Duplicate feature id 'a'"):
            PlanCatalog([_feature("a"), _feature("a")], {}, {}, LICENSE_TIER_INFO)

    def test_page_references_unknown_feature(self):
        with pytest.raises(CatalogError, match="Page '/x' references unknown"):
            PlanCatalog([_feature("a")], {"/x": ["b"]}, {}, LICENSE_TIER_INFO)

    def test_component_references_unknown_feature(self):
        with pytest.raises(CatalogError, match="Component 'Widget'"):
            PlanCatalog([_feature("a")], {}, {"Widget": ["zzz"]}, LICENSE_TIER_INFO)

    def test_missing_tier_info(self):
        partial = {LicenseTier.TRIAL: LICENSE_TIER_INFO[LicenseTier.TRIAL]}
        with pytest.raises(CatalogError, match="Missing tier info"):
            PlanCatalog([_feature("a")], {}, {}, partial)

    def test_exact_page_lookup(self):
        cat = PlanCatalog([_feature("a")], {"/a": ["a"]}, {}, LICENSE_TIER_INFO)
        assert cat.features_for_page("/a") == ("a",)
        assert cat.features_for_page("a") == ()


# --- YAML loader ---


_CATALOG_YAML = """\
features:
  - id: pos_basic
    name: Basic Point of Sale
    category: sales
    required_tier: TRIAL
    limitations:
      max_sales_per_day: 10
  - id: reports
    name: Reports
    category: reports
    required_tier: basic
pages:
  /pos: [pos_basic]
  /reports: [reports]
components:
  ReportExport: [reports]
tiers:
  PRO:
    name: Enterprise
    description: Everything
    color: "#000000"
    price: "$199/month"
"""


class TestLoadCatalog:
    def test_load(self, tmp_path: Path):
        path = tmp_path / "plans.yaml"
        path.write_text(_CATALOG_YAML, encoding="utf-8")
        cat = load_catalog(path)
        assert len(cat) == 2
        assert cat.get("reports").required_tier == LicenseTier.BASIC
        assert cat.get("pos_basic").limitations.max_sales_per_day == 10
        assert cat.features_for_page("/reports") == ("reports",)
        assert cat.features_for_component("ReportExport") == ("reports",)

    def test_tier_override_and_defaults(self, tmp_path: Path):
        path = tmp_path / "plans.yaml"
        path.write_text(_CATALOG_YAML, encoding="utf-8")
        cat = load_catalog(path)
        assert cat.tier_info(LicenseTier.PRO).name == "Enterprise"
        assert cat.tier_info(LicenseTier.LITE) == LICENSE_TIER_INFO[LicenseTier.LITE]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("features: [unclosed\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            load_catalog(path)

    def test_missing_features_key(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("pages: {}\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="'features' key"):
            load_catalog(path)

    def test_invalid_feature(self):
        raw = {"features": [{"id": "x", "name": "X", "category": "core"}]}
        with pytest.raises(CatalogError, match="index 0"):
            parse_catalog(raw)

    def test_page_map_must_be_lists(self):
        raw = {
            "features": [{"id": "x", "name": "X", "category": "core", "required_tier": "TRIAL"}],
            "pages": {"/x": "x"},
        }
        with pytest.raises(CatalogError, match="'pages./x'"):
            parse_catalog(raw)

    def test_dangling_reference(self):
        raw = {
            "features": [{"id": "x", "name": "X", "category": "core", "required_tier": "TRIAL"}],
            "pages": {"/y": ["y"]},
        }
        with pytest.raises(CatalogError, match="unknown feature"):
            parse_catalog(raw)

    def test_unknown_tier_name(self):
        raw = {
            "features": [],
            "tiers": {"GOLD": {"name": "Gold", "description": "", "color": "#fff"}},
        }
        with pytest.raises(CatalogError, match="Invalid tier 'GOLD'"):
            parse_catalog(raw)

    def test_digest_is_stable(self, tmp_path: Path):
        path = tmp_path / "plans.yaml"
        path.write_text(_CATALOG_YAML, encoding="utf-8")
        assert catalog_digest(path) == catalog_digest(path)
        assert len(catalog_digest(path)) == 64
