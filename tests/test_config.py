"""Tests for the MedixPOS config loader (medixpos.yaml) and service wiring."""

from pathlib import Path

import pytest

from medixpos.api.config import ApiConfig
from medixpos.bootstrap import build_catalog, build_feature_licensing, build_license_service
from medixpos.config import (
    DEFAULT_ORGANIZATION_ID,
    MedixConfig,
    find_config,
    load_config,
)
from medixpos.licensing.polar import DEFAULT_API_BASE_URL, PolarClient
from medixpos.models import LicenseTier
from medixpos.plans.catalog import DEFAULT_CATALOG, CatalogError

from tests.conftest import FakeBackend


@pytest.fixture(autouse=True)
def _no_org_override(monkeypatch):
    monkeypatch.delenv("POLAR_ORG_ID", raising=False)


# --- find_config ---


class TestFindConfig:
    def test_finds_in_start_dir(self, tmp_path: Path):
        cfg = tmp_path / "medixpos.yaml"
        cfg.write_text("app_version: 2.0.0\n", encoding="utf-8")
        assert find_config(tmp_path) == cfg

    def test_finds_in_parent(self, tmp_path: Path):
        cfg = tmp_path / "medixpos.yaml"
        cfg.write_text("app_version: 2.0.0\n", encoding="utf-8")
        child = tmp_path / "sub" / "deep"
        child.mkdir(parents=True)
        assert find_config(child) == cfg

    def test_returns_none_when_missing(self, tmp_path: Path):
        assert find_config(tmp_path) is None

    def test_ignores_directories_named_config(self, tmp_path: Path):
        (tmp_path / "medixpos.yaml").mkdir()
        assert find_config(tmp_path) is None


# --- load_config ---


class TestLoadConfig:
    def test_explicit_path(self, tmp_path: Path):
        cfg_path = tmp_path / "medixpos.yaml"
        cfg_path.write_text(
            "organization_id: org-42\n"
            "license_store: ./data/license.jwt\n"
            "license_secret: s3cret\n"
            "catalog: ./plans.yaml\n"
            "app_version: 2.1.0\n"
            "request_timeout: 3\n"
            "revalidation_hours: 12\n",
            encoding="utf-8",
        )
        cfg = load_config(cfg_path)
        assert cfg.config_path == cfg_path
        assert cfg.organization_id == "org-42"
        assert cfg.license_store == str((tmp_path / "data" / "license.jwt").resolve())
        assert cfg.license_secret == "s3cret"
        assert cfg.catalog == str((tmp_path / "plans.yaml").resolve())
        assert cfg.app_version == "2.1.0"
        assert cfg.request_timeout == 3.0
        assert cfg.revalidation_hours == 12.0

    def test_explicit_path_not_found(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_auto_discover(self, tmp_path: Path, monkeypatch):
        cfg_path = tmp_path / "medixpos.yaml"
        cfg_path.write_text("app_name: PharmaDesk\n", encoding="utf-8")
        child = tmp_path / "sub"
        child.mkdir()
        monkeypatch.chdir(child)
        cfg = load_config()
        assert cfg.config_path == cfg_path
        assert cfg.app_name == "PharmaDesk"

    def test_auto_discover_disabled(self, tmp_path: Path, monkeypatch):
        (tmp_path / "medixpos.yaml").write_text("app_name: X\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        cfg = load_config(auto_discover=False)
        assert cfg == MedixConfig()

    def test_defaults(self):
        cfg = load_config(auto_discover=False)
        assert cfg.organization_id == DEFAULT_ORGANIZATION_ID
        assert cfg.api_base_url == DEFAULT_API_BASE_URL
        assert cfg.license_store is None
        assert cfg.catalog is None
        assert cfg.revalidation_hours == 24.0

    def test_env_overrides_org(self, tmp_path: Path, monkeypatch):
        cfg_path = tmp_path / "medixpos.yaml"
        cfg_path.write_text("organization_id: from-file\n", encoding="utf-8")
        monkeypatch.setenv("POLAR_ORG_ID", "from-env")
        assert load_config(cfg_path).organization_id == "from-env"
        assert load_config(auto_discover=False).organization_id == "from-env"

    def test_empty_yaml_file(self, tmp_path: Path):
        cfg_path = tmp_path / "medixpos.yaml"
        cfg_path.write_text("", encoding="utf-8")
        cfg = load_config(cfg_path)
        assert cfg.config_path == cfg_path
        assert cfg.organization_id == DEFAULT_ORGANIZATION_ID

    def test_non_mapping_raises(self, tmp_path: Path):
        cfg_path = tmp_path / "medixpos.yaml"
        cfg_path.write_text("- item\n- item2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(cfg_path)


# --- ApiConfig ---


class TestApiConfig:
    def test_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "CONFIG_FILE", "DEV_MODE"):
            monkeypatch.delenv(f"MEDIXPOS_API_{name}", raising=False)
        cfg = ApiConfig.from_env()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 8430
        assert cfg.dev_mode is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MEDIXPOS_API_PORT", "9000")
        monkeypatch.setenv("MEDIXPOS_API_DEV_MODE", "yes")
        monkeypatch.setenv("MEDIXPOS_API_CONFIG_FILE", "/etc/medixpos.yaml")
        cfg = ApiConfig.from_env()
        assert cfg.port == 9000
        assert cfg.dev_mode is True
        assert cfg.config_file == "/etc/medixpos.yaml"


# --- bootstrap ---


class TestBootstrap:
    def test_default_catalog(self):
        assert build_catalog(MedixConfig()) is DEFAULT_CATALOG

    def test_catalog_from_file(self, tmp_path: Path):
        plans = tmp_path / "plans.yaml"
        plans.write_text(
            "features:\n"
            "  - {id: only, name: Only, category: core, required_tier: PRO}\n",
            encoding="utf-8",
        )
        catalog = build_catalog(MedixConfig(catalog=str(plans)))
        assert len(catalog) == 1

    def test_bad_catalog_raises(self, tmp_path: Path):
        with pytest.raises(CatalogError):
            build_catalog(MedixConfig(catalog=str(tmp_path / "missing.yaml")))

    def test_license_service_uses_polar_by_default(self, tmp_path: Path):
        cfg = MedixConfig(license_store=str(tmp_path / "license.jwt"))
        svc = build_license_service(cfg, machine_id="m" * 64)
        assert isinstance(svc._backend, PolarClient)
        assert svc.get_license_info().is_licensed is False

    def test_feature_licensing(self, tmp_path: Path):
        cfg = MedixConfig(license_store=str(tmp_path / "license.jwt"))
        licensing = build_feature_licensing(cfg, backend=FakeBackend(), machine_id="m" * 64)
        assert licensing.get_current_tier() == LicenseTier.TRIAL
        assert licensing.license_service is not None
        assert licensing.catalog is DEFAULT_CATALOG
