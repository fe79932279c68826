"""Build licensing services from a ``MedixConfig``."""

from __future__ import annotations

from pathlib import Path

from medixpos.config import DEFAULT_LICENSE_STORE, MedixConfig
from medixpos.entitlements import FeatureLicensingService
from medixpos.licensing.polar import LicenseBackend, PolarClient
from medixpos.licensing.service import LicenseService
from medixpos.licensing.store import LicenseStore, default_secret
from medixpos.plans.catalog import DEFAULT_CATALOG, PlanCatalog
from medixpos.plans.loader import load_catalog


def build_catalog(config: MedixConfig) -> PlanCatalog:
    """Return the configured plan catalog, or the built-in one."""
    if config.catalog:
        return load_catalog(config.catalog)
    return DEFAULT_CATALOG


def build_license_service(
    config: MedixConfig,
    backend: LicenseBackend | None = None,
    machine_id: str | None = None,
) -> LicenseService:
    store_path = Path(config.license_store or DEFAULT_LICENSE_STORE)
    secret = config.license_secret or default_secret(
        config.app_name, config.app_version,
    )
    store = LicenseStore(store_path, secret, config.organization_id)
    if backend is None:
        backend = PolarClient(config.api_base_url, timeout=config.request_timeout)
    return LicenseService(
        store=store,
        backend=backend,
        organization_id=config.organization_id,
        app_version=config.app_version,
        data_dir=store_path.parent,
        revalidation_hours=config.revalidation_hours,
        machine_id=machine_id,
    )


def build_feature_licensing(
    config: MedixConfig,
    backend: LicenseBackend | None = None,
    machine_id: str | None = None,
) -> FeatureLicensingService:
    """Wire catalog, license store, backend and entitlement service."""
    return FeatureLicensingService(
        license_service=build_license_service(config, backend, machine_id),
        catalog=build_catalog(config),
    )
