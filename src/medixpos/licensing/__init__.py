"""License validation, local caching and tier resolution."""

from medixpos.licensing.polar import LicenseBackend, LicenseBackendError, PolarClient
from medixpos.licensing.resolver import resolve_tier
from medixpos.licensing.service import LicenseError, LicenseService
from medixpos.licensing.store import LicenseStore, LicenseStoreError, default_secret

__all__ = [
    "LicenseBackend",
    "LicenseBackendError",
    "LicenseError",
    "LicenseService",
    "LicenseStore",
    "LicenseStoreError",
    "PolarClient",
    "default_secret",
    "resolve_tier",
]
