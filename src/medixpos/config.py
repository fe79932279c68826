"""Config file loading and auto-discovery for MedixPOS licensing.

Searches for ``medixpos.yaml`` in the current directory and parent
directories, parses it, and resolves all relative paths against the
config file's location.

The ``POLAR_ORG_ID`` environment variable overrides the organization id.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from medixpos.licensing.polar import DEFAULT_API_BASE_URL

CONFIG_FILENAME = "medixpos.yaml"
ORG_ID_ENV = "POLAR_ORG_ID"
DEFAULT_ORGANIZATION_ID = "9cce1897-ade4-4777-81fb-e40048b6a22d"
DEFAULT_LICENSE_STORE = "./license.jwt"


@dataclass(frozen=True)
class MedixConfig:
    """Parsed MedixPOS licensing configuration."""

    config_path: Path | None = None
    organization_id: str = DEFAULT_ORGANIZATION_ID
    license_store: str | None = None
    license_secret: str | None = None
    catalog: str | None = None
    app_name: str = "MedixPOS"
    app_version: str = "1.0.0"
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 10.0
    revalidation_hours: float = 24.0


def find_config(start: Path | None = None) -> Path | None:
    """Walk from *start* (default ``cwd()``) up to the filesystem root.

    Returns the first ``medixpos.yaml`` found, or ``None``.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    path: str | Path | None = None,
    *,
    auto_discover: bool = True,
) -> MedixConfig:
    """Load a MedixPOS config file.

    Resolution order:

    1. Explicit *path* (error if it doesn't exist).
    2. Auto-discover by walking parent directories.
    3. Return an empty ``MedixConfig`` (all defaults).

    ``POLAR_ORG_ID`` is applied last in every case.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).resolve()
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
    elif auto_discover:
        config_path = find_config()

    config = MedixConfig() if config_path is None else _parse_config(config_path)

    org_override = os.environ.get(ORG_ID_ENV)
    if org_override:
        config = replace(config, organization_id=org_override)
    return config


def _parse_config(config_path: Path) -> MedixConfig:
    """Read and parse a YAML config file, resolving relative paths."""
    text = config_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}

    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {config_path}, got {type(data).__name__}"
        raise ValueError(msg)

    base = config_path.parent

    def _resolve(key: str) -> str | None:
        val = data.get(key)
        if val is None:
            return None
        return str((base / val).resolve())

    defaults = MedixConfig()
    return MedixConfig(
        config_path=config_path,
        organization_id=str(data.get("organization_id", defaults.organization_id)),
        license_store=_resolve("license_store"),
        license_secret=data.get("license_secret"),
        catalog=_resolve("catalog"),
        app_name=str(data.get("app_name", defaults.app_name)),
        app_version=str(data.get("app_version", defaults.app_version)),
        api_base_url=data.get("api_base_url", defaults.api_base_url),
        request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
        revalidation_hours=float(
            data.get("revalidation_hours", defaults.revalidation_hours)
        ),
    )
