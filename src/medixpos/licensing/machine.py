"""Hardware fingerprint used to bind a license to one installation."""

from __future__ import annotations

import hashlib
import logging
import platform
from pathlib import Path

logger = logging.getLogger(__name__)

MACHINE_ID_PATHS: tuple[Path, ...] = (
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def read_os_machine_id(paths: tuple[Path, ...] = MACHINE_ID_PATHS) -> str | None:
    """Return the raw OS machine id, or None if no source is readable."""
    for path in paths:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def get_machine_id(
    data_dir: str | Path,
    paths: tuple[Path, ...] = MACHINE_ID_PATHS,
) -> str:
    """Return a stable, hashed fingerprint for this machine.

    Falls back to a hash of platform, architecture and *data_dir* when the
    OS does not expose a machine id.
    """
    raw = read_os_machine_id(paths)
    if raw is not None:
        return _sha256(raw)

    logger.error("Failed to read machine ID; using platform fingerprint")
    return _sha256(f"{platform.system()}-{platform.machine()}-{Path(data_dir)}")
