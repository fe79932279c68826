"""License service: key validation, activation and local caching.

Wires the hosted license backend, the signed local store and the machine
fingerprint together.

Validation flow:
1. Resolve the key (argument, else stored) -- none means INACTIVE
2. Refuse a record bound to a different machine
3. Activate a newly supplied key that has no activation id yet
4. Serve the cached status unless a revalidation is due
5. Validate online and classify: EXPIRED > usage limit > not granted > ACTIVE
6. Persist the machine-bound record

Backend failures never raise out of ``validate_license``; they produce an
INVALID response carrying the error message.
"""

from __future__ import annotations

import logging
import platform
import sys
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from medixpos.licensing.machine import get_machine_id
from medixpos.licensing.polar import LicenseBackend, LicenseBackendError
from medixpos.licensing.store import LicenseStore
from medixpos.models import (
    ActivationResult,
    LicenseInfo,
    LicenseRecord,
    LicenseStatus,
    LicenseValidationResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_REVALIDATION_HOURS = 24.0
_GRANTED = "granted"


class LicenseError(Exception):
    """Raised when the license subsystem is misconfigured."""


def redact_key(key: str | None) -> str:
    """Mask a license key for log output, keeping its tier prefix readable."""
    if not key:
        return "<none>"
    return f"{key[:6]}****" if len(key) > 10 else "****"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class LicenseService:
    """Validates and caches the installation's license key."""

    def __init__(
        self,
        store: LicenseStore,
        backend: LicenseBackend,
        organization_id: str,
        app_version: str,
        data_dir: str | Path = ".",
        revalidation_hours: float = DEFAULT_REVALIDATION_HOURS,
        machine_id: str | None = None,
        _clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not organization_id:
            raise LicenseError("Organization ID must not be empty")
        self._store = store
        self._backend = backend
        self._organization_id = organization_id
        self._app_version = app_version
        self._data_dir = Path(data_dir)
        self._revalidation = timedelta(hours=revalidation_hours)
        self._machine_id = machine_id
        self._clock = _clock or (lambda: datetime.now(tz=UTC))
        self._lock = threading.Lock()
        self._record: LicenseRecord = store.load()

    @property
    def record(self) -> LicenseRecord:
        """A copy of the current license record."""
        return self._record.model_copy(deep=True)

    def get_machine_id(self) -> str:
        if not self._machine_id:
            self._machine_id = get_machine_id(self._data_dir)
        return self._machine_id

    def machine_id_for_display(self) -> str:
        return self.get_machine_id()[:8].upper()

    # --- validation ---

    def validate_license(
        self,
        license_key: str | None = None,
        activation_id: str | None = None,
        force: bool = False,
    ) -> LicenseValidationResponse:
        """Validate a new or the stored license key.

        The cached status is served while it is fresh unless *force* is set.
        """
        with self._lock:
            try:
                return self._validate(license_key, activation_id, force)
            except LicenseBackendError as e:
                logger.error("License validation error: %s", e)
                return LicenseValidationResponse(
                    valid=False, status=LicenseStatus.INVALID, message=str(e),
                )

    def _validate(
        self,
        license_key: str | None,
        activation_id: str | None,
        force: bool,
    ) -> LicenseValidationResponse:
        record = self._record
        key = license_key or record.license_key
        activation = activation_id or record.activation_id

        if not key:
            return LicenseValidationResponse(
                valid=False,
                status=LicenseStatus.INACTIVE,
                message="No license key provided",
            )

        machine_id = self.get_machine_id()
        if record.machine_id and record.machine_id != machine_id:
            logger.warning("Machine ID mismatch - license bound to different hardware")
            return LicenseValidationResponse(
                valid=False,
                status=LicenseStatus.INVALID,
                message="License is bound to different hardware",
            )

        logger.info(
            "Validating license key=%s has_activation=%s",
            redact_key(key), bool(activation),
        )

        if not activation and license_key:
            logger.info("No activation ID found; attempting to activate license")
            try:
                activation = self._activate_remote(key, machine_id).get("id")
                logger.info("License activated successfully")
            except LicenseBackendError as e:
                logger.warning("Activation not required or failed: %s", e)

        now = self._clock()
        revalidate = (
            force
            or record.last_validated is None
            or bool(license_key)
            or bool(activation_id)
            or now - record.last_validated > self._revalidation
        )
        if not revalidate and record.status is not None:
            return self._cached_response(record, now)

        increment = 1 if license_key and not record.license_key else 0
        data = self._backend.validate(
            key,
            self._organization_id,
            activation_id=activation,
            increment_usage=increment,
        )
        if not data:
            return LicenseValidationResponse(
                valid=False,
                status=LicenseStatus.INVALID,
                message="License validation failed",
            )

        expires_at = _parse_datetime(data.get("expires_at"))
        usage = _as_int(data.get("usage"))
        limit_usage = _as_int(data.get("limit_usage"))
        status, message = self._classify(data, expires_at, usage, limit_usage, now)

        self._record = record.model_copy(
            update={
                "license_key": license_key or record.license_key,
                "activation_id": activation,
                "last_validated": now,
                "expires_at": expires_at,
                "status": status,
                "validations": _as_int(data.get("validations")),
                "usage": usage,
                "limit_usage": limit_usage or None,
                "machine_id": machine_id,
                "details": data,
            }
        )
        self._store.save(self._record)

        return LicenseValidationResponse(
            valid=status == LicenseStatus.ACTIVE,
            status=status,
            expires_at=expires_at,
            usage=usage,
            limit_usage=limit_usage or None,
            message=message,
            details=data,
        )

    @staticmethod
    def _classify(
        data: dict[str, Any],
        expires_at: datetime | None,
        usage: int | None,
        limit_usage: int | None,
        now: datetime,
    ) -> tuple[LicenseStatus, str]:
        if expires_at is not None and expires_at < now:
            return LicenseStatus.EXPIRED, "License has expired"
        if limit_usage is not None and (usage or 0) >= limit_usage:
            return LicenseStatus.INVALID, "License usage limit exceeded"
        if data.get("status") != _GRANTED:
            return LicenseStatus.INACTIVE, "License is not active"
        return LicenseStatus.ACTIVE, "License is valid and active"

    @staticmethod
    def _cached_response(
        record: LicenseRecord, now: datetime,
    ) -> LicenseValidationResponse:
        logger.info(
            "Using cached license validation status=%s last_validated=%s",
            record.status, record.last_validated,
        )
        expired = record.expires_at is not None and record.expires_at < now
        return LicenseValidationResponse(
            valid=record.status == LicenseStatus.ACTIVE and not expired,
            status=LicenseStatus.EXPIRED if expired else record.status,
            expires_at=record.expires_at,
            usage=record.usage,
            limit_usage=record.limit_usage,
            message="License has expired" if expired else "License is valid (cached)",
            details=record.details,
        )

    # --- activation ---

    def _activate_remote(
        self, key: str, machine_id: str, label: str | None = None,
    ) -> dict[str, Any]:
        return self._backend.activate(
            key,
            self._organization_id,
            label=label or f"MedixPOS-{machine_id[:8]}",
            meta={
                "app_version": self._app_version,
                "platform": sys.platform,
                "arch": platform.machine(),
                "machine_id": machine_id,
                "activated_at": self._clock().isoformat(),
            },
        )

    def activate_license(self, license_key: str, label: str | None = None) -> ActivationResult:
        """Activate *license_key* on this machine and bind the record to it."""
        with self._lock:
            machine_id = self.get_machine_id()
            try:
                data = self._activate_remote(license_key, machine_id, label)
            except LicenseBackendError as e:
                logger.error("License activation error: %s", e)
                return ActivationResult(success=False, message=str(e))

            activation_id = data.get("id")
            self._record = self._record.model_copy(
                update={
                    "license_key": license_key,
                    "activation_id": activation_id,
                    "machine_id": machine_id,
                }
            )
            self._store.save(self._record)

        logger.info("License activated and bound to hardware")
        return ActivationResult(
            success=True,
            activation_id=activation_id,
            message="License activated successfully",
        )

    def deactivate_license(self) -> ActivationResult:
        """Release this machine's activation and forget the license."""
        with self._lock:
            record = self._record
            if not record.license_key or not record.activation_id:
                return ActivationResult(
                    success=False, message="No active license to deactivate",
                )
            try:
                self._backend.deactivate(
                    record.license_key,
                    self._organization_id,
                    record.activation_id,
                )
            except LicenseBackendError as e:
                logger.error("License deactivation error: %s", e)
                return ActivationResult(success=False, message=str(e))
            self._reset()

        logger.info("License deactivated successfully")
        return ActivationResult(
            success=True, message="License deactivated successfully",
        )

    # --- state ---

    def get_license_info(self) -> LicenseInfo:
        record = self._record
        return LicenseInfo(
            is_licensed=bool(record.license_key),
            status=record.status,
            expires_at=record.expires_at,
            last_validated=record.last_validated,
            usage=record.usage,
            limit_usage=record.limit_usage,
        )

    def needs_revalidation(self) -> bool:
        last = self._record.last_validated
        if last is None:
            return True
        return self._clock() - last >= self._revalidation

    def clear_license(self) -> None:
        with self._lock:
            self._reset()

    def _reset(self) -> None:
        self._record = self._store.empty()
        self._store.clear()
