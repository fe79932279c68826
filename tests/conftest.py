"""Shared fakes for license tests: a recording backend and a fixed clock."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from medixpos.licensing.polar import LicenseBackendError
from medixpos.licensing.service import LicenseService
from medixpos.licensing.store import LicenseStore

ORG = "org-123"
SECRET = "test-secret-0123456789abcdef0123456789"
MACHINE = "a1b2c3d4" + "0" * 56
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeBackend:
    """In-memory license backend recording every call."""

    def __init__(self, reply: dict[str, Any] | None = None) -> None:
        self.reply = reply if reply is not None else granted()
        self.activation_id = "act-1"
        self.error: LicenseBackendError | None = None
        self.activate_error: LicenseBackendError | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def validate(self, key, organization_id, activation_id=None, increment_usage=0):
        self.calls.append(("validate", {
            "key": key, "organization_id": organization_id,
            "activation_id": activation_id, "increment_usage": increment_usage,
        }))
        if self.error:
            raise self.error
        return dict(self.reply)

    def activate(self, key, organization_id, label, meta=None):
        self.calls.append(("activate", {"key": key, "label": label, "meta": meta}))
        if self.activate_error:
            raise self.activate_error
        return {"id": self.activation_id}

    def deactivate(self, key, organization_id, activation_id):
        self.calls.append(("deactivate", {"key": key, "activation_id": activation_id}))
        if self.error:
            raise self.error

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


def granted(**overrides: Any) -> dict[str, Any]:
    data = {
        "key": "PRO_ABCDEF123456",
        "status": "granted",
        "expires_at": "2026-01-01T00:00:00Z",
        "usage": 1,
        "limit_usage": 3,
        "validations": 7,
    }
    data.update(overrides)
    return data


def make_service(
    tmp_path: Path,
    backend: FakeBackend | None = None,
    clock: FakeClock | None = None,
    machine_id: str = MACHINE,
) -> LicenseService:
    return LicenseService(
        store=LicenseStore(tmp_path / "license.jwt", SECRET, ORG),
        backend=backend or FakeBackend(),
        organization_id=ORG,
        app_version="1.0.0",
        data_dir=tmp_path,
        machine_id=machine_id,
        _clock=clock or FakeClock(),
    )
