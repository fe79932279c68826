"""Tests for the feature licensing service and its tier context."""

from __future__ import annotations

import asyncio
import io
import json
import urllib.request
from datetime import UTC, datetime
from pathlib import Path

from medixpos.entitlements import EntitlementContext, FeatureLicensingService
from medixpos.licensing.polar import LicenseBackendError, PolarClient
from medixpos.licensing.service import LicenseError
from medixpos.models import LicenseInfo, LicenseStatus, LicenseTier, LimitResource

from tests.conftest import FakeBackend, FakeClock
from tests.conftest import granted as _granted
from tests.conftest import make_service as _service


def _licensing(
    tmp_path: Path,
    backend: FakeBackend | None = None,
    key: str | None = "PRO_ABCDEF123456",
    clock: FakeClock | None = None,
) -> FeatureLicensingService:
    svc = _service(tmp_path, backend, clock)
    if key:
        svc.validate_license(key)
    return FeatureLicensingService(svc, _clock=clock or FakeClock())


class _BrokenLicenseService:
    """Reports an active license but fails on validation."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    def get_license_info(self) -> LicenseInfo:
        return LicenseInfo(is_licensed=True, status=LicenseStatus.ACTIVE)

    def validate_license(self, license_key=None, activation_id=None, force=False):
        raise self.error


# --- EntitlementContext ---


class TestEntitlementContext:
    def test_default_trial(self):
        assert EntitlementContext().tier == LicenseTier.TRIAL

    def test_set_tier(self):
        ctx = EntitlementContext()
        ctx.set_tier(LicenseTier.BASIC)
        assert ctx.tier == LicenseTier.BASIC

    def test_shared_between_services(self):
        ctx = EntitlementContext(LicenseTier.LITE)
        a = FeatureLicensingService(context=ctx)
        b = FeatureLicensingService(context=ctx)
        ctx.set_tier(LicenseTier.PRO)
        assert a.get_current_tier() == b.get_current_tier() == LicenseTier.PRO


# --- tier lifecycle ---


class TestTierResolution:
    def test_trial_before_initialize(self, tmp_path: Path):
        licensing = _licensing(tmp_path)
        assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_no_license_service(self):
        licensing = FeatureLicensingService()
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_pro_license(self, tmp_path: Path):
        backend = FakeBackend()
        licensing = _licensing(tmp_path, backend)
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.PRO
        # served from the fresh cache
        assert backend.count("validate") == 1

    def test_cached_details_keep_tier_across_refreshes(self, tmp_path: Path):
        licensing = _licensing(tmp_path, FakeBackend(_granted(key="BASIC_ABCDEF1234")))
        asyncio.run(licensing.initialize())
        asyncio.run(licensing.refresh_license_status())
        assert licensing.get_current_tier() == LicenseTier.BASIC

    def test_meta_tier(self, tmp_path: Path):
        backend = FakeBackend(_granted(key="KEY_ABCDEF1234", meta={"tier": "lite"}))
        licensing = _licensing(tmp_path, backend, key="KEY_ABCDEF1234")
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.LITE

    def test_unlicensed_skips_validation(self, tmp_path: Path):
        backend = FakeBackend()
        licensing = _licensing(tmp_path, backend, key=None)
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.TRIAL
        assert backend.calls == []

    def test_expired_license_is_trial(self, tmp_path: Path):
        backend = FakeBackend(_granted(expires_at="2025-01-01T00:00:00Z"))
        licensing = _licensing(tmp_path, backend)
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_force_refresh_revalidates(self, tmp_path: Path):
        backend = FakeBackend()
        licensing = _licensing(tmp_path, backend)
        asyncio.run(licensing.initialize())
        asyncio.run(licensing.force_refresh())
        assert backend.count("validate") == 2
        assert licensing.get_current_tier() == LicenseTier.PRO

    def test_force_refresh_downgrades_on_backend_error(self, tmp_path: Path):
        backend = FakeBackend()
        licensing = _licensing(tmp_path, backend)
        asyncio.run(licensing.initialize())
        backend.error = LicenseBackendError("unreachable")
        asyncio.run(licensing.force_refresh())
        assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_downgrade_when_plan_changes(self, tmp_path: Path):
        backend = FakeBackend()
        licensing = _licensing(tmp_path, backend)
        asyncio.run(licensing.initialize())
        backend.reply = _granted(key="LITE_ABCDEF1234")
        asyncio.run(licensing.force_refresh())
        assert licensing.get_current_tier() == LicenseTier.LITE

    def test_collaborator_error_falls_back_to_trial(self):
        ctx = EntitlementContext(LicenseTier.PRO)
        for error in (LicenseError("bad config"), OSError("disk")):
            licensing = FeatureLicensingService(_BrokenLicenseService(error), context=ctx)
            asyncio.run(licensing.refresh_license_status())
            assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_unreadable_license_info_falls_back_to_trial(self):
        class _Unreadable:
            def get_license_info(self):
                raise OSError("license store unreadable")

        licensing = FeatureLicensingService(
            _Unreadable(), context=EntitlementContext(LicenseTier.PRO),
        )
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.TRIAL

    def test_garbled_backend_reply_falls_back_to_trial(self, tmp_path: Path, monkeypatch):
        replies = [
            b'{"id": "act-1"}',
            json.dumps(_granted()).encode("utf-8"),
            b"<html>caf\xe9</html>",
        ]
        monkeypatch.setattr(
            urllib.request, "urlopen", lambda req, timeout=None: io.BytesIO(replies.pop(0)),
        )
        clock = FakeClock()
        svc = _service(tmp_path, backend=PolarClient(), clock=clock)
        assert svc.validate_license("PRO_ABCDEF123456").valid
        licensing = FeatureLicensingService(svc, _clock=clock)
        asyncio.run(licensing.initialize())
        assert licensing.get_current_tier() == LicenseTier.PRO
        asyncio.run(licensing.force_refresh())
        assert licensing.get_current_tier() == LicenseTier.TRIAL


# --- queries ---


class TestQueries:
    def _at(self, tier: LicenseTier) -> FeatureLicensingService:
        return FeatureLicensingService(context=EntitlementContext(tier))

    def test_tier_info(self):
        assert self._at(LicenseTier.LITE).get_current_tier_info().name == "Lite"

    def test_feature_checks(self):
        licensing = self._at(LicenseTier.BASIC)
        assert licensing.is_feature_enabled("prescriptions")
        assert not licensing.is_feature_enabled("audit_logs")
        assert not licensing.is_feature_enabled("nonexistent-id")

    def test_page_and_component(self):
        licensing = self._at(LicenseTier.TRIAL)
        assert licensing.can_access_page("/")
        assert licensing.can_access_page("dashboard")
        assert not licensing.can_access_page("/purchases")
        assert not licensing.can_render_component("BarcodeScanner")

    def test_lists(self):
        licensing = self._at(LicenseTier.LITE)
        assert len(licensing.get_available_features()) == 11
        assert len(licensing.get_blocked_features()) == 20

    def test_limitations(self):
        lim = self._at(LicenseTier.TRIAL).get_feature_limitations("pos_basic")
        assert lim.max_sales_per_day == 20

    def test_check_feature_limits(self):
        licensing = self._at(LicenseTier.TRIAL)
        result = asyncio.run(
            licensing.check_feature_limits("pos_basic", {LimitResource.DAILY_SALES: 20}),
        )
        assert result.within_limits is False
        assert result.limit == 20

    def test_upgrade_and_page_validation(self):
        licensing = self._at(LicenseTier.TRIAL)
        assert licensing.get_upgrade_suggestions("audit_logs").required_tier == LicenseTier.PRO
        result = licensing.validate_page_access("/purchases")
        assert result.allowed is False
        assert result.redirect_to == "/"


# --- license status ---


class TestLicenseStatus:
    def test_without_license_service(self):
        status = FeatureLicensingService().get_license_status()
        assert status.is_active is False
        assert status.tier == LicenseTier.TRIAL
        assert status.tier_info.name == "Trial"
        assert status.expires_at is None
        assert status.days_remaining is None

    def test_active_license(self, tmp_path: Path):
        clock = FakeClock()
        backend = FakeBackend(_granted(expires_at="2025-06-11T00:00:00Z"))
        licensing = _licensing(tmp_path, backend, clock=clock)
        asyncio.run(licensing.initialize())
        status = licensing.get_license_status()
        assert status.is_active is True
        assert status.tier == LicenseTier.PRO
        assert status.expires_at == datetime(2025, 6, 11, tzinfo=UTC)
        # 9.5 days left rounds up
        assert status.days_remaining == 10
