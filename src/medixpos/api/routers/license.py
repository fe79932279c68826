"""License key endpoints: validation, activation and local state."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from medixpos.api.schemas import (
    ActivateRequest,
    MachineIdResponse,
    RevalidationResponse,
    SuccessResponse,
    ValidateRequest,
)
from medixpos.licensing.service import LicenseService
from medixpos.models import ActivationResult, LicenseInfo, LicenseValidationResponse

router = APIRouter(prefix="/api/license", tags=["license"])

_service: LicenseService | None = None


def init_router(service: LicenseService | None) -> None:
    global _service  # noqa: PLW0603
    _service = service


def _svc() -> LicenseService:
    if _service is None:
        raise HTTPException(status_code=503, detail="License service not configured")
    return _service


@router.post("/validate", response_model=LicenseValidationResponse)
def validate_license(body: ValidateRequest) -> LicenseValidationResponse:
    return _svc().validate_license(body.license_key, body.activation_id)


@router.post("/activate", response_model=ActivationResult)
def activate_license(body: ActivateRequest) -> ActivationResult:
    return _svc().activate_license(body.license_key, label=body.label)


@router.post("/deactivate", response_model=ActivationResult)
def deactivate_license() -> ActivationResult:
    return _svc().deactivate_license()


@router.get("/info", response_model=LicenseInfo)
def get_license_info() -> LicenseInfo:
    return _svc().get_license_info()


@router.get("/needs-revalidation", response_model=RevalidationResponse)
def needs_revalidation() -> RevalidationResponse:
    return RevalidationResponse(needs_revalidation=_svc().needs_revalidation())


@router.post("/clear", response_model=SuccessResponse)
def clear_license() -> SuccessResponse:
    _svc().clear_license()
    return SuccessResponse()


@router.get("/machine-id", response_model=MachineIdResponse)
def get_machine_id() -> MachineIdResponse:
    return MachineIdResponse(machine_id=_svc().machine_id_for_display())
