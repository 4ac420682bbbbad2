"""Trial fingerprint API endpoints"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_fingerprint_store
from app.middleware.auth import get_current_user, require_admin
from app.schemas.auth_schemas import SessionUser
from app.schemas.fingerprint_schemas import (
    CurrentFingerprintResponse,
    EligibilityResponse,
    RecordUsageResponse,
    TrialFingerprintListResponse,
    TrialFingerprintRequest,
    TrialFingerprintResponse,
)
from app.services.fingerprint_service import (
    check_trial_eligibility,
    derive_fingerprint,
    extract_client_ip,
    record_trial_usage,
)
from app.services.fingerprint_store import FingerprintStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    return extract_client_ip(request.headers, request.client.host if request.client else None)


@router.post(
    "/check-eligibility",
    response_model=EligibilityResponse,
    response_model_exclude_none=True,
    summary="Check whether this device may start a free trial",
)
def check_eligibility(
    payload: TrialFingerprintRequest,
    request: Request,
    store: FingerprintStore = Depends(get_fingerprint_store),
):
    """
    No authentication required. Derives the caller's fingerprint from the
    submitted signals and the request's network address.

    Errors never block the visitor: the failure payload still carries
    ``isEligible: true``.
    """
    try:
        ip_address = _client_ip(request)
        fingerprint = derive_fingerprint(payload.fingerprint_data.to_signals(), ip_address)
        result = check_trial_eligibility(store, fingerprint, ip_address)

        return EligibilityResponse(
            success=True,
            is_eligible=result.is_eligible,
            reason=result.reason,
            reason_code=result.reason_code.value if result.reason_code else None,
            fingerprint=fingerprint,
        )

    except Exception as e:
        logger.error(f"Error checking trial eligibility: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Failed to check trial eligibility",
                "isEligible": True,
            },
        )


@router.post(
    "/record-usage",
    response_model=RecordUsageResponse,
    summary="Record that this device has consumed its free trial",
)
def record_usage(
    payload: TrialFingerprintRequest,
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    store: FingerprintStore = Depends(get_fingerprint_store),
):
    """
    **Requires** an account session. Repeating the call for a device that
    already used its trial succeeds without changing the stored record.
    """
    ip_address = _client_ip(request)
    signals = payload.fingerprint_data.to_signals()
    fingerprint = derive_fingerprint(signals, ip_address)

    result = record_trial_usage(store, fingerprint, ip_address, current_user.id, signals)

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to record trial usage"},
        )

    return RecordUsageResponse(success=True, message="Trial usage recorded")


@router.get(
    "/admin/records",
    response_model=TrialFingerprintListResponse,
    summary="List all fingerprint records, newest first",
)
def list_fingerprint_records(
    current_user: SessionUser = Depends(require_admin),
    store: FingerprintStore = Depends(get_fingerprint_store),
):
    """**Role:** ADMIN or higher. Read only."""
    records = store.list_all()
    return TrialFingerprintListResponse(
        total=len(records),
        records=[TrialFingerprintResponse.model_validate(r) for r in records],
    )


@router.post(
    "/admin/current",
    response_model=CurrentFingerprintResponse,
    summary="Compare the caller's own fingerprint against stored records",
)
def inspect_current_fingerprint(
    payload: TrialFingerprintRequest,
    request: Request,
    current_user: SessionUser = Depends(require_admin),
    store: FingerprintStore = Depends(get_fingerprint_store),
):
    """
    **Role:** ADMIN or higher. Runs the same eligibility check visitors get,
    so the verdict shown here is the one the production flow would return.
    """
    ip_address = _client_ip(request)
    fingerprint = derive_fingerprint(payload.fingerprint_data.to_signals(), ip_address)
    result = check_trial_eligibility(store, fingerprint, ip_address)
    matching = store.find_by_hash(fingerprint)

    return CurrentFingerprintResponse(
        fingerprint=fingerprint,
        ip_address=ip_address,
        is_eligible=result.is_eligible,
        reason=result.reason,
        reason_code=result.reason_code.value if result.reason_code else None,
        matching_record=TrialFingerprintResponse.model_validate(matching) if matching else None,
    )
