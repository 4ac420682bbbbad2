"""Pydantic schemas for request/response validation"""
from app.schemas.fingerprint_schemas import (
    FingerprintData,
    TrialFingerprintRequest,
    EligibilityResponse,
    RecordUsageResponse,
    TrialFingerprintResponse,
    TrialFingerprintListResponse,
    CurrentFingerprintResponse
)

__all__ = [
    "FingerprintData",
    "TrialFingerprintRequest",
    "EligibilityResponse",
    "RecordUsageResponse",
    "TrialFingerprintResponse",
    "TrialFingerprintListResponse",
    "CurrentFingerprintResponse"
]
