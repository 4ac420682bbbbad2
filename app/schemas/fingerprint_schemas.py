"""Schemas for trial fingerprint functionality"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class FingerprintData(BaseModel):
    """
    Browser/device signals collected on the client.

    Field names follow what browsers report (camelCase). Unknown keys are kept
    and hashed as additional stable attributes unless they are volatile.
    """
    user_agent: str = Field(..., alias="userAgent", max_length=2000, description="navigator.userAgent")
    screen_resolution: str = Field(..., alias="screenResolution", max_length=50, description="e.g. 1920x1080")
    timezone: str = Field(..., max_length=100, description="IANA timezone name")
    language: Optional[str] = Field(None, max_length=50)
    platform: Optional[str] = Field(None, max_length=100)
    cookie_enabled: Optional[bool] = Field(None, alias="cookieEnabled")
    do_not_track: Optional[str] = Field(None, alias="doNotTrack", max_length=20)

    class Config:
        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "userAgent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) ...",
                "screenResolution": "1920x1080",
                "timezone": "Europe/Berlin",
                "language": "de-DE",
                "platform": "Win32",
                "cookieEnabled": True,
                "doNotTrack": "unspecified"
            }
        }

    def to_signals(self) -> Dict[str, Any]:
        """All signals, declared and extra, keyed for fingerprint derivation"""
        return self.model_dump()


class TrialFingerprintRequest(BaseModel):
    """Body accepted by the check and record endpoints"""
    fingerprint_data: FingerprintData = Field(..., alias="fingerprintData")

    class Config:
        populate_by_name = True


class EligibilityResponse(BaseModel):
    """Result of a trial eligibility check"""
    success: bool = True
    is_eligible: bool = Field(..., alias="isEligible")
    reason: Optional[str] = None
    reason_code: Optional[str] = Field(None, alias="reasonCode")
    fingerprint: str

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "success": True,
                "isEligible": False,
                "reason": "Fingerprint already used for trial",
                "reasonCode": "fingerprint_already_used",
                "fingerprint": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"
            }
        }


class RecordUsageResponse(BaseModel):
    """Result of recording trial usage"""
    success: bool = True
    message: str


class TrialFingerprintResponse(BaseModel):
    """Stored fingerprint record as shown to administrators"""
    id: int
    fingerprint_hash: str
    user_id: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    screen_resolution: Optional[str]
    timezone: Optional[str]
    trial_used: bool
    trial_start_date: Optional[datetime]
    trial_end_date: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class TrialFingerprintListResponse(BaseModel):
    total: int
    records: List[TrialFingerprintResponse]


class CurrentFingerprintResponse(BaseModel):
    """The administrator's own fingerprint compared against stored records"""
    fingerprint: str
    ip_address: str = Field(..., alias="ipAddress")
    is_eligible: bool = Field(..., alias="isEligible")
    reason: Optional[str] = None
    reason_code: Optional[str] = Field(None, alias="reasonCode")
    matching_record: Optional[TrialFingerprintResponse] = Field(None, alias="matchingRecord")

    class Config:
        populate_by_name = True
