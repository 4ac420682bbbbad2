"""Trial fingerprint service: derive fingerprints, check eligibility, record usage"""
import hashlib
import ipaddress
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.config import settings
from app.services.fingerprint_store import FingerprintStore
from app.utils.logger import log_trial_event

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"

# Width of TrialFingerprint.ip_address; long enough for any IPv6 text form
MAX_IP_LENGTH = 45

# Hashed first, in this order
CANONICAL_FIELDS = (
    "user_agent",
    "screen_resolution",
    "timezone",
    "language",
    "platform",
    "cookie_enabled",
    "do_not_track",
)

# Change on every request from the same visitor, never hashed.
# Keys are compared lowercased with "_" and "-" removed.
VOLATILE_FIELDS = frozenset({
    "ts",
    "id",
    "ip",
    "ipaddress",
    "nonce",
})

# Any other key containing one of these is treated as volatile too
VOLATILE_MARKERS = (
    "time",
    "stamp",
    "date",
    "session",
    "request",
    "nonce",
    "lastseen",
    "created",
    "updated",
    "expires",
)


class EligibilityReason(str, Enum):
    """Why a visitor was refused a trial"""
    FINGERPRINT_ALREADY_USED = "fingerprint_already_used"
    TOO_MANY_TRIALS_FROM_NETWORK = "too_many_trials_from_network"

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self]


_REASON_MESSAGES = {
    EligibilityReason.FINGERPRINT_ALREADY_USED: "Fingerprint already used for trial",
    EligibilityReason.TOO_MANY_TRIALS_FROM_NETWORK: "Too many trials from this network",
}


@dataclass
class EligibilityResult:
    fingerprint: str
    is_eligible: bool
    reason_code: Optional[EligibilityReason] = None
    error: Optional[str] = None

    @property
    def reason(self) -> Optional[str]:
        return self.reason_code.message if self.reason_code else None


@dataclass
class RecordResult:
    success: bool
    created: bool = False
    error: Optional[str] = None


# ── fingerprint derivation ────────────────────────────────────────────────────

def _compact_key(key: str) -> str:
    # userAgent, user_agent, user-agent and USER_AGENT all become "useragent"
    return key.strip().lower().replace("_", "").replace("-", "")


_CANONICAL_KEYS = {name.replace("_", ""): name for name in CANONICAL_FIELDS}


def _is_volatile(name: str) -> bool:
    if name in _CANONICAL_KEYS:
        return False
    if name in VOLATILE_FIELDS:
        return True
    if name.startswith("timezone"):
        return False
    return any(marker in name for marker in VOLATILE_MARKERS)


def _normalize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def canonicalize_signals(signals: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Turn loosely structured client signals into fixed-order (name, value) pairs.

    Known fields come first in CANONICAL_FIELDS order (missing ones as empty),
    then any other stable attribute sorted by key. Volatile fields are dropped.
    """
    normalized: Dict[str, str] = {}
    for key, value in signals.items():
        name = _compact_key(key)
        if _is_volatile(name):
            continue
        normalized[name] = _normalize_value(value)

    pairs = [(field, normalized.pop(compact, "")) for compact, field in _CANONICAL_KEYS.items()]
    pairs.extend((name, normalized[name]) for name in sorted(normalized))
    return pairs


def derive_fingerprint(signals: Mapping[str, Any], ip_address: Optional[str] = None) -> str:
    """
    Derive a stable SHA-256 fingerprint from client signals and network address.

    Identical signals and address always produce the same hash. The pairs are
    JSON encoded so no value can spill into its neighbour.
    """
    fingerprint_data = json.dumps(
        [canonicalize_signals(signals), ip_address or UNKNOWN_IP],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(fingerprint_data.encode("utf-8")).hexdigest()


def _valid_ip(value: str) -> Optional[str]:
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return None


def extract_client_ip(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """
    Best-effort client address behind proxies.

    X-Forwarded-For may list several hops; the first listed, trimmed address
    is taken as the client. Header values that do not parse as an IPv4/IPv6
    address are ignored and the next source is tried.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = _valid_ip(forwarded_for.split(",")[0].strip())
        if first:
            return first

    real_ip = _valid_ip((headers.get("x-real-ip") or "").strip())
    if real_ip:
        return real_ip

    if fallback and fallback.strip():
        return fallback.strip()[:MAX_IP_LENGTH]

    return UNKNOWN_IP


# ── eligibility ───────────────────────────────────────────────────────────────

def check_trial_eligibility(
    store: FingerprintStore,
    fingerprint_hash: str,
    ip_address: str,
    ip_threshold: Optional[int] = None,
    lookback_hours: Optional[int] = None,
) -> EligibilityResult:
    """
    Decide whether *fingerprint_hash* seen from *ip_address* may start a trial.

    Read only. Any store failure is treated as eligible so an outage never
    locks out a legitimate visitor; the error is logged and kept on the result.
    """
    threshold = settings.TRIAL_IP_THRESHOLD if ip_threshold is None else ip_threshold
    hours = settings.TRIAL_IP_LOOKBACK_HOURS if lookback_hours is None else lookback_hours

    try:
        record = store.find_by_hash(fingerprint_hash)
        if record is not None and record.trial_used:
            result = EligibilityResult(
                fingerprint=fingerprint_hash,
                is_eligible=False,
                reason_code=EligibilityReason.FINGERPRINT_ALREADY_USED,
            )
            log_trial_event("CHECK", fingerprint_hash, ip_address, outcome=result.reason_code.value)
            return result

        if ip_address and ip_address != UNKNOWN_IP and threshold > 0:
            since = datetime.now(timezone.utc) - timedelta(hours=hours)
            consumed = {
                r.fingerprint_hash
                for r in store.find_by_ip(ip_address, since)
                if r.trial_used
            }
            if len(consumed) >= threshold:
                result = EligibilityResult(
                    fingerprint=fingerprint_hash,
                    is_eligible=False,
                    reason_code=EligibilityReason.TOO_MANY_TRIALS_FROM_NETWORK,
                )
                log_trial_event(
                    "CHECK", fingerprint_hash, ip_address,
                    outcome=f"{result.reason_code.value} ({len(consumed)}/{threshold})",
                )
                return result

    except Exception as e:
        logger.error(
            f"Eligibility lookup failed, allowing trial: {fingerprint_hash[:12]}... - {str(e)}",
            exc_info=True,
            extra={"fingerprint": fingerprint_hash[:12], "ip_address": ip_address},
        )
        return EligibilityResult(fingerprint=fingerprint_hash, is_eligible=True, error=str(e))

    return EligibilityResult(fingerprint=fingerprint_hash, is_eligible=True)


# ── usage recording ───────────────────────────────────────────────────────────

def record_trial_usage(
    store: FingerprintStore,
    fingerprint_hash: str,
    ip_address: str,
    user_id: str,
    attributes: Optional[Mapping[str, Any]] = None,
    trial_duration_days: Optional[int] = None,
) -> RecordResult:
    """
    Mark the trial for *fingerprint_hash* as consumed by *user_id*.

    Exactly one conditional write: it inserts the row, or flips an unused row
    to used. A row that is already used is left untouched (the first user
    keeps it) and the call still succeeds. Store failures are reported as
    success=False with nothing written.
    """
    attributes = attributes or {}
    days = settings.TRIAL_DURATION_DAYS if trial_duration_days is None else trial_duration_days
    now = datetime.now(timezone.utc)

    new_fields = {
        "user_id": user_id,
        "ip_address": ip_address[:MAX_IP_LENGTH] if ip_address else None,
        "user_agent": _attribute(attributes, "user_agent", 500),
        "screen_resolution": _attribute(attributes, "screen_resolution", 50),
        "timezone": _attribute(attributes, "timezone", 100),
        "trial_used": True,
        "trial_start_date": now,
        "trial_end_date": now + timedelta(days=days),
    }

    try:
        applied = store.upsert_conditional(
            fingerprint_hash,
            new_fields,
            where={"trial_used": False},
        )
    except Exception as e:
        logger.error(
            f"Failed to record trial usage: {fingerprint_hash[:12]}... - {str(e)}",
            exc_info=True,
            extra={"user_id": user_id, "fingerprint": fingerprint_hash[:12], "ip_address": ip_address},
        )
        return RecordResult(success=False, error=str(e))

    if applied:
        log_trial_event("RECORD", fingerprint_hash, ip_address, outcome="trial granted", user_id=user_id)
    else:
        log_trial_event("RECORD", fingerprint_hash, ip_address, outcome="already used, unchanged", user_id=user_id)

    return RecordResult(success=True, created=applied)


def _attribute(attributes: Mapping[str, Any], name: str, max_length: int) -> Optional[str]:
    for key, value in attributes.items():
        if _compact_key(key) == name.replace("_", "") and value is not None:
            return str(value)[:max_length]
    return None
