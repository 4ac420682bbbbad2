from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.models.trial_fingerprint import TrialFingerprint
from app.services.fingerprint_service import (
    EligibilityReason,
    check_trial_eligibility,
    record_trial_usage,
)
from app.services.fingerprint_store import SQLAlchemyFingerprintStore


def _consumed_row(hash_value, ip, created_at=None, trial_used=True):
    now = datetime.now(timezone.utc)
    return TrialFingerprint(
        fingerprint_hash=hash_value,
        ip_address=ip,
        user_id="seed" if trial_used else None,
        trial_used=trial_used,
        trial_start_date=now if trial_used else None,
        trial_end_date=now + timedelta(days=10) if trial_used else None,
        created_at=created_at or now,
    )


class _BrokenLookupStore(SQLAlchemyFingerprintStore):
    def find_by_hash(self, fingerprint_hash):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


class _BrokenIpLookupStore(SQLAlchemyFingerprintStore):
    def find_by_ip(self, ip_address, since):
        raise TimeoutError("statement timeout")


def test_fresh_fingerprint_is_eligible(store):
    result = check_trial_eligibility(store, "fresh-hash", "203.0.113.5")
    assert result.is_eligible is True
    assert result.reason is None
    assert result.reason_code is None
    assert result.error is None


def test_check_never_creates_rows(store, db):
    check_trial_eligibility(store, "fresh-hash", "203.0.113.5")
    check_trial_eligibility(store, "fresh-hash", "203.0.113.5")
    assert db.query(TrialFingerprint).count() == 0


def test_consumed_fingerprint_is_ineligible_from_any_ip(store):
    assert record_trial_usage(store, "H", "203.0.113.5", "u1", {}).success

    for ip in ("203.0.113.5", "198.51.100.7", "unknown"):
        result = check_trial_eligibility(store, "H", ip)
        assert result.is_eligible is False
        assert result.reason_code == EligibilityReason.FINGERPRINT_ALREADY_USED
        assert result.reason == "Fingerprint already used for trial"


def test_unused_row_does_not_block(store, db):
    db.add(_consumed_row("H", "203.0.113.5", trial_used=False))
    db.commit()

    result = check_trial_eligibility(store, "H", "203.0.113.5", ip_threshold=1)
    assert result.is_eligible is True


@pytest.mark.parametrize("threshold", [1, 2, 3, 5])
def test_network_abuse_threshold(store, db, threshold):
    ip = "203.0.113.9"
    for i in range(threshold - 1):
        db.add(_consumed_row(f"used-{i}", ip))
    db.commit()

    below = check_trial_eligibility(store, "fresh", ip, ip_threshold=threshold, lookback_hours=24)
    assert below.is_eligible is True

    db.add(_consumed_row(f"used-{threshold}", ip))
    db.commit()

    at = check_trial_eligibility(store, "fresh", ip, ip_threshold=threshold, lookback_hours=24)
    assert at.is_eligible is False
    assert at.reason_code == EligibilityReason.TOO_MANY_TRIALS_FROM_NETWORK
    assert at.reason == "Too many trials from this network"


@pytest.mark.parametrize("lookback_hours", [1, 24, 24 * 30])
def test_rows_outside_lookback_window_are_ignored(store, db, lookback_hours):
    ip = "203.0.113.10"
    old = datetime.now(timezone.utc) - timedelta(hours=lookback_hours + 1)
    db.add(_consumed_row("old-1", ip, created_at=old))
    db.add(_consumed_row("old-2", ip, created_at=old))
    db.commit()

    result = check_trial_eligibility(store, "fresh", ip, ip_threshold=1, lookback_hours=lookback_hours)
    assert result.is_eligible is True


def test_unused_rows_on_same_ip_are_not_counted(store, db):
    ip = "203.0.113.11"
    db.add(_consumed_row("pending-1", ip, trial_used=False))
    db.add(_consumed_row("pending-2", ip, trial_used=False))
    db.commit()

    assert check_trial_eligibility(store, "fresh", ip, ip_threshold=1).is_eligible is True


def test_unknown_ip_is_never_counted(store):
    for i in range(3):
        record_trial_usage(store, f"h-{i}", "unknown", f"u{i}", {})

    assert check_trial_eligibility(store, "fresh", "unknown", ip_threshold=1).is_eligible is True


def test_zero_threshold_disables_network_rule(store):
    record_trial_usage(store, "h-1", "203.0.113.12", "u1", {})
    assert check_trial_eligibility(store, "fresh", "203.0.113.12", ip_threshold=0).is_eligible is True


def test_lookup_error_fails_open(db):
    result = check_trial_eligibility(_BrokenLookupStore(db), "H", "203.0.113.5")
    assert result.is_eligible is True
    assert result.reason is None
    assert "connection refused" in result.error


def test_ip_lookup_timeout_fails_open(db):
    result = check_trial_eligibility(_BrokenIpLookupStore(db), "H", "203.0.113.5", ip_threshold=1)
    assert result.is_eligible is True
    assert "statement timeout" in result.error
