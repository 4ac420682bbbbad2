from __future__ import annotations

import pytest

from app.schemas.fingerprint_schemas import FingerprintData
from app.services.fingerprint_service import (
    UNKNOWN_IP,
    canonicalize_signals,
    derive_fingerprint,
    extract_client_ip,
)


def test_same_inputs_same_hash(signals):
    first = derive_fingerprint(signals, "203.0.113.5")
    second = derive_fingerprint(dict(signals), "203.0.113.5")
    assert first == second
    assert len(first) == 64
    int(first, 16)


def test_volatile_fields_do_not_change_hash(signals):
    base = derive_fingerprint(signals, "203.0.113.5")
    noisy = dict(signals, timestamp=1760000000000, sessionId="abc", requestId="r-1", nonce="n")
    assert derive_fingerprint(noisy, "203.0.113.5") == base


def test_key_style_and_whitespace_are_normalized(signals):
    snake = {"user_agent": " UA-A ", "screen_resolution": "1920x1080", "timezone": "UTC"}
    assert derive_fingerprint(snake, "203.0.113.5") == derive_fingerprint(signals, "203.0.113.5")


def test_key_order_does_not_matter():
    a = {"userAgent": "UA", "screenResolution": "1x1", "timezone": "UTC", "gpu": "X", "cores": 8}
    b = {"cores": 8, "gpu": "X", "timezone": "UTC", "screenResolution": "1x1", "userAgent": "UA"}
    assert derive_fingerprint(a, "1.1.1.1") == derive_fingerprint(b, "1.1.1.1")


@pytest.mark.parametrize(
    "change",
    [
        {"userAgent": "UA-B"},
        {"screenResolution": "1280x720"},
        {"timezone": "Europe/Berlin"},
        {"language": "en-US"},
        {"cookieEnabled": False},
        {"hardwareConcurrency": 8},
    ],
)
def test_distinct_devices_get_distinct_hashes(signals, change):
    assert derive_fingerprint(dict(signals, **change), "203.0.113.5") != derive_fingerprint(signals, "203.0.113.5")


def test_network_address_is_part_of_the_hash(signals):
    assert derive_fingerprint(signals, "203.0.113.5") != derive_fingerprint(signals, "198.51.100.7")


def test_missing_ip_uses_unknown_sentinel(signals):
    assert derive_fingerprint(signals, None) == derive_fingerprint(signals, UNKNOWN_IP)


def test_schema_and_raw_mapping_hash_identically(signals):
    data = FingerprintData(**signals)
    assert derive_fingerprint(data.to_signals(), "203.0.113.5") == derive_fingerprint(signals, "203.0.113.5")


def test_booleans_are_canonical():
    assert dict(canonicalize_signals({"cookieEnabled": True}))["cookie_enabled"] == "true"
    assert dict(canonicalize_signals({"cookieEnabled": False}))["cookie_enabled"] == "false"


@pytest.mark.parametrize(
    "key",
    ["sessionID", "SessionId", "timeStamp", "lastSeen", "requestTime", "created-at", "pageLoadDate", "NONCE"],
)
def test_volatile_key_variants_are_dropped(signals, key):
    first = derive_fingerprint(dict(signals, **{key: "1"}), "203.0.113.5")
    second = derive_fingerprint(dict(signals, **{key: "2"}), "203.0.113.5")
    assert first == second == derive_fingerprint(signals, "203.0.113.5")


def test_timezone_offset_is_kept(signals):
    assert derive_fingerprint(dict(signals, timezoneOffset=-60), "203.0.113.5") != derive_fingerprint(
        dict(signals, timezoneOffset=120), "203.0.113.5"
    )


def test_separators_inside_values_do_not_collide():
    a = {"userAgent": "a|b", "screenResolution": "c", "timezone": "UTC"}
    b = {"userAgent": "a", "screenResolution": "b|c", "timezone": "UTC"}
    assert derive_fingerprint(a, "203.0.113.5") != derive_fingerprint(b, "203.0.113.5")


@pytest.mark.parametrize(
    "headers, fallback, expected",
    [
        ({"x-forwarded-for": "203.0.113.5"}, None, "203.0.113.5"),
        ({"x-forwarded-for": " 203.0.113.5 , 10.0.0.1, 10.0.0.2"}, "127.0.0.1", "203.0.113.5"),
        ({"x-forwarded-for": "2001:db8::1, 10.0.0.1"}, None, "2001:db8::1"),
        ({"x-real-ip": " 198.51.100.7 "}, "127.0.0.1", "198.51.100.7"),
        ({"x-forwarded-for": " , "}, "127.0.0.1", "127.0.0.1"),
        ({}, "127.0.0.1", "127.0.0.1"),
        ({}, None, UNKNOWN_IP),
        ({"x-real-ip": ""}, "  ", UNKNOWN_IP),
        ({"x-forwarded-for": "not-an-ip, 10.0.0.1"}, "127.0.0.1", "127.0.0.1"),
        ({"x-forwarded-for": "1" * 60}, None, UNKNOWN_IP),
        ({"x-forwarded-for": "garbage", "x-real-ip": "198.51.100.7"}, None, "198.51.100.7"),
        ({"x-real-ip": "999.1.1.1"}, "127.0.0.1", "127.0.0.1"),
    ],
)
def test_extract_client_ip(headers, fallback, expected):
    assert extract_client_ip(headers, fallback) == expected
