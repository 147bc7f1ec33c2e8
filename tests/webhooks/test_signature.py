"""Webhook signature verification tests"""
import pytest

from webhooks.signature import compute_signature, parse_signature_header, verify_signature

SECRET = "whsec_test"
BODY = b'{"id":"evt_1","type":"payout.paid","data":{"object":{}}}'
NOW = 1_700_000_000


def test_valid_signature_is_accepted():
    header = compute_signature(BODY, SECRET, NOW)

    assert verify_signature(BODY, header, SECRET, now=NOW)
    assert verify_signature(BODY.decode(), header, SECRET, now=NOW + 299)


def test_any_matching_v1_is_accepted():
    valid = compute_signature(BODY, SECRET, NOW).split(",")[1]
    header = f"t={NOW},v1=deadbeef,{valid}"

    assert verify_signature(BODY, header, SECRET, now=NOW)


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "garbage",
        f"t={NOW}",
        "v1=abcdef",
        "t=notanumber,v1=abcdef",
    ],
)
def test_malformed_or_missing_header_is_rejected(header):
    assert verify_signature(BODY, header, SECRET, now=NOW) is False


def test_tampered_body_is_rejected():
    header = compute_signature(BODY, SECRET, NOW)

    assert verify_signature(BODY.replace(b"payout.paid", b"payout.failed"), header, SECRET, now=NOW) is False


def test_wrong_secret_is_rejected():
    header = compute_signature(BODY, "whsec_other", NOW)

    assert verify_signature(BODY, header, SECRET, now=NOW) is False


def test_replayed_signature_outside_tolerance_is_rejected():
    header = compute_signature(BODY, SECRET, NOW)

    assert verify_signature(BODY, header, SECRET, tolerance=300, now=NOW + 301) is False
    assert verify_signature(BODY, header, SECRET, tolerance=300, now=NOW - 301) is False


def test_missing_secret_fails_closed():
    header = compute_signature(BODY, SECRET, NOW)

    assert verify_signature(BODY, header, None, now=NOW) is False
    assert verify_signature(BODY, header, "", now=NOW) is False


def test_parse_signature_header():
    timestamp, signatures = parse_signature_header(" t=123 , v1=aa, v0=zz, v1=bb ")

    assert timestamp == "123"
    assert signatures == ["aa", "bb"]
