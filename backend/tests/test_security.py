"""
Tests for token handling and principal extraction.
"""
from datetime import timedelta

import pytest

from storefront.core.security import (
    Principal,
    create_access_token,
    decode_token,
    get_password_hash,
    principal_from_payload,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("Xy7#abcdEFGH")
    assert hashed != "Xy7#abcdEFGH"
    assert verify_password("Xy7#abcdEFGH", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_yields_principal():
    payload = decode_token(create_access_token({"sub": 12, "role": "admin"}))

    principal = principal_from_payload(payload)

    assert principal == Principal(user_id=12, role="admin")
    assert principal.is_admin


def test_role_defaults_to_customer():
    principal = principal_from_payload(decode_token(create_access_token({"sub": 3})))
    assert principal.role == "customer"
    assert not principal.is_admin


@pytest.mark.parametrize("claims", [
    {"sub": "guest_8f2c", "role": "guest"},
    {"sub": "guest_8f2c"},
    {"sub": 4, "role": "guest"},
    {"sub": "not-a-number"},
])
def test_guest_and_malformed_subjects_have_no_principal(claims):
    assert principal_from_payload(decode_token(create_access_token(claims))) is None


def test_non_access_token_rejected():
    assert principal_from_payload({"sub": "5", "type": "refresh"}) is None
    assert principal_from_payload(None) is None


def test_expired_and_tampered_tokens_do_not_decode():
    expired = create_access_token({"sub": 1}, expires_delta=timedelta(seconds=-5))
    assert decode_token(expired) is None
    assert decode_token(create_access_token({"sub": 1}) + "x") is None
