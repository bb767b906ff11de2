"""Tests for request authentication parameters."""

import hashlib

import pytest
from packaging.version import Version

from subsonic_schema_api.auth import (
    DEFAULT_CLIENT_NAME,
    SALT_ALPHABET,
    SALT_SIZE,
    Auth,
    generate_salt,
    make_token,
)


def test_token_auth_parameter_order():
    """Protocol 1.16.1 sends u, t, s followed by v, c, f."""
    pairs = Auth(user="admin", password="sesame").to_query("1.16.1")

    assert [key for key, _ in pairs] == ["u", "t", "s", "v", "c", "f"]
    values = dict(pairs)
    assert values["u"] == "admin"
    assert values["v"] == "1.16.1"
    assert values["c"] == DEFAULT_CLIENT_NAME
    assert values["f"] == "json"


def test_token_is_md5_of_password_and_salt():
    values = dict(Auth(user="admin", password="sesame").to_query(Version("1.13.0")))

    assert values["t"] == hashlib.md5(("sesame" + values["s"]).encode()).hexdigest()
    assert "sesame" not in [value for _, value in values.items()]


def test_legacy_auth_sends_password():
    """Before 1.13.0 the password travels as p."""
    pairs = Auth(user="admin", password="sesame").to_query("1.12.0")

    assert [key for key, _ in pairs] == ["u", "p", "v", "c", "f"]
    assert dict(pairs)["p"] == "sesame"


def test_legacy_auth_hex_encoding():
    pairs = Auth(user="admin", password="sesame", encode_password=True).to_query("1.10.0")

    assert dict(pairs)["p"] == "enc:" + "sesame".encode().hex()


def test_version_comparison_is_numeric():
    auth = Auth(user="admin", password="sesame")

    assert auth.uses_token_auth("1.13.0")
    assert auth.uses_token_auth("1.16.1")
    assert not auth.uses_token_auth("1.9.0")
    assert not auth.uses_token_auth("1.12.99")


def test_salts_differ_between_calls():
    auth = Auth(user="admin", password="sesame")
    first = dict(auth.to_query("1.16.1"))
    second = dict(auth.to_query("1.16.1"))

    assert first["s"] != second["s"]
    assert first["t"] != second["t"]


def test_generate_salt():
    salt = generate_salt()

    assert len(salt) == SALT_SIZE
    assert set(salt) <= set(SALT_ALPHABET)
    assert len(generate_salt(6)) == 6
    with pytest.raises(ValueError):
        generate_salt(5)


def test_make_token_known_value():
    # Example from the Subsonic API documentation.
    assert make_token("sesame", "c19b2d") == "26719a1196d2a940705a59634eb18eab"


def test_repr_hides_password():
    auth = Auth(user="admin", password="sesame")

    assert "sesame" not in repr(auth)
    assert "admin" in repr(auth)
