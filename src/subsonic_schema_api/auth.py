"""Authentication query parameters for Subsonic requests.

Servers speaking protocol 1.13.0 or newer accept salted token auth: the
client sends ``t = md5(password + salt)`` and the salt ``s``, never the
password itself. MD5 is what the protocol mandates, not a security choice.
Older servers only understand ``p``, the password in plaintext (optionally
hex-encoded with an ``enc:`` prefix, which hides nothing); use TLS when
talking to them.

Parameter order is fixed: ``u, t, s`` (or ``u, p``) followed by
``v, c, f``.

Example:
    >>> auth = Auth(user="admin", password="sesame")
    >>> [key for key, _ in auth.to_query("1.16.1")]
    ['u', 't', 's', 'v', 'c', 'f']
    >>> [key for key, _ in auth.to_query("1.10.0")]
    ['u', 'p', 'v', 'c', 'f']
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import List, Tuple, Union

from packaging.version import Version

logger = logging.getLogger(__name__)

TOKEN_AUTH_MIN_VERSION = Version("1.13.0")
# The protocol requires at least 6 characters.
SALT_SIZE = 36
SALT_ALPHABET = string.ascii_letters + string.digits
DEFAULT_CLIENT_NAME = "subsonic-schema-api"
RESPONSE_FORMAT = "json"

QueryPairs = List[Tuple[str, str]]


def generate_salt(size: int = SALT_SIZE) -> str:
    """Random alphanumeric salt from the OS CSPRNG; safe to call concurrently."""
    if size < 6:
        raise ValueError("Salt must be at least 6 characters")
    return "".join(secrets.choice(SALT_ALPHABET) for _ in range(size))


def make_token(password: str, salt: str) -> str:
    return hashlib.md5((password + salt).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Auth:
    """Credentials held for the lifetime of a client.

    Attributes:
        user: Subsonic username.
        password: Password; excluded from ``repr``.
        client_name: Value of the ``c`` parameter.
        encode_password: In legacy mode send ``p=enc:<hex>`` instead of the
            raw password.
    """

    user: str
    password: str = field(repr=False)
    client_name: str = DEFAULT_CLIENT_NAME
    encode_password: bool = False

    def uses_token_auth(self, version: Union[str, Version]) -> bool:
        return _as_version(version) >= TOKEN_AUTH_MIN_VERSION

    def to_query(self, version: Union[str, Version]) -> QueryPairs:
        """Return the ordered auth query pairs for one request.

        A fresh salt is generated on every call, so two requests never share
        a token.
        """
        version = _as_version(version)
        pairs: QueryPairs = [("u", self.user)]
        if version >= TOKEN_AUTH_MIN_VERSION:
            salt = generate_salt()
            pairs.append(("t", make_token(self.password, salt)))
            pairs.append(("s", salt))
        elif self.encode_password:
            pairs.append(("p", "enc:" + self.password.encode("utf-8").hex()))
        else:
            pairs.append(("p", self.password))

        pairs.append(("v", str(version)))
        pairs.append(("c", self.client_name))
        pairs.append(("f", RESPONSE_FORMAT))
        return pairs


def _as_version(version: Union[str, Version]) -> Version:
    return version if isinstance(version, Version) else Version(version)
