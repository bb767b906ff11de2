"""Subsonic Schema API
===================

Compile the Subsonic REST API XML Schema into a typed Python surface and talk
to Subsonic servers through it.

Key capabilities
----------------
- Parse the Subsonic XSD into a small declaration model
  (:mod:`~subsonic_schema_api.models`) with strict, fatal-on-unknown handling.
- Plan and materialize one pydantic model per schema type, with snake_case
  field names aliased to their wire names, extension as inheritance, and the
  Response envelope as a tagged union (:mod:`~subsonic_schema_api.registry`).
- Emit the same surface as Python source (:mod:`~subsonic_schema_api.codegen`).
- Decode ``subsonic-response`` replies and narrow them to the payload a call
  expects (:mod:`~subsonic_schema_api.envelope`).
- Build authenticated requests (salted token auth from protocol 1.13.0) and
  issue them with an async httpx client (:mod:`~subsonic_schema_api.client`).

Design principles
-----------------
1. **Fail at build time** - unknown types, name collisions and malformed
    declarations abort compilation; no partial type surface is produced.
2. **One plan, two outputs** - runtime models and generated source are
    rendered from the same type plans.
3. **Errors are values at call sites** - server errors and unexpected payloads
    come back inside a :class:`~subsonic_schema_api.envelope.TypedResult`;
    transport and decode failures raise.

Minimal quick start
-------------------
>>> from subsonic_schema_api import get_compiled_schema
>>> registry = get_compiled_schema()
>>> registry["Child"].model_validate({"id": "1", "isDir": False, "title": "Intro"}).is_dir
False
"""

__version__ = "0.1.0"

from .cache import get_compiled_schema
from .client import Client, ClientSettings
from .envelope import ApiError, ErrorCode, TypedResult, TypeMismatchError
from .exceptions import EnvelopeDecodeError, SchemaError, UnknownTypeError
from .registry import TypeRegistry, compile_schema
from .xsd_parser import ParserConfig, parse_xsd

__all__ = [
    "ApiError",
    "Client",
    "ClientSettings",
    "EnvelopeDecodeError",
    "ErrorCode",
    "ParserConfig",
    "SchemaError",
    "TypeMismatchError",
    "TypeRegistry",
    "TypedResult",
    "UnknownTypeError",
    "compile_schema",
    "get_compiled_schema",
    "parse_xsd",
]
