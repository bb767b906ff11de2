"""Exception hierarchy shared by the schema compiler and the runtime client.

Compile-time problems (``SchemaError`` and subclasses) are fatal: no partial
type surface is ever produced. ``EnvelopeDecodeError`` covers reply bodies
that cannot be decoded into an envelope. Server-reported errors and variant
mismatches are *values* carried by a ``TypedResult``; see
:mod:`subsonic_schema_api.envelope`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SubsonicSchemaException(Exception):
    """Base exception for all errors raised by this package."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured log format."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class SchemaError(SubsonicSchemaException, ValueError):
    """Raised when the schema document is malformed or unsupported."""


class UnknownTypeError(SchemaError):
    """Raised when a type reference maps to no primitive or declared type."""

    def __init__(self, type_ref: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Type not found: {type_ref}", context)
        self.type_ref = type_ref


class NameCollisionError(SchemaError):
    """Raised when two wire names normalize to the same field identifier."""


class EnvelopeDecodeError(SubsonicSchemaException, ValueError):
    """Raised when a reply body cannot be decoded into an envelope."""
