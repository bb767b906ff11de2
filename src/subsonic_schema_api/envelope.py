"""Response envelopes and the narrowing of the Response union.

Every Subsonic reply is a JSON body shaped like::

    {"subsonic-response": {"version": "1.16.1", "status": "ok", "indexes": {...}}}

The payload is not tagged explicitly: which variant the reply carries is
inferred from which payload key is present next to ``version`` and
``status``. This module decodes such bodies into a :class:`GenericEnvelope`
and narrows an envelope holding the full Response union down to the one
payload a call expects, producing a :class:`TypedResult`.

Resolution is pure pattern matching on the variant:

* the expected variant -> the payload;
* the Error variant -> :class:`ApiError` carrying the server's error payload;
* any other variant -> :class:`TypeMismatchError` carrying the unexpected
  :class:`Response`.

Nothing here retries or swallows an error: decode failures raise
:class:`EnvelopeDecodeError`, and result errors are handed back to the caller
inside the :class:`TypedResult`.

Example:
    from subsonic_schema_api.envelope import decode_envelope

    envelope = decode_envelope(body, registry.response)
    result = registry.response.narrow(envelope, "indexes")
    if result.ok:
        print(result.result.ignored_articles)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ValidationError

from .exceptions import EnvelopeDecodeError, SubsonicSchemaException

ENVELOPE_KEY = "subsonic-response"
STATUS_OK = "ok"
STATUS_FAILED = "failed"

T = TypeVar("T")
C = TypeVar("C")


class ErrorCode(IntEnum):
    """Error codes documented by the Subsonic REST API."""

    GENERIC = 0
    MISSING_PARAMETER = 10
    CLIENT_MUST_UPGRADE = 20
    SERVER_MUST_UPGRADE = 30
    WRONG_CREDENTIALS = 40
    TOKEN_AUTH_NOT_SUPPORTED = 41
    NOT_AUTHORIZED = 50
    TRIAL_EXPIRED = 60
    NOT_FOUND = 70


@dataclass(frozen=True)
class Variant:
    """One member of the Response union.

    Attributes:
        name: PascalCase variant name (``MusicFolders``).
        wire_name: JSON key discriminating the variant (``musicFolders``).
        payload_type: Generated record class carried by the variant.
        is_error: True for the designated Error variant.
    """

    name: str
    wire_name: str
    payload_type: Type[BaseModel]
    is_error: bool = False


@dataclass(frozen=True)
class Response:
    """A decoded value of the Response union: a variant and its payload."""

    variant: Variant
    payload: BaseModel

    @property
    def name(self) -> str:
        return self.variant.name

    def to_wire(self) -> Dict[str, Any]:
        return {
            self.variant.wire_name: self.payload.model_dump(by_alias=True, exclude_none=True)
        }


@dataclass(frozen=True)
class GenericEnvelope(Generic[C]):
    """A decoded reply in full generality.

    ``content`` is ``None`` for status-only calls (``ping``) and a
    :class:`Response` for payload calls. A well-formed reply has
    ``status == "ok"`` exactly when ``content`` is not the Error variant; the
    resolver assumes this and does not check it.
    """

    version: str
    status: str
    content: C

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


class SubsonicResponseError(SubsonicSchemaException):
    """Base for the error half of a :class:`TypedResult`."""


class ApiError(SubsonicResponseError):
    """The server replied with its Error payload."""

    def __init__(self, error: BaseModel):
        self.error = error
        self.code: int = getattr(error, "code", ErrorCode.GENERIC)
        self.server_message: Optional[str] = getattr(error, "message", None)
        super().__init__(
            f"Server error {self.code}: {self.server_message or 'no message'}",
            {"code": self.code},
        )

    @property
    def error_code(self) -> Optional[ErrorCode]:
        try:
            return ErrorCode(self.code)
        except ValueError:
            return None


class TypeMismatchError(SubsonicResponseError):
    """The reply carried a different payload than the call expected."""

    def __init__(self, response: Response, expected: Variant):
        self.response = response
        self.expected = expected
        super().__init__(
            f"Expected {expected.name} payload, got {response.variant.name}",
            {"expected": expected.wire_name, "actual": response.variant.wire_name},
        )


@dataclass(frozen=True)
class TypedResult(Generic[T]):
    """Caller-facing outcome of one call.

    ``result`` is either the expected payload or a
    :class:`SubsonicResponseError`; there is no partial-result mode.
    """

    version: str
    result: Union[T, SubsonicResponseError]

    @property
    def ok(self) -> bool:
        return not isinstance(self.result, SubsonicResponseError)

    @property
    def error(self) -> Optional[SubsonicResponseError]:
        return self.result if isinstance(self.result, SubsonicResponseError) else None

    def unwrap(self) -> T:
        """Return the payload, raising the carried error instead if there is one."""
        if isinstance(self.result, SubsonicResponseError):
            raise self.result
        return self.result


def resolve(envelope: GenericEnvelope[Response], expected: Variant) -> TypedResult[Any]:
    """Narrow ``envelope`` to the payload of ``expected``.

    Raises:
        ValueError: If ``expected`` is the Error variant, which has no narrowing.
    """
    if expected.is_error:
        raise ValueError("The error variant cannot be used as an expected payload")
    content = envelope.content
    if content.variant.wire_name == expected.wire_name:
        result: Any = content.payload
    elif content.variant.is_error:
        result = ApiError(content.payload)
    else:
        result = TypeMismatchError(content, expected)
    return TypedResult(version=envelope.version, result=result)


class ResponseUnion:
    """Runtime form of the generated Response union.

    Holds the ordered variants, decodes flattened payload keys into a
    :class:`Response`, and exposes one narrowing conversion per non-Error
    variant in :attr:`conversions`.
    """

    def __init__(self, name: str, variants: Sequence[Variant]) -> None:
        self.name = name
        self.variants: List[Variant] = list(variants)
        self.by_name: Dict[str, Variant] = {v.name: v for v in self.variants}
        self.by_wire_name: Dict[str, Variant] = {v.wire_name: v for v in self.variants}
        errors = [v for v in self.variants if v.is_error]
        if len(errors) != 1:
            raise ValueError(f"{name} must have exactly one error variant")
        self.error_variant = errors[0]
        self.conversions: Dict[str, Callable[[GenericEnvelope[Response]], TypedResult[Any]]] = {
            v.name: _conversion(v) for v in self.payload_variants
        }

    def __iter__(self) -> Iterator[Variant]:
        return iter(self.variants)

    def __len__(self) -> int:
        return len(self.variants)

    def __repr__(self) -> str:
        return f"<ResponseUnion {self.name}: {len(self.variants)} variants>"

    @property
    def payload_variants(self) -> List[Variant]:
        return [v for v in self.variants if not v.is_error]

    def variant(self, key: Union[str, Type[BaseModel], Variant]) -> Variant:
        """Look up a variant by name, wire name, or unambiguous payload type.

        Raises:
            KeyError: If nothing matches, or a payload type is carried by
                several variants (``Songs`` backs both ``randomSongs`` and
                ``songsByGenre``).
        """
        if isinstance(key, Variant):
            return key
        if isinstance(key, str):
            found = self.by_name.get(key) or self.by_wire_name.get(key)
            if found is None:
                raise KeyError(f"No variant named '{key}' in {self.name}")
            return found
        matches = [v for v in self.variants if v.payload_type is key]
        if len(matches) != 1:
            raise KeyError(
                f"Payload type {getattr(key, '__name__', key)} maps to "
                f"{len(matches)} variants in {self.name}"
            )
        return matches[0]

    def decode(self, content: Mapping[str, Any]) -> Response:
        """Decode the flattened payload keys of a ``subsonic-response`` object.

        Raises:
            EnvelopeDecodeError: When zero or several variant keys are present,
                or the payload fails validation.
        """
        present = [v for v in self.variants if v.wire_name in content]
        if not present:
            raise EnvelopeDecodeError(
                f"No {self.name} variant present in reply",
                {"keys": sorted(content)},
            )
        if len(present) > 1:
            raise EnvelopeDecodeError(
                f"Ambiguous reply: several {self.name} variants present",
                {"variants": [v.wire_name for v in present]},
            )
        variant = present[0]
        try:
            payload = variant.payload_type.model_validate(content[variant.wire_name])
        except ValidationError as exc:
            raise EnvelopeDecodeError(
                f"Invalid {variant.name} payload: {exc.error_count()} validation error(s)",
                {"variant": variant.wire_name, "errors": exc.errors(include_url=False)},
            ) from exc
        return Response(variant=variant, payload=payload)

    def narrow(
        self,
        envelope: GenericEnvelope[Response],
        expected: Union[str, Type[BaseModel], Variant],
    ) -> TypedResult[Any]:
        return resolve(envelope, self.variant(expected))


def _conversion(variant: Variant) -> Callable[[GenericEnvelope[Response]], TypedResult[Any]]:
    def convert(envelope: GenericEnvelope[Response]) -> TypedResult[Any]:
        return resolve(envelope, variant)

    convert.__name__ = f"to_{variant.wire_name}"
    convert.__doc__ = f"Narrow an envelope to its {variant.name} payload."
    return convert


def _load_container(body: Union[bytes, str, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(body, (bytes, bytearray, str)):
        try:
            document = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise EnvelopeDecodeError(f"Reply body is not JSON: {exc}") from exc
    else:
        document = body
    if not isinstance(document, Mapping) or not isinstance(document.get(ENVELOPE_KEY), Mapping):
        raise EnvelopeDecodeError(f"Reply has no '{ENVELOPE_KEY}' object")
    container = dict(document[ENVELOPE_KEY])
    for key in ("version", "status"):
        if not isinstance(container.get(key), str):
            raise EnvelopeDecodeError(f"Reply is missing '{key}'", {"keys": sorted(container)})
    return container


def decode_status_envelope(body: Union[bytes, str, Mapping[str, Any]]) -> GenericEnvelope[None]:
    """Decode a status-only reply; payload keys, if any, are ignored."""
    container = _load_container(body)
    return GenericEnvelope(version=container["version"], status=container["status"], content=None)


def decode_envelope(
    body: Union[bytes, str, Mapping[str, Any]], union: ResponseUnion
) -> GenericEnvelope[Response]:
    """Decode a payload reply into an envelope holding the Response union."""
    container = _load_container(body)
    content = union.decode(container)
    return GenericEnvelope(version=container["version"], status=container["status"], content=content)
