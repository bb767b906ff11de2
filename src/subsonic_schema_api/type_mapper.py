"""Map schema type references onto Python types.

A reference is either an XSD primitive (``xs:int``) looked up in
:data:`PRIMITIVE_TYPES`, or a same-schema reference (``sub:Child``) naming a
generated type. Anything else is a fatal :class:`UnknownTypeError`: the
compiler cannot build a type surface without knowing every type the schema
uses.

Optional members wrap the mapped type in ``Optional``; repeated members wrap
it in ``List``; both compose into ``Optional[List[...]]``.

Example:
    >>> mapper = TypeMapper({"Child"})
    >>> mapper.map("sub:Child", required=False, repeated=True).render()
    'Optional[List[Child]]'
    >>> mapper.map("xs:long", required=True).render()
    'int'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, ForwardRef, Iterable, List, Mapping, Optional, Union

from .exceptions import UnknownTypeError
from .xsd_parser import ParserConfig

# xs:dateTime stays an opaque string; no calendar parsing is performed.
PRIMITIVE_TYPES: Dict[str, type] = {
    "xs:int": int,
    "xs:long": int,
    "xs:boolean": bool,
    "xs:float": float,
    "xs:double": float,
    "xs:string": str,
    "xs:dateTime": str,
}


@dataclass(frozen=True)
class FieldType:
    """A mapped type plus its wrappers.

    Attributes:
        base: A Python primitive type, or the name of a generated type.
        optional: Wrap in ``Optional`` (member may be absent).
        repeated: Wrap in ``List`` (member is a sequence).
    """

    base: Union[type, str]
    optional: bool = False
    repeated: bool = False

    @property
    def is_named(self) -> bool:
        return isinstance(self.base, str)

    def render(self) -> str:
        """Render the annotation as Python source."""
        text = self.base if isinstance(self.base, str) else self.base.__name__
        if self.repeated:
            text = f"List[{text}]"
        if self.optional:
            text = f"Optional[{text}]"
        return text

    def annotation(
        self, namespace: Optional[Mapping[str, Any]] = None, forward_refs: bool = False
    ) -> Any:
        """Build the runtime annotation, resolving named types in ``namespace``.

        With ``forward_refs`` a named base missing from ``namespace`` becomes a
        ``ForwardRef`` to be resolved later (recursive types).

        Raises:
            UnknownTypeError: If a named base is missing and forward references
                are not allowed.
        """
        if isinstance(self.base, str):
            if namespace is not None and self.base in namespace:
                inner: Any = namespace[self.base]
            elif forward_refs:
                inner = ForwardRef(self.base)
            else:
                raise UnknownTypeError(self.base, {"reason": "type not generated yet"})
        else:
            inner = self.base
        if self.repeated:
            inner = List[inner]  # type: ignore[valid-type]
        if self.optional:
            inner = Optional[inner]
        return inner


class TypeMapper:
    """Resolve type references against primitives and declared type names."""

    def __init__(
        self, declared_types: Iterable[str], config: Optional[ParserConfig] = None
    ) -> None:
        self.config = config or ParserConfig()
        self.declared_types = set(declared_types)
        self._local_prefix = f"{self.config.namespace_prefix}:"

    def resolve(self, type_ref: str) -> Union[type, str]:
        """Map a single reference to a primitive type or a declared type name.

        Raises:
            UnknownTypeError: For unmapped primitives and undeclared local types.
        """
        if type_ref.startswith(self._local_prefix):
            name = type_ref[len(self._local_prefix):]
            if name not in self.declared_types:
                raise UnknownTypeError(type_ref, {"reason": "undeclared local type"})
            return name
        try:
            return PRIMITIVE_TYPES[type_ref]
        except KeyError:
            raise UnknownTypeError(type_ref, {"reason": "unmapped primitive"}) from None

    def map(self, type_ref: str, required: bool = True, repeated: bool = False) -> FieldType:
        return FieldType(
            base=self.resolve(type_ref), optional=not required, repeated=repeated
        )

    def dependency(self, type_ref: str) -> Optional[str]:
        """Return the declared type a reference depends on, if any."""
        base = self.resolve(type_ref)
        return base if isinstance(base, str) else None
