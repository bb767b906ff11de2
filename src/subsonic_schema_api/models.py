"""Core data structures for representing a parsed Subsonic schema.

These lightweight dataclasses are produced by the XSD parser and consumed by
the generator. They intentionally avoid framework dependencies so the schema
model can be inspected, cached, or rendered without pulling in pydantic.

Overview:
        * ``SimpleTypeDecl`` names a restricted primitive (``UserRating`` is an
            ``xs:int`` between 1 and 5).
        * ``ComplexTypeDecl`` holds an ordered list of members: ``Attribute``,
            ``SequenceMember`` and at most one ``Extension``.
        * ``ResponseEnvelopeDecl`` is the distinguished ``Response`` type whose
            ``choice`` children enumerate every payload the server can return.
        * ``ElementDecl`` records top-level ``xs:element`` declarations; the
            generator ignores them.

Typical construction (simplified)::

        from subsonic_schema_api.models import Attribute, ComplexTypeDecl

        error = ComplexTypeDecl(
                name="Error",
                members=[
                        Attribute(name="code", type_ref="xs:int", required=True),
                        Attribute(name="message", type_ref="xs:string", required=False),
                ],
        )

Design notes:
        * Members keep schema declaration order; generated records follow it.
        * Sequence children carry an explicit :class:`SequenceRole` so the
            generator never guesses field shapes from element position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union


class SequenceRole(str, Enum):
    """Shape of a single ``xs:sequence`` child.

    ``REPEATED`` children (``maxOccurs`` unbounded or > 1) become list fields.
    ``DISCRIMINATOR`` children (``maxOccurs="1"``) become scalar fields.
    """

    REPEATED = "repeated"
    DISCRIMINATOR = "discriminator"


@dataclass
class SimpleTypeDecl:
    """A named ``xs:simpleType`` restriction.

    Attributes:
        name: Declared type name (``UserRating``).
        base: Restriction base reference (``xs:int``).
        enumerations: Allowed values, if the restriction enumerates them.
        min_inclusive: Lower bound as written in the schema (not enforced).
        max_inclusive: Upper bound as written in the schema (not enforced).
    """

    name: str
    base: str
    enumerations: List[str] = field(default_factory=list)
    min_inclusive: Optional[str] = None
    max_inclusive: Optional[str] = None


@dataclass
class Attribute:
    name: str
    type_ref: str
    required: bool


@dataclass
class SequenceMember:
    """One element child of an ``xs:sequence``.

    Example:
        >>> member = SequenceMember(name="artist", type_ref="sub:Artist", required=False)
        >>> member.repeated
        True
    """

    name: str
    type_ref: str
    required: bool
    role: SequenceRole = SequenceRole.REPEATED

    @property
    def repeated(self) -> bool:
        return self.role is SequenceRole.REPEATED


@dataclass
class Extension:
    """``complexContent/extension``: a base type plus additional members."""

    base: str
    members: List[Union[Attribute, SequenceMember]] = field(default_factory=list)


Member = Union[Attribute, SequenceMember, Extension]


@dataclass
class ComplexTypeDecl:
    """A named ``xs:complexType`` that becomes one generated record.

    Attributes:
        name: Declared type name.
        members: Ordered members in declaration order.
        mixed: True when the type allows text content (``mixed="true"``).
    """

    name: str
    members: List[Member] = field(default_factory=list)
    mixed: bool = False

    @property
    def extension(self) -> Optional[Extension]:
        for member in self.members:
            if isinstance(member, Extension):
                return member
        return None

    def own_members(self) -> List[Union[Attribute, SequenceMember]]:
        """Return attributes/sequence members, flattening the extension body.

        Extension members come first, then members declared directly on the
        type, matching the order fields appear in the generated record.
        """
        flattened: List[Union[Attribute, SequenceMember]] = []
        extension = self.extension
        if extension is not None:
            flattened.extend(extension.members)
        flattened.extend(m for m in self.members if not isinstance(m, Extension))
        return flattened


@dataclass
class ResponseVariantDecl:
    """One ``choice`` child of the Response envelope."""

    name: str
    type_ref: str


@dataclass
class ResponseEnvelopeDecl:
    name: str
    variants: List[ResponseVariantDecl] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class ElementDecl:
    name: str
    type_ref: Optional[str] = None


Declaration = Union[SimpleTypeDecl, ComplexTypeDecl, ResponseEnvelopeDecl, ElementDecl]


@dataclass
class SchemaModel:
    """In-memory model of one schema document.

    Declarations keep document order. Lookup helpers index them by name.

    Example:
        >>> model = SchemaModel(declarations=[SimpleTypeDecl(name="UserRating", base="xs:int")])
        >>> model.simple_types["UserRating"].base
        'xs:int'
    """

    declarations: List[Declaration] = field(default_factory=list)
    version: Optional[str] = None

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self.declarations)

    @property
    def simple_types(self) -> Dict[str, SimpleTypeDecl]:
        return {d.name: d for d in self.declarations if isinstance(d, SimpleTypeDecl)}

    @property
    def complex_types(self) -> Dict[str, ComplexTypeDecl]:
        return {d.name: d for d in self.declarations if isinstance(d, ComplexTypeDecl)}

    @property
    def elements(self) -> List[ElementDecl]:
        return [d for d in self.declarations if isinstance(d, ElementDecl)]

    @property
    def response(self) -> Optional[ResponseEnvelopeDecl]:
        for declaration in self.declarations:
            if isinstance(declaration, ResponseEnvelopeDecl):
                return declaration
        return None

    def type_names(self) -> List[str]:
        """Names of every declaration that produces a generated type."""
        return [
            d.name
            for d in self.declarations
            if isinstance(d, (SimpleTypeDecl, ComplexTypeDecl, ResponseEnvelopeDecl))
        ]
