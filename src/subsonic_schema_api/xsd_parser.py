"""Utilities to parse the Subsonic REST API XSD into a :class:`SchemaModel`.

This module converts the Subsonic XML Schema into the declaration model the
generator consumes. Only the XSD subset the Subsonic schema uses is
supported: ``simpleType`` restrictions, ``complexType`` with attributes,
sequences and ``complexContent/extension``, the ``choice`` that makes up the
distinguished ``Response`` type, and top-level ``element`` declarations
(recorded, never generated).

Anything outside that subset is a fatal :class:`SchemaError`. The compiler
cannot produce a partial type surface, so there is no recovery path.

Typical usage:
        from pathlib import Path
        from subsonic_schema_api.xsd_parser import parse_xsd

        model = parse_xsd(Path("subsonic-rest-api-1.16.1.xsd"))
        print(model.version)                   # 1.16.1
        print(len(model.response.variants))    # payload shapes incl. error

Sequence handling:
Each element child of an ``xs:sequence`` becomes its own member with an
explicit :class:`SequenceRole`. Children declared with ``maxOccurs`` above
one are repeated (list fields); children with ``maxOccurs="1"`` are single
discriminator fields. Element position plays no part in the decision.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import SchemaError
from .models import (
    Attribute,
    ComplexTypeDecl,
    ElementDecl,
    Extension,
    ResponseEnvelopeDecl,
    ResponseVariantDecl,
    SchemaModel,
    SequenceMember,
    SequenceRole,
    SimpleTypeDecl,
)

logger = logging.getLogger(__name__)

XS_NS = "{http://www.w3.org/2001/XMLSchema}"


@dataclass(frozen=True)
class ParserConfig:
    """Configuration for schema parsing and type generation.

    Args:
        namespace_prefix: Prefix marking same-schema type references
            (``sub:Artist``).
        response_type: Name of the complex type treated as the response
            envelope and generated as a tagged union.
        error_variant: Wire name of the envelope variant carrying server
            errors.
        reserved_suffix: Suffix appended to field names that collide with
            Python keywords (``match`` becomes ``match_subsonic``).
        check_collisions: Fail generation when two wire names normalize to
            the same identifier within one record.
    """

    namespace_prefix: str = "sub"
    response_type: str = "Response"
    error_variant: str = "error"
    reserved_suffix: str = "_subsonic"
    check_collisions: bool = True


class XSDParser:
    """Parse a Subsonic XSD document into a :class:`SchemaModel`.

    Example:
        from pathlib import Path
        from subsonic_schema_api.xsd_parser import XSDParser

        parser = XSDParser(Path("subsonic-rest-api-1.16.1.xsd"))
        model = parser.parse()
        child = model.complex_types["Child"]
        print([m.name for m in child.members][:3])   # ['id', 'parent', 'isDir']
    """

    def __init__(
        self,
        xsd_path: Optional[Path] = None,
        config: Optional[ParserConfig] = None,
        *,
        text: Optional[str] = None,
    ) -> None:
        if (xsd_path is None) == (text is None):
            raise ValueError("Provide exactly one of xsd_path or text")
        self.config = config or ParserConfig()
        self.xsd_path = Path(xsd_path) if xsd_path is not None else None
        source = str(self.xsd_path) if self.xsd_path is not None else "<string>"
        try:
            if self.xsd_path is not None:
                self.root = ET.parse(self.xsd_path).getroot()
            else:
                self.root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise SchemaError(
                f"Schema document is not well-formed XML: {exc}", {"source": source}
            ) from exc
        self.source = source

    def parse(self) -> SchemaModel:
        """Walk the top-level declarations in document order.

        Returns:
            The populated :class:`SchemaModel`.

        Raises:
            SchemaError: On any construct outside the supported subset.
        """
        if self.root.tag != f"{XS_NS}schema":
            raise SchemaError(
                f"Root element must be xs:schema, found {self.root.tag}",
                {"source": self.source},
            )

        model = SchemaModel(version=self.root.get("version"))
        for node in self.root:
            if not isinstance(node.tag, str):
                continue
            kind = _local_tag(node)
            if kind == "annotation":
                continue
            if kind == "simpleType":
                model.declarations.append(self._parse_simple_type(node))
            elif kind == "complexType":
                name = self._require(node, "name")
                if name == self.config.response_type:
                    if model.response is not None:
                        raise SchemaError(
                            f"Duplicate response envelope type '{name}'",
                            {"source": self.source},
                        )
                    model.declarations.append(self._parse_response(node, name))
                else:
                    model.declarations.append(self._parse_complex_type(node, name))
            elif kind == "element":
                model.declarations.append(
                    ElementDecl(name=self._require(node, "name"), type_ref=node.get("type"))
                )
            else:
                raise SchemaError(
                    f"Unsupported top-level declaration: {kind}",
                    {"source": self.source},
                )

        logger.info(
            f"Parsed {len(model.simple_types)} simple types, "
            f"{len(model.complex_types)} complex types from {self.source}"
        )
        return model

    # ---------------- Internal helpers ---------------- #

    def _require(self, node: ET.Element, attribute: str) -> str:
        value = node.get(attribute)
        if not value:
            owner = node.get("name") or _local_tag(node)
            raise SchemaError(
                f"Missing required attribute '{attribute}' on {_local_tag(node)} '{owner}'",
                {"source": self.source},
            )
        return value

    def _parse_simple_type(self, node: ET.Element) -> SimpleTypeDecl:
        name = self._require(node, "name")
        restriction = node.find(f"{XS_NS}restriction")
        if restriction is None:
            raise SchemaError(
                f"simpleType '{name}' has no restriction", {"source": self.source}
            )
        enumerations = [
            enum.get("value")
            for enum in restriction.findall(f"{XS_NS}enumeration")
            if enum.get("value") is not None
        ]
        min_node = restriction.find(f"{XS_NS}minInclusive")
        max_node = restriction.find(f"{XS_NS}maxInclusive")
        logger.debug(f"simpleType {name}: base={restriction.get('base')}")
        return SimpleTypeDecl(
            name=name,
            base=self._require(restriction, "base"),
            enumerations=enumerations,
            min_inclusive=min_node.get("value") if min_node is not None else None,
            max_inclusive=max_node.get("value") if max_node is not None else None,
        )

    def _parse_complex_type(self, node: ET.Element, name: str) -> ComplexTypeDecl:
        decl = ComplexTypeDecl(name=name, mixed=node.get("mixed") == "true")
        for child in node:
            if not isinstance(child.tag, str):
                continue
            kind = _local_tag(child)
            if kind == "annotation":
                continue
            if kind == "complexContent":
                if decl.extension is not None:
                    raise SchemaError(
                        f"complexType '{name}' has more than one complexContent",
                        {"source": self.source},
                    )
                decl.members.append(self._parse_extension(child, name))
            else:
                decl.members.extend(self._parse_members(child, name))
        logger.debug(f"complexType {name}: {len(decl.members)} members")
        return decl

    def _parse_members(
        self, node: ET.Element, owner: str
    ) -> List[Union[Attribute, SequenceMember]]:
        kind = _local_tag(node)
        if kind == "attribute":
            return [self._parse_attribute(node)]
        if kind == "sequence":
            return self._parse_sequence(node, owner)
        raise SchemaError(
            f"Unsupported member kind '{kind}' in complexType '{owner}'",
            {"source": self.source},
        )

    def _parse_attribute(self, node: ET.Element) -> Attribute:
        name = self._require(node, "name")
        use = self._require(node, "use")
        if use not in ("required", "optional"):
            raise SchemaError(
                f"Attribute '{name}' has unsupported use '{use}'",
                {"source": self.source},
            )
        return Attribute(
            name=name, type_ref=self._require(node, "type"), required=use == "required"
        )

    def _parse_sequence(self, node: ET.Element, owner: str) -> List[SequenceMember]:
        members: List[SequenceMember] = []
        for child in node:
            if not isinstance(child.tag, str):
                continue
            if _local_tag(child) != "element":
                raise SchemaError(
                    f"Unsupported sequence child '{_local_tag(child)}' in '{owner}'",
                    {"source": self.source},
                )
            max_occurs = child.get("maxOccurs", "1")
            repeated = max_occurs == "unbounded" or (
                max_occurs.isdigit() and int(max_occurs) > 1
            )
            members.append(
                SequenceMember(
                    name=self._require(child, "name"),
                    type_ref=self._require(child, "type"),
                    required=_parse_occurs(child.get("minOccurs")) > 0,
                    role=SequenceRole.REPEATED if repeated else SequenceRole.DISCRIMINATOR,
                )
            )
        if not members:
            raise SchemaError(
                f"Empty sequence in complexType '{owner}'", {"source": self.source}
            )
        return members

    def _parse_extension(self, node: ET.Element, owner: str) -> Extension:
        extension_node = node.find(f"{XS_NS}extension")
        if extension_node is None:
            raise SchemaError(
                f"complexContent in '{owner}' must contain an extension",
                {"source": self.source},
            )
        extension = Extension(base=self._require(extension_node, "base"))
        for child in extension_node:
            if not isinstance(child.tag, str) or _local_tag(child) == "annotation":
                continue
            extension.members.extend(self._parse_members(child, owner))
        return extension

    def _parse_response(self, node: ET.Element, name: str) -> ResponseEnvelopeDecl:
        envelope = ResponseEnvelopeDecl(name=name)
        for child in node:
            if not isinstance(child.tag, str):
                continue
            kind = _local_tag(child)
            if kind == "choice":
                for element in child.findall(f"{XS_NS}element"):
                    envelope.variants.append(
                        ResponseVariantDecl(
                            name=self._require(element, "name"),
                            type_ref=self._require(element, "type"),
                        )
                    )
            elif kind == "attribute":
                envelope.attributes.append(self._parse_attribute(child))
            elif kind != "annotation":
                raise SchemaError(
                    f"Unsupported member kind '{kind}' in response type '{name}'",
                    {"source": self.source},
                )
        if not envelope.variants:
            raise SchemaError(
                f"Response type '{name}' declares no payload variants",
                {"source": self.source},
            )
        return envelope


def _parse_occurs(value: Optional[str]) -> int:
    if value is None:
        return 1
    if value.isdigit():
        return int(value)
    raise SchemaError(f"Invalid minOccurs value: {value}")


def _local_tag(node: ET.Element) -> str:
    tag = node.tag
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def parse_xsd(xsd_path: Path, config: Optional[ParserConfig] = None) -> SchemaModel:
    """Parse a Subsonic XSD file and return its schema model.

    This is a convenience wrapper around :class:`XSDParser` for callers that
    do not need incremental parsing control.

    Args:
        xsd_path: Path to the XSD schema file.
        config: Optional :class:`ParserConfig` instance.

    Returns:
        The parsed :class:`SchemaModel`.
    """
    return XSDParser(Path(xsd_path), config=config).parse()


def parse_xsd_string(text: str, config: Optional[ParserConfig] = None) -> SchemaModel:
    """Parse schema text held in memory (used by tests and tooling)."""
    return XSDParser(config=config, text=text).parse()
