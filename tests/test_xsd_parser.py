"""Tests for the Subsonic XSD parser."""

import pytest

from subsonic_schema_api.exceptions import SchemaError
from subsonic_schema_api.models import (
    Attribute,
    ComplexTypeDecl,
    ElementDecl,
    Extension,
    SequenceMember,
    SequenceRole,
)
from subsonic_schema_api.schema_locator import bundled_schema_path
from subsonic_schema_api.xsd_parser import ParserConfig, XSDParser, parse_xsd, parse_xsd_string

from conftest import MINIMAL_XSD, schema_document


def test_parse_minimal_schema(minimal_xsd_path):
    """Test parsing a small schema with simple, complex and response types."""
    model = parse_xsd(minimal_xsd_path)

    assert model.version == "1.16.1"
    assert set(model.simple_types) == {"ResponseStatus"}
    assert set(model.complex_types) == {"Genres", "Genre", "Error"}
    assert model.simple_types["ResponseStatus"].enumerations == ["ok", "failed"]

    response = model.response
    assert response is not None
    assert [v.name for v in response.variants] == ["genres", "error"]
    assert [a.name for a in response.attributes] == ["status", "version"]


def test_attributes_keep_declaration_order_and_use():
    """Attributes map use="required"/"optional" onto the required flag."""
    model = parse_xsd_string(MINIMAL_XSD)
    error = model.complex_types["Error"]

    assert error.members == [
        Attribute(name="code", type_ref="xs:int", required=True),
        Attribute(name="message", type_ref="xs:string", required=False),
    ]


def test_mixed_content_flag():
    """complexType mixed="true" is recorded on the declaration."""
    model = parse_xsd_string(MINIMAL_XSD)

    assert model.complex_types["Genre"].mixed is True
    assert model.complex_types["Genres"].mixed is False


def test_sequence_roles_follow_max_occurs():
    """Unbounded children are repeated, maxOccurs="1" children are discriminators."""
    model = parse_xsd_string(schema_document("""
    <xs:complexType name="Holder">
        <xs:sequence>
            <xs:element name="items" type="xs:string" minOccurs="0" maxOccurs="unbounded"/>
            <xs:element name="pair" type="xs:string" minOccurs="0" maxOccurs="2"/>
            <xs:element name="entry" type="xs:string" minOccurs="1" maxOccurs="1"/>
            <xs:element name="maybe" type="xs:string" minOccurs="0" maxOccurs="1"/>
        </xs:sequence>
    </xs:complexType>
    """))
    members = model.complex_types["Holder"].members

    assert [(m.name, m.role, m.required) for m in members] == [
        ("items", SequenceRole.REPEATED, False),
        ("pair", SequenceRole.REPEATED, False),
        ("entry", SequenceRole.DISCRIMINATOR, True),
        ("maybe", SequenceRole.DISCRIMINATOR, False),
    ]


def test_extension_members():
    """complexContent/extension records its base and extra members."""
    model = parse_xsd_string(schema_document("""
    <xs:complexType name="Base">
        <xs:attribute name="id" type="xs:string" use="required"/>
    </xs:complexType>
    <xs:complexType name="Derived">
        <xs:complexContent>
            <xs:extension base="sub:Base">
                <xs:sequence>
                    <xs:element name="child" type="sub:Base" minOccurs="0" maxOccurs="unbounded"/>
                </xs:sequence>
                <xs:attribute name="extra" type="xs:int" use="optional"/>
            </xs:extension>
        </xs:complexContent>
    </xs:complexType>
    """ + _RESPONSE))
    derived = model.complex_types["Derived"]

    assert isinstance(derived.extension, Extension)
    assert derived.extension.base == "sub:Base"
    assert [m.name for m in derived.own_members()] == ["child", "extra"]


def test_top_level_elements_are_recorded():
    """Top-level xs:element declarations are kept but produce no type."""
    model = parse_xsd_string(schema_document(
        '<xs:element name="subsonic-response" type="sub:Response"/>' + _RESPONSE
    ))

    assert model.elements == [ElementDecl(name="subsonic-response", type_ref="sub:Response")]
    assert "subsonic-response" not in model.type_names()


def test_missing_use_is_fatal():
    """Attributes without a use attribute are rejected."""
    with pytest.raises(SchemaError, match="use"):
        parse_xsd_string(schema_document("""
        <xs:complexType name="Broken">
            <xs:attribute name="id" type="xs:string"/>
        </xs:complexType>
        """))


def test_unknown_use_is_fatal():
    with pytest.raises(SchemaError, match="prohibited"):
        parse_xsd_string(schema_document("""
        <xs:complexType name="Broken">
            <xs:attribute name="id" type="xs:string" use="prohibited"/>
        </xs:complexType>
        """))


def test_unknown_member_kind_is_fatal():
    """A choice outside the Response type is not supported."""
    with pytest.raises(SchemaError, match="Unsupported member kind 'choice'"):
        parse_xsd_string(schema_document("""
        <xs:complexType name="Broken">
            <xs:choice>
                <xs:element name="a" type="xs:string"/>
            </xs:choice>
        </xs:complexType>
        """))


def test_unknown_top_level_kind_is_fatal():
    with pytest.raises(SchemaError, match="group"):
        parse_xsd_string(schema_document('<xs:group name="G"/>'))


def test_duplicate_response_is_fatal():
    with pytest.raises(SchemaError, match="Duplicate response"):
        parse_xsd_string(schema_document(_RESPONSE + _RESPONSE))


def test_response_without_variants_is_fatal():
    with pytest.raises(SchemaError, match="no payload variants"):
        parse_xsd_string(schema_document("""
        <xs:complexType name="Response">
            <xs:attribute name="status" type="xs:string" use="required"/>
        </xs:complexType>
        """))


def test_missing_type_on_sequence_element_is_fatal():
    with pytest.raises(SchemaError, match="Missing required attribute 'type'"):
        parse_xsd_string(schema_document("""
        <xs:complexType name="Broken">
            <xs:sequence>
                <xs:element name="a"/>
            </xs:sequence>
        </xs:complexType>
        """))


def test_malformed_xml_is_schema_error():
    with pytest.raises(SchemaError, match="not well-formed"):
        parse_xsd_string("<xs:schema")


def test_parser_requires_exactly_one_source(minimal_xsd_path):
    with pytest.raises(ValueError):
        XSDParser()
    with pytest.raises(ValueError):
        XSDParser(minimal_xsd_path, text=MINIMAL_XSD)


def test_custom_response_type_name():
    """ParserConfig.response_type selects which complexType is the envelope."""
    text = MINIMAL_XSD.replace('name="Response"', 'name="Envelope"')
    model = parse_xsd_string(text, ParserConfig(response_type="Envelope"))

    assert model.response is not None
    assert model.response.name == "Envelope"


def test_bundled_schema_parses():
    """The bundled Subsonic 1.16.1 schema parses with every payload variant."""
    model = parse_xsd(bundled_schema_path())

    assert model.version == "1.16.1"
    variants = [v.name for v in model.response.variants]
    assert "error" in variants
    assert "randomSongs" in variants and "songsByGenre" in variants

    child = model.complex_types["Child"]
    assert isinstance(child, ComplexTypeDecl)
    assert [m.name for m in child.members][:3] == ["id", "parent", "isDir"]

    bookmark_entry = model.complex_types["Bookmark"].members[0]
    assert isinstance(bookmark_entry, SequenceMember)
    assert bookmark_entry.role is SequenceRole.DISCRIMINATOR
    assert bookmark_entry.required is True


_RESPONSE = """
    <xs:complexType name="Response">
        <xs:choice>
            <xs:element name="error" type="sub:Error"/>
        </xs:choice>
        <xs:attribute name="status" type="xs:string" use="required"/>
    </xs:complexType>
    <xs:complexType name="Error">
        <xs:attribute name="code" type="xs:int" use="required"/>
    </xs:complexType>
"""
