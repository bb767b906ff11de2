"""Shared fixtures for the Subsonic schema tests."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

from subsonic_schema_api.registry import TypeRegistry, compile_schema
from subsonic_schema_api.schema_locator import bundled_schema_path


MINIMAL_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:sub="http://subsonic.org/restapi"
           targetNamespace="http://subsonic.org/restapi"
           version="1.16.1">
    <xs:complexType name="Response">
        <xs:choice minOccurs="0" maxOccurs="1">
            <xs:element name="genres" type="sub:Genres"/>
            <xs:element name="error" type="sub:Error"/>
        </xs:choice>
        <xs:attribute name="status" type="sub:ResponseStatus" use="required"/>
        <xs:attribute name="version" type="xs:string" use="required"/>
    </xs:complexType>
    <xs:simpleType name="ResponseStatus">
        <xs:restriction base="xs:string">
            <xs:enumeration value="ok"/>
            <xs:enumeration value="failed"/>
        </xs:restriction>
    </xs:simpleType>
    <xs:complexType name="Genres">
        <xs:sequence>
            <xs:element name="genre" type="sub:Genre" minOccurs="0" maxOccurs="unbounded"/>
        </xs:sequence>
    </xs:complexType>
    <xs:complexType name="Genre" mixed="true">
        <xs:attribute name="songCount" type="xs:int" use="required"/>
        <xs:attribute name="albumCount" type="xs:int" use="required"/>
    </xs:complexType>
    <xs:complexType name="Error">
        <xs:attribute name="code" type="xs:int" use="required"/>
        <xs:attribute name="message" type="xs:string" use="optional"/>
    </xs:complexType>
</xs:schema>
"""


def schema_document(body: str, version: str = "1.16.1") -> str:
    """Wrap declarations in an ``xs:schema`` root with the ``sub`` prefix bound."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:sub="http://subsonic.org/restapi"
           targetNamespace="http://subsonic.org/restapi"
           version="{version}">
{body}
</xs:schema>
"""


def envelope(payload: Dict[str, Any] = None, status: str = "ok", version: str = "1.16.1") -> Dict:
    """Build a ``subsonic-response`` JSON document."""
    content = {"status": status, "version": version}
    content.update(payload or {})
    return {"subsonic-response": content}


@pytest.fixture(scope="session")
def registry() -> TypeRegistry:
    """Registry compiled from the bundled 1.16.1 schema."""
    return compile_schema(bundled_schema_path())


@pytest.fixture
def minimal_xsd_path(tmp_path) -> Path:
    path = tmp_path / "minimal.xsd"
    path.write_text(MINIMAL_XSD)
    return path


@pytest.fixture
def write_xsd(tmp_path) -> Callable[[str], Path]:
    """Write schema declarations to a temporary file and return its path."""

    def _write(body: str, name: str = "schema.xsd") -> Path:
        path = tmp_path / name
        path.write_text(schema_document(body))
        return path

    return _write


@pytest.fixture
def mock_server():
    """Factory for an ``httpx.AsyncClient`` answering every GET with one body.

    Requests are recorded on the returned client's ``requests`` list.
    """

    def _make(body: Any, status_code: int = 200) -> httpx.AsyncClient:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            content = body if isinstance(body, (bytes, str)) else json.dumps(body)
            return httpx.Response(status_code, content=content)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requests = requests
        return client

    return _make
