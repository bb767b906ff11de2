"""Field name normalization.

Schema names are camelCase wire names (``albumCount``); generated fields use
snake_case identifiers (``album_count``) and remember the wire name so
(de)serialization stays byte-compatible with the server.

Rules, applied in order:

1. ``type`` always becomes ``ty``.
2. Names that are not snake_case are converted.
3. Identifiers that collide with a Python keyword, a soft keyword, or a
   public ``pydantic.BaseModel`` attribute get the configured suffix
   (``match`` becomes ``match_subsonic``).

Example:
    >>> normalize_field_name("albumCount")
    FieldName(identifier='album_count', wire_name='albumCount')
    >>> normalize_field_name("match").identifier
    'match_subsonic'
"""

from __future__ import annotations

import keyword
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable

from pydantic import BaseModel

from .exceptions import NameCollisionError, SchemaError

DEFAULT_RESERVED_SUFFIX = "_subsonic"

_SNAKE_CASE = re.compile(r"^[a-z_][a-z0-9_]*$")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")

RESERVED_IDENTIFIERS: FrozenSet[str] = frozenset(
    list(keyword.kwlist)
    + list(getattr(keyword, "softkwlist", []))
    + [name for name in dir(BaseModel) if not name.startswith("_")]
)


@dataclass(frozen=True)
class FieldName:
    identifier: str
    wire_name: str

    @property
    def renamed(self) -> bool:
        """True when the identifier differs from the wire name."""
        return self.identifier != self.wire_name


def is_snake_case(name: str) -> bool:
    return bool(_SNAKE_CASE.match(name))


def to_snake_case(name: str) -> str:
    """Convert camelCase/PascalCase (and dashed) names to snake_case.

    Example:
        >>> to_snake_case("musicBrainzId")
        'music_brainz_id'
        >>> to_snake_case("subsonic-response")
        'subsonic_response'
    """
    text = name.replace("-", "_")
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", text)
    text = _WORD_BOUNDARY.sub(r"\1_\2", text)
    return text.lower()


def to_pascal_case(name: str) -> str:
    """Variant names: ``musicFolders`` -> ``MusicFolders``."""
    parts = [part for part in re.split(r"[-_]", name) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts)


def normalize_field_name(
    name: str, reserved_suffix: str = DEFAULT_RESERVED_SUFFIX
) -> FieldName:
    """Map a schema-declared name to a field identifier plus its wire name.

    Raises:
        SchemaError: If no valid identifier can be derived.
    """
    if name == "type":
        identifier = "ty"
    elif is_snake_case(name):
        identifier = name
    else:
        identifier = to_snake_case(name)

    if identifier in RESERVED_IDENTIFIERS:
        identifier = f"{identifier}{reserved_suffix}"

    if not identifier.isidentifier() or identifier.startswith("_"):
        raise SchemaError(f"Cannot derive a field identifier from '{name}'")
    return FieldName(identifier=identifier, wire_name=name)


def check_collisions(names: Iterable[FieldName], owner: str) -> None:
    """Assert no two distinct wire names share an identifier within ``owner``.

    Raises:
        NameCollisionError: Naming both wire names and the shared identifier.
    """
    seen: Dict[str, str] = {}
    for name in names:
        previous = seen.get(name.identifier)
        if previous is not None:
            raise NameCollisionError(
                f"'{previous}' and '{name.wire_name}' both normalize to "
                f"'{name.identifier}' in {owner}",
                {"type": owner, "identifier": name.identifier},
            )
        seen[name.identifier] = name.wire_name
