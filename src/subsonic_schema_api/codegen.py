"""Emit the compiled type surface as Python source.

:func:`render_module` turns a :class:`~subsonic_schema_api.generator.SchemaPlan`
into a standalone module of pydantic classes equivalent to what
:mod:`subsonic_schema_api.registry` builds at runtime. Both are driven by the
same plan, so a checked-in module and a runtime registry compiled from the
same schema expose the same names, fields and aliases.

The emitted module contains, in order: a header, one ``RootModel`` class per
simple type, one record class per complex type (bases before subclasses), and
a ``RESPONSE`` :class:`~subsonic_schema_api.envelope.ResponseUnion` listing
the Response variants.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from .generator import FieldPlan, RecordPlan, SchemaPlan, UnionPlan, WrapperPlan

logger = logging.getLogger(__name__)

INDENT = "    "

HEADER = '''"""Subsonic REST API {version} types.

Generated by ``subsonic-schema generate``; do not edit by hand.
"""

from __future__ import annotations

from typing import Any, ClassVar, List, Optional, Tuple

from pydantic import Field, RootModel

from subsonic_schema_api.envelope import ResponseUnion, Variant
from subsonic_schema_api.registry import SubsonicRecord

SCHEMA_VERSION = {version_literal}
'''


def render_module(plan: SchemaPlan) -> str:
    """Render ``plan`` as the source text of a Python module."""
    blocks: List[str] = [
        HEADER.format(
            version=plan.version or "(unversioned)", version_literal=repr(plan.version)
        ).rstrip("\n")
    ]
    blocks.extend(render_wrapper(wrapper) for wrapper in plan.wrappers)
    blocks.extend(render_record(record) for record in plan.records)
    if plan.union is not None:
        blocks.append(render_union(plan.union))
    logger.info(f"Rendered {len(blocks) - 1} definitions")
    return "\n\n\n".join(blocks) + "\n"


def render_wrapper(plan: WrapperPlan) -> str:
    root = plan.primitive.__name__ if plan.primitive is not None else "Any"
    lines = [
        f"class {plan.name}(RootModel[{root}]):",
        f'{INDENT}"""Generated from simpleType ``{plan.name}`` (base {plan.base_ref})."""',
        "",
        f"{INDENT}base_ref: ClassVar[str] = {plan.base_ref!r}",
        f"{INDENT}enumerations: ClassVar[Tuple[str, ...]] = {plan.enumerations!r}",
        f"{INDENT}bounds: ClassVar[Tuple[Optional[str], Optional[str]]] = "
        f"{(plan.min_inclusive, plan.max_inclusive)!r}",
    ]
    return "\n".join(lines)


def render_record(plan: RecordPlan) -> str:
    base = plan.base or "SubsonicRecord"
    lines = [
        f"class {plan.name}({base}):",
        f'{INDENT}"""Generated from complexType ``{plan.name}``."""',
    ]
    if plan.fields:
        lines.append("")
        lines.extend(INDENT + render_field(field_plan) for field_plan in plan.fields)
    return "\n".join(lines)


def render_field(plan: FieldPlan) -> str:
    """Render one field line, e.g. ``is_dir: bool = Field(alias="isDir")``."""
    annotation = plan.type.render()
    identifier = plan.name.identifier
    if plan.name.renamed:
        default = "" if plan.required else "None, "
        return f"{identifier}: {annotation} = Field({default}alias={plan.name.wire_name!r})"
    if plan.required:
        return f"{identifier}: {annotation}"
    return f"{identifier}: {annotation} = None"


def render_union(plan: UnionPlan) -> str:
    lines = ["RESPONSE = ResponseUnion(", f"{INDENT}{plan.name!r},", f"{INDENT}["]
    for variant in plan.variants:
        error = ", is_error=True" if variant.is_error else ""
        lines.append(
            f"{INDENT * 2}Variant({variant.name!r}, {variant.wire_name!r}, "
            f"{variant.payload}{error}),"
        )
    lines.extend([f"{INDENT}],", ")"])
    return "\n".join(lines)


def write_module(plan: SchemaPlan, out: Union[str, Path], encoding: Optional[str] = "utf-8") -> Path:
    """Render ``plan`` and write it to ``out``; returns the written path."""
    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_module(plan), encoding=encoding)
    logger.info(f"Wrote generated module to {path}")
    return path
