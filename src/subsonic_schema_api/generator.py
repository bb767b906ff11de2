"""Derive type plans from a parsed schema.

The generator walks a :class:`SchemaModel` and produces one immutable plan
per generated type:

* :class:`WrapperPlan` for each ``simpleType`` (a thin named wrapper around
  ``int``, ``float``, ``str`` or an opaque value; bounds and enumerations are
  recorded, never enforced).
* :class:`RecordPlan` for each ordinary ``complexType``. Fields follow
  declaration order; a ``complexContent/extension`` contributes its base
  record first (as an inherited, flattened member) followed by the type's own
  members.
* :class:`UnionPlan` for the Response envelope: one :class:`VariantPlan` per
  payload member, with the Error variant designated.

Plans are consumed by :mod:`subsonic_schema_api.registry` (runtime pydantic
models) and :mod:`subsonic_schema_api.codegen` (Python source). Keeping both
on the same plan guarantees the two outputs never disagree.

Every failure here is fatal: unknown type references, missing Error variant,
name collisions and circular extension chains raise :class:`SchemaError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from .exceptions import SchemaError
from .models import (
    Attribute,
    ComplexTypeDecl,
    ResponseEnvelopeDecl,
    SchemaModel,
    SequenceMember,
    SimpleTypeDecl,
)
from .naming import FieldName, check_collisions, normalize_field_name, to_pascal_case
from .type_mapper import PRIMITIVE_TYPES, FieldType, TypeMapper
from .xsd_parser import ParserConfig

logger = logging.getLogger(__name__)

MIXED_CONTENT_FIELD = "value"


@dataclass(frozen=True)
class FieldPlan:
    name: FieldName
    type: FieldType

    @property
    def required(self) -> bool:
        return not self.type.optional


@dataclass(frozen=True)
class WrapperPlan:
    """Named wrapper around a constrained primitive."""

    name: str
    base_ref: str
    primitive: Optional[type] = None
    enumerations: Tuple[str, ...] = ()
    min_inclusive: Optional[str] = None
    max_inclusive: Optional[str] = None

    @property
    def opaque(self) -> bool:
        return self.primitive is None


@dataclass(frozen=True)
class RecordPlan:
    """One generated record.

    Attributes:
        name: Record (class) name.
        base: Name of the extended record, whose fields precede ``fields``.
        fields: Fields declared by this type itself, in order.
        mixed: True when the record carries text content under ``value``.
    """

    name: str
    base: Optional[str] = None
    fields: Tuple[FieldPlan, ...] = ()
    mixed: bool = False

    def dependencies(self) -> Set[str]:
        names = {f.type.base for f in self.fields if isinstance(f.type.base, str)}
        if self.base:
            names.add(self.base)
        return names


@dataclass(frozen=True)
class VariantPlan:
    name: str
    wire_name: str
    payload: str
    is_error: bool = False


@dataclass(frozen=True)
class UnionPlan:
    name: str
    variants: Tuple[VariantPlan, ...]

    @property
    def error_variant(self) -> VariantPlan:
        return next(v for v in self.variants if v.is_error)

    @property
    def payload_variants(self) -> Tuple[VariantPlan, ...]:
        """Every variant except Error, each of which gets a narrowing."""
        return tuple(v for v in self.variants if not v.is_error)


TypePlan = Union[WrapperPlan, RecordPlan, UnionPlan]


@dataclass
class SchemaPlan:
    """All plans for one schema, in an order safe for materialization.

    Wrappers come first, then records with every base before the records
    extending it, then the union.
    """

    wrappers: List[WrapperPlan] = field(default_factory=list)
    records: List[RecordPlan] = field(default_factory=list)
    union: Optional[UnionPlan] = None
    version: Optional[str] = None

    def __iter__(self):
        yield from self.wrappers
        yield from self.records
        if self.union is not None:
            yield self.union

    @property
    def records_by_name(self) -> Dict[str, RecordPlan]:
        return {record.name: record for record in self.records}

    def all_fields(self, record_name: str) -> List[FieldPlan]:
        """Fields of a record including everything inherited from its bases."""
        records = self.records_by_name
        chain: List[RecordPlan] = []
        current: Optional[str] = record_name
        while current is not None:
            plan = records[current]
            chain.append(plan)
            current = plan.base
        fields: List[FieldPlan] = []
        for plan in reversed(chain):
            fields.extend(plan.fields)
        return fields


class SchemaGenerator:
    """Turn a :class:`SchemaModel` into a :class:`SchemaPlan`.

    Example:
        from subsonic_schema_api.xsd_parser import parse_xsd
        from subsonic_schema_api.generator import SchemaGenerator

        plan = SchemaGenerator(parse_xsd(path)).plan()
        print(plan.union.error_variant.payload)   # Error
    """

    def __init__(self, model: SchemaModel, config: Optional[ParserConfig] = None) -> None:
        self.model = model
        self.config = config or ParserConfig()
        self.mapper = TypeMapper(
            list(model.simple_types) + list(model.complex_types), self.config
        )

    def plan(self) -> SchemaPlan:
        schema_plan = SchemaPlan(version=self.model.version)
        unordered: Dict[str, RecordPlan] = {}

        for declaration in self.model:
            if isinstance(declaration, SimpleTypeDecl):
                schema_plan.wrappers.append(self._plan_wrapper(declaration))
            elif isinstance(declaration, ComplexTypeDecl):
                if declaration.name in unordered:
                    raise SchemaError(f"Duplicate complexType '{declaration.name}'")
                unordered[declaration.name] = self._plan_record(declaration)
            elif isinstance(declaration, ResponseEnvelopeDecl):
                schema_plan.union = self._plan_union(declaration)
            else:
                logger.debug(f"Skipping element declaration {declaration.name}")

        if schema_plan.union is None:
            raise SchemaError(
                f"Schema declares no '{self.config.response_type}' envelope type"
            )

        schema_plan.records = _order_records(unordered)
        if self.config.check_collisions:
            for record in schema_plan.records:
                check_collisions(
                    (f.name for f in schema_plan.all_fields(record.name)), record.name
                )
        self._check_union_payloads(schema_plan)

        logger.info(
            f"Planned {len(schema_plan.wrappers)} wrappers, {len(schema_plan.records)} "
            f"records and {len(schema_plan.union.variants)} response variants"
        )
        return schema_plan

    # ---------------- Internal helpers ---------------- #

    def _plan_wrapper(self, decl: SimpleTypeDecl) -> WrapperPlan:
        primitive = PRIMITIVE_TYPES.get(decl.base)
        if primitive is None:
            logger.debug(f"simpleType {decl.name} base {decl.base} is opaque")
        return WrapperPlan(
            name=decl.name,
            base_ref=decl.base,
            primitive=primitive,
            enumerations=tuple(decl.enumerations),
            min_inclusive=decl.min_inclusive,
            max_inclusive=decl.max_inclusive,
        )

    def _plan_field(self, member: Union[Attribute, SequenceMember]) -> FieldPlan:
        repeated = isinstance(member, SequenceMember) and member.repeated
        return FieldPlan(
            name=normalize_field_name(member.name, self.config.reserved_suffix),
            type=self.mapper.map(member.type_ref, required=member.required, repeated=repeated),
        )

    def _plan_record(self, decl: ComplexTypeDecl) -> RecordPlan:
        base: Optional[str] = None
        extension = decl.extension
        if extension is not None:
            base = self.mapper.dependency(extension.base)
            if base is None or base not in self.model.complex_types:
                raise SchemaError(
                    f"complexType '{decl.name}' extends non-record type '{extension.base}'"
                )

        fields = [self._plan_field(member) for member in decl.own_members()]
        if decl.mixed and all(f.name.wire_name != MIXED_CONTENT_FIELD for f in fields):
            fields.append(
                FieldPlan(
                    name=FieldName(MIXED_CONTENT_FIELD, MIXED_CONTENT_FIELD),
                    type=FieldType(str, optional=True),
                )
            )
        logger.debug(f"Record {decl.name}: base={base}, {len(fields)} own fields")
        return RecordPlan(name=decl.name, base=base, fields=tuple(fields), mixed=decl.mixed)

    def _plan_union(self, decl: ResponseEnvelopeDecl) -> UnionPlan:
        # Envelope attributes are decoded generically; resolving them still
        # enforces fatal-on-unknown for the types they name.
        for attribute in decl.attributes:
            self.mapper.resolve(attribute.type_ref)

        variants: List[VariantPlan] = []
        seen: Dict[str, str] = {}
        for variant in decl.variants:
            payload = self.mapper.dependency(variant.type_ref)
            if payload is None:
                raise SchemaError(
                    f"Response variant '{variant.name}' must reference a declared type"
                )
            name = to_pascal_case(variant.name)
            if name in seen:
                raise SchemaError(
                    f"Response variants '{seen[name]}' and '{variant.name}' "
                    f"both map to '{name}'"
                )
            seen[name] = variant.name
            variants.append(
                VariantPlan(
                    name=name,
                    wire_name=variant.name,
                    payload=payload,
                    is_error=variant.name == self.config.error_variant,
                )
            )

        if not any(v.is_error for v in variants):
            raise SchemaError(
                f"Response type '{decl.name}' has no '{self.config.error_variant}' variant"
            )
        return UnionPlan(name=decl.name, variants=tuple(variants))

    def _check_union_payloads(self, schema_plan: SchemaPlan) -> None:
        records = schema_plan.records_by_name
        for variant in schema_plan.union.variants:
            if variant.payload not in records:
                raise SchemaError(
                    f"Response variant '{variant.wire_name}' payload "
                    f"'{variant.payload}' is not a record type"
                )


def _order_records(records: Dict[str, RecordPlan]) -> List[RecordPlan]:
    """Order records so every dependency precedes its dependents.

    Extension bases are hard dependencies: a cycle through them is an error.
    A cycle through plain field references is legal (recursive types) and is
    left for the registry to resolve with forward references.
    """
    ordered: List[RecordPlan] = []
    done: Set[str] = set()
    visiting: Set[str] = set()

    def base_chain(name: str) -> List[str]:
        chain: List[str] = []
        current: Optional[str] = name
        while current in records and current not in chain:
            chain.append(current)
            current = records[current].base
        return chain

    def visit(name: str, via_base: bool) -> None:
        if name in done or name not in records:
            return
        if name in visiting:
            if via_base:
                raise SchemaError(f"Circular extension chain through '{name}'")
            return
        if not via_base and visiting.intersection(base_chain(name)):
            # Extends a record still being visited; the outer loop picks it up.
            return
        visiting.add(name)
        record = records[name]
        if record.base:
            visit(record.base, via_base=True)
        for dependency in sorted(record.dependencies() - {record.base}):
            visit(dependency, via_base=False)
        visiting.discard(name)
        done.add(name)
        ordered.append(record)

    for name in records:
        visit(name, via_base=False)
    return ordered


def plan_schema(model: SchemaModel, config: Optional[ParserConfig] = None) -> SchemaPlan:
    """Convenience wrapper around :class:`SchemaGenerator`."""
    return SchemaGenerator(model, config=config).plan()
