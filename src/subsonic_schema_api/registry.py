"""Materialize type plans as pydantic models at runtime.

Each :class:`~subsonic_schema_api.generator.RecordPlan` becomes a frozen
:class:`SubsonicRecord` subclass whose fields carry their wire names as
pydantic aliases; each :class:`~subsonic_schema_api.generator.WrapperPlan`
becomes a ``RootModel`` over its primitive; the union plan becomes a
:class:`~subsonic_schema_api.envelope.ResponseUnion`.

Records accept either wire names or field names on input and serialize by
wire name::

    registry = compile_schema(path)
    Child = registry["Child"]
    song = Child.model_validate({"id": "1", "isDir": False, "title": "Intro"})
    song.is_dir                      # False
    song.to_wire()["isDir"]          # False

Extension is pydantic inheritance: a record extending ``AlbumID3`` is a
subclass of the generated ``AlbumID3`` and its inherited fields come first.
"""

from __future__ import annotations

import logging
import types
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, create_model

from .envelope import ResponseUnion, Variant
from .exceptions import SchemaError
from .generator import RecordPlan, SchemaPlan, UnionPlan, WrapperPlan, plan_schema
from .models import SchemaModel
from .xsd_parser import ParserConfig, parse_xsd

logger = logging.getLogger(__name__)


class SubsonicRecord(BaseModel):
    """Base class of every generated record."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        protected_namespaces=(),
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump using wire names, leaving absent optional members out."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TypeRegistry:
    """Generated types for one schema, addressable by schema name.

    Example:
        >>> registry = compile_schema()          # doctest: +SKIP
        >>> registry["UserRating"].model_validate(4).root   # doctest: +SKIP
        4
    """

    def __init__(self, plan: SchemaPlan) -> None:
        self.plan = plan
        self.types: Dict[str, type] = {}
        self.response: ResponseUnion
        self._build()

    def __getitem__(self, name: str) -> type:
        return self.types[name]

    def __contains__(self, name: object) -> bool:
        return name in self.types

    def __iter__(self) -> Iterator[str]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    def __getattr__(self, name: str) -> type:
        generated = self.__dict__.get("types", {})
        if name in generated:
            return generated[name]
        raise AttributeError(name)

    @property
    def version(self) -> Optional[str]:
        return self.plan.version

    @property
    def records(self) -> Dict[str, Type[SubsonicRecord]]:
        return {p.name: self.types[p.name] for p in self.plan.records}

    @property
    def wrappers(self) -> Dict[str, Type[RootModel]]:
        return {p.name: self.types[p.name] for p in self.plan.wrappers}

    # ---------------- Internal helpers ---------------- #

    def _build(self) -> None:
        for wrapper in self.plan.wrappers:
            self.types[wrapper.name] = _build_wrapper(wrapper)

        deferred = False
        for record in self.plan.records:
            model, complete = self._build_record(record)
            self.types[record.name] = model
            deferred = deferred or not complete
        if deferred:
            # Plan order puts referenced records first, so one pass suffices.
            for name in self.records:
                model = self.types[name]
                if not model.__pydantic_complete__:
                    model.model_rebuild(force=True, _types_namespace=dict(self.types))

        if self.plan.union is None:
            raise SchemaError("Plan has no response union")
        self.response = self._build_union(self.plan.union)
        logger.info(
            f"Built {len(self.plan.records)} records, {len(self.plan.wrappers)} wrappers "
            f"and {self.response.name} with {len(self.response)} variants"
        )

    def _build_record(self, plan: RecordPlan) -> Tuple[Type[SubsonicRecord], bool]:
        base: Type[SubsonicRecord] = self.types[plan.base] if plan.base else SubsonicRecord
        complete = True
        definitions: Dict[str, Any] = {}
        for field_plan in plan.fields:
            forward = field_plan.type.is_named and field_plan.type.base not in self.types
            annotation = field_plan.type.annotation(self.types, forward_refs=forward)
            complete = complete and not forward
            default = ... if field_plan.required else None
            definitions[field_plan.name.identifier] = (
                annotation,
                Field(default, alias=field_plan.name.wire_name),
            )
        model = create_model(
            plan.name,
            __base__=base,
            __module__=__name__,
            __doc__=f"Generated from complexType ``{plan.name}``.",
            **definitions,
        )
        logger.debug(f"Generated record {plan.name} ({len(plan.fields)} own fields)")
        return model, complete

    def _build_union(self, plan: UnionPlan) -> ResponseUnion:
        variants = [
            Variant(
                name=v.name,
                wire_name=v.wire_name,
                payload_type=self.types[v.payload],
                is_error=v.is_error,
            )
            for v in plan.variants
        ]
        return ResponseUnion(plan.name, variants)


def _build_wrapper(plan: WrapperPlan) -> Type[RootModel]:
    root_type: Any = plan.primitive if plan.primitive is not None else Any
    namespace = {
        "__module__": __name__,
        "__doc__": f"Generated from simpleType ``{plan.name}`` (base {plan.base_ref}).",
        "__annotations__": {
            "base_ref": ClassVar[str],
            "enumerations": ClassVar[Tuple[str, ...]],
            "bounds": ClassVar[Tuple[Optional[str], Optional[str]]],
        },
        "base_ref": plan.base_ref,
        "enumerations": plan.enumerations,
        "bounds": (plan.min_inclusive, plan.max_inclusive),
    }
    wrapper = types.new_class(
        plan.name, (RootModel[root_type],), exec_body=lambda ns: ns.update(namespace)
    )
    logger.debug(f"Generated wrapper {plan.name} over {getattr(root_type, '__name__', root_type)}")
    return wrapper


def build_registry(plan: SchemaPlan) -> TypeRegistry:
    return TypeRegistry(plan)


def compile_schema(
    source: Union[Path, str, SchemaModel, None] = None,
    config: Optional[ParserConfig] = None,
) -> TypeRegistry:
    """Parse, plan and materialize a schema in one call.

    Args:
        source: Path to an XSD, an already parsed :class:`SchemaModel`, or
            ``None`` for the bundled Subsonic 1.16.1 schema.
        config: Optional parser/generator configuration.

    Raises:
        SchemaError: On any schema problem; no partial registry is returned.
    """
    if isinstance(source, SchemaModel):
        model = source
    else:
        if source is None:
            from .schema_locator import locate_schema

            source = locate_schema()
        model = parse_xsd(Path(source), config=config)
    return build_registry(plan_schema(model, config=config))
