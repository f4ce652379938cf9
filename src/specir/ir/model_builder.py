"""Populate the registry's model skeletons from their component schemas.

Each schema is classified once into a :class:`~specir.models.SchemaShape`
and built accordingly:

``ENUM``
    The schema declares ``enum``. Values are captured and every other facet is
    ignored.
``UNION``
    The schema declares ``oneOf`` and no own ``properties``: a pure
    polymorphic union, even next to an ``allOf``. It gets a discriminator and
    sub-types but no properties.
``COMPOSED``
    The schema declares ``allOf``. The composer supplies the parent
    (``extends``) and the flattened mixin properties.
``OBJECT``
    Anything else: a plain class built from its own ``properties``.

For composed and plain classes the schema's own ``properties`` are applied
last and override any flattened property of the same name.

Population is on demand and idempotent. When a composition reads a model
that has not been built yet, the builder finishes that model first, passing
the composition chain along so that indirect cycles are reported too.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from specir.diagnostics import DiagnosticCode, Diagnostics
from specir.ir.composer import SchemaComposer
from specir.ir.registry import SchemaRegistry, is_ref
from specir.ir.type_resolver import (
    TypeResolver,
    extract_discriminator,
    extract_validators,
    has_implicit_mapping,
    literal_value,
    one_of_ref_names,
)
from specir.models import IrModel, IrProperty, SchemaShape, SubType

logger = logging.getLogger(__name__)


def classify_schema(schema: dict[str, Any]) -> SchemaShape:
    """Decide which :class:`~specir.models.SchemaShape` *schema* is built as."""
    if schema.get("enum") is not None:
        return SchemaShape.ENUM
    if schema.get("oneOf") and schema.get("properties") is None:
        return SchemaShape.UNION
    if schema.get("allOf"):
        return SchemaShape.COMPOSED
    return SchemaShape.OBJECT


class ModelBuilder:
    """Build every model in a registry.

    Args:
        registry: Registry holding the (sanitized) skeletons.
        resolver: Type resolver bound to the same registry.
        diagnostics: Sink for non-fatal findings.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        resolver: TypeResolver,
        diagnostics: Diagnostics,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._diagnostics = diagnostics
        self._composer = SchemaComposer(
            registry,
            diagnostics,
            build_property=self.create_property,
            ensure_populated=self.populate,
        )
        self._done: set[str] = set()

    def populate_all(self) -> None:
        """Populate every model, in registry order."""
        for key in self._registry:
            self.populate(key)

    def populate(self, key: str, visited: Iterable[str] = ()) -> None:
        """Populate the model registered under *key* unless already done.

        Args:
            key: Registry key of the model.
            visited: Keys on the ``allOf`` chain that led here.

        Raises:
            CircularReferenceError: If the model's ``allOf`` chain loops.
        """
        if key in self._done:
            return
        model = self._registry.get(key)
        if model is None:
            return

        schema = self._registry.schema(key)
        schema_obj = schema if isinstance(schema, dict) else {}
        shape = classify_schema(schema_obj)

        if shape == SchemaShape.ENUM:
            built = self._build_enum(model, schema_obj)
        elif shape == SchemaShape.UNION:
            built = self._build_union(model, schema_obj)
        else:
            built = self._build_class(model, schema_obj, shape, visited)

        self._registry.replace(key, built)
        self._done.add(key)
        logger.debug("Populated model '%s' as %s", built.name, shape.value)

    # ------------------------------------------------------------------ #
    # Shapes
    # ------------------------------------------------------------------ #

    def _build_enum(self, model: IrModel, schema: dict[str, Any]) -> IrModel:
        return model.model_copy(
            update={
                "shape": SchemaShape.ENUM,
                "is_enum": True,
                "enum_values": tuple(literal_value(value) for value in schema["enum"]),
            }
        )

    def _build_union(self, model: IrModel, schema: dict[str, Any]) -> IrModel:
        one_of = schema["oneOf"]
        inline_members = sum(1 for member in one_of if not is_ref(member))
        if inline_members:
            self._diagnostics.warn(
                DiagnosticCode.INLINE_UNION_MEMBER,
                f"Union '{model.key}' has {inline_members} inline oneOf member(s); "
                "only $ref members become sub-types.",
                subject=model.key,
                logger=logger,
            )

        discriminator = extract_discriminator(schema, self._registry)
        if discriminator is None:
            sub_types = tuple(
                SubType(name=name) for name in one_of_ref_names(one_of, self._registry)
            )
            property_name = None
        else:
            self._note_implicit_mapping(schema, model.key)
            sub_types = tuple(
                SubType(name=name, value=value)
                for value, name in discriminator.mapping.items()
            )
            property_name = discriminator.property_name

        return model.model_copy(
            update={
                "shape": SchemaShape.UNION,
                "is_enum": False,
                "properties": (),
                "extends": None,
                "discriminator": property_name,
                "sub_types": sub_types,
            }
        )

    def _build_class(
        self,
        model: IrModel,
        schema: dict[str, Any],
        shape: SchemaShape,
        visited: Iterable[str],
    ) -> IrModel:
        properties: dict[str, IrProperty] = {}
        extends: Optional[str] = None

        if shape == SchemaShape.COMPOSED:
            merged = self._composer.merge(schema["allOf"], model.key, visited)
            extends = merged.primary_ref
            for name, prop in merged.properties.items():
                properties.setdefault(name, prop)

        required = schema.get("required")
        if not isinstance(required, list):
            required = []
        for name, prop_schema in (schema.get("properties") or {}).items():
            # Own declarations win over flattened ones and keep their slot.
            properties[name] = self.create_property(
                name, prop_schema, name in required, model.key
            )

        return model.model_copy(
            update={
                "shape": shape,
                "is_enum": False,
                "properties": tuple(properties.values()),
                "extends": extends,
            }
        )

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    def create_property(
        self, name: str, schema: Any, required: bool, owner: Optional[str] = None
    ) -> IrProperty:
        """Build a property from its schema.

        A property whose schema is a ``oneOf`` with a discriminator gets the
        same discriminator resolution as a whole-model union.
        """
        schema_obj = schema if isinstance(schema, dict) else {}

        discriminator = None
        if schema_obj.get("oneOf"):
            discriminator = extract_discriminator(schema_obj, self._registry)
            if discriminator is not None:
                self._note_implicit_mapping(schema_obj, f"{owner}.{name}" if owner else name)

        return IrProperty(
            name=name,
            type=self._resolver.resolve(schema),
            is_optional=not required,
            is_readonly=bool(schema_obj.get("readOnly", False)),
            description=schema_obj.get("description"),
            validators=extract_validators(schema_obj),
            discriminator=discriminator,
        )

    def _note_implicit_mapping(self, schema: dict[str, Any], subject: str) -> None:
        if has_implicit_mapping(schema):
            self._diagnostics.info(
                DiagnosticCode.IMPLICIT_DISCRIMINATOR,
                f"'{subject}' has no discriminator mapping; "
                "using lower-cased schema names as discriminator values.",
                subject=subject,
                logger=logger,
            )
