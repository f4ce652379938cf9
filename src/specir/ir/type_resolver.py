"""Map OpenAPI schema nodes to IR types, validators and discriminators.

:class:`TypeResolver` turns a single schema node (inline schema or Reference
Object) into an :data:`~specir.models.IrType`. It reads the registry only to
translate ``$ref`` keys into current display names and never mutates it, so
the same node resolves to the same type for the same registry snapshot.

Resolution rules, in order of precedence:

* missing node -> primitive ``any``
* ``$ref`` -> the referenced model's display name (raw key if unknown)
* ``allOf`` -> single member unwrapped, ``$ref`` members intersected, else the
  first typed member
* ``oneOf`` -> union of the resolved members (a single member collapses)
* ``array`` -> element type flagged ``is_array``
* ``object`` with ``additionalProperties`` -> dictionary, otherwise ``any``
* ``string``/``number``/``integer``/``boolean`` -> primitive names, with
  ``date``/``binary`` for the matching string formats and literal unions for
  anonymous enums

The module also hosts :func:`extract_validators` and
:func:`extract_discriminator`, which read the remaining facets of a property
schema.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from specir.ir.registry import SchemaRegistry, is_ref
from specir.models import (
    Composition,
    CompositeType,
    IrType,
    PropertyDiscriminator,
    SimpleType,
    Validator,
    ValidatorKind,
)

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
ANY = "any"
VOID = "void"
DATE = "date"
BINARY = "binary"

ANY_TYPE = SimpleType(name=ANY)
VOID_TYPE = SimpleType(name=VOID)

_PRIMITIVE_SCHEMA_TYPES = frozenset({"string", "number", "integer", "boolean"})

_FORMAT_VALIDATORS: dict[str, ValidatorKind] = {
    "email": ValidatorKind.EMAIL,
    "uuid": ValidatorKind.UUID,
    "date": ValidatorKind.DATE,
    "date-time": ValidatorKind.DATE,
    "uri": ValidatorKind.URL,
    "url": ValidatorKind.URL,
}


def schema_type_of(schema: dict[str, Any]) -> Optional[str]:
    """Return the declared ``type`` of *schema*.

    OpenAPI 3.1 allows ``type`` to be a list (``["string", "null"]``); the
    first non-null entry wins.
    """
    type_value = schema.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return non_null[0] if non_null else None
    return type_value


def literal_value(value: Any) -> str:
    """Render an enum value as text: strings as-is, everything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


class TypeResolver:
    """Resolve schema nodes against a :class:`~specir.ir.registry.SchemaRegistry`."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry

    def resolve(self, node: Any) -> IrType:
        """Return the IR type of *node*.

        Args:
            node: A schema dict, a Reference Object, or ``None``.

        Returns:
            A :class:`~specir.models.SimpleType` or
            :class:`~specir.models.CompositeType`.
        """
        if not node or not isinstance(node, dict):
            return ANY_TYPE

        if is_ref(node):
            return self._reference(node["$ref"])

        all_of = node.get("allOf")
        if all_of:
            return self._resolve_all_of(all_of)

        one_of = node.get("oneOf")
        if one_of:
            return self._resolve_one_of(one_of)

        schema_type = schema_type_of(node)
        if schema_type == "array":
            return self._resolve_array(node)
        if schema_type == "object":
            return self._resolve_object(node)
        if schema_type in _PRIMITIVE_SCHEMA_TYPES:
            return self._resolve_primitive(node, schema_type)

        return ANY_TYPE

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    def _reference(self, ref: str) -> SimpleType:
        # Display names follow renames made by the sanitizer.
        return SimpleType(name=self._registry.name_for_ref(ref), is_primitive=False)

    def _resolve_all_of(self, members: list[Any]) -> IrType:
        if len(members) == 1:
            return self.resolve(members[0])

        refs = [self._reference(member["$ref"]) for member in members if is_ref(member)]
        if len(refs) == 1:
            return refs[0]
        if refs:
            return CompositeType(members=tuple(refs), composition=Composition.INTERSECTION)

        for member in members:
            if isinstance(member, dict) and "type" in member:
                return self.resolve(member)

        return ANY_TYPE

    def _resolve_one_of(self, members: list[Any]) -> IrType:
        types = [self.resolve(member) for member in members]
        if len(types) == 1:
            return types[0]
        return CompositeType(members=tuple(types), composition=Composition.UNION)

    def _resolve_array(self, schema: dict[str, Any]) -> IrType:
        items = schema.get("items")
        if not items:
            return SimpleType(name=ANY, is_array=True)
        return self.resolve(items).model_copy(update={"is_array": True})

    def _resolve_object(self, schema: dict[str, Any]) -> IrType:
        additional = schema.get("additionalProperties")
        if additional is True:
            return SimpleType(name=ANY, is_dict=True, is_primitive=False)
        if isinstance(additional, dict):
            value_type = self.resolve(additional)
            if isinstance(value_type, SimpleType):
                return value_type.model_copy(update={"is_dict": True, "is_primitive": False})
            return value_type.model_copy(update={"is_dict": True})
        return ANY_TYPE

    def _resolve_primitive(self, schema: dict[str, Any], schema_type: str) -> IrType:
        if schema_type == "string":
            enum_values = schema.get("enum")
            if enum_values is not None:
                title = schema.get("title")
                if title:
                    # A titled enum names a model of its own.
                    return SimpleType(
                        name=self._registry.display_name(title), is_primitive=False
                    )
                literals = tuple(
                    SimpleType(name=literal_value(value), is_literal=True)
                    for value in enum_values
                )
                return CompositeType(members=literals, composition=Composition.UNION)

            fmt = schema.get("format")
            if fmt in ("date", "date-time"):
                return SimpleType(name=DATE, is_primitive=False)
            if fmt == "binary":
                return SimpleType(name=BINARY, is_primitive=False)
            return SimpleType(name=STRING)

        if schema_type in ("number", "integer"):
            return SimpleType(name=NUMBER)

        return SimpleType(name=BOOLEAN)


# ---------------------------------------------------------------------- #
# Facet extractors
# ---------------------------------------------------------------------- #


def extract_validators(schema: Any) -> tuple[Validator, ...]:
    """Read the validation facets of a property schema.

    Length, pattern and range constraints carry their value as ``param``;
    known string formats map to format validators; ``nullable: false`` adds
    ``notEmpty``. Reference Objects carry no facets.
    """
    if not isinstance(schema, dict) or is_ref(schema):
        return ()

    validators: list[Validator] = []
    if schema.get("minLength") is not None:
        validators.append(Validator(kind=ValidatorKind.MIN_LENGTH, param=schema["minLength"]))
    if schema.get("maxLength") is not None:
        validators.append(Validator(kind=ValidatorKind.MAX_LENGTH, param=schema["maxLength"]))
    if schema.get("pattern"):
        validators.append(Validator(kind=ValidatorKind.PATTERN, param=schema["pattern"]))
    if schema.get("minimum") is not None:
        validators.append(Validator(kind=ValidatorKind.MIN, param=schema["minimum"]))
    if schema.get("maximum") is not None:
        validators.append(Validator(kind=ValidatorKind.MAX, param=schema["maximum"]))

    fmt = schema.get("format")
    if fmt in _FORMAT_VALIDATORS:
        validators.append(Validator(kind=_FORMAT_VALIDATORS[fmt]))

    if schema.get("nullable") is False:
        validators.append(Validator(kind=ValidatorKind.NOT_EMPTY))

    return tuple(validators)


def merge_validators(*groups: tuple[Validator, ...]) -> tuple[Validator, ...]:
    """Concatenate validator groups, dropping repeats of the same ``(kind, param)``."""
    seen: set[tuple[str, str]] = set()
    merged: list[Validator] = []
    for group in groups:
        for validator in group:
            if validator.signature in seen:
                continue
            seen.add(validator.signature)
            merged.append(validator)
    return tuple(merged)


def one_of_ref_names(members: list[Any], registry: SchemaRegistry) -> list[str]:
    """Display names of the ``$ref`` members of a ``oneOf`` list, in order."""
    return [registry.name_for_ref(member["$ref"]) for member in members if is_ref(member)]


def has_implicit_mapping(schema: dict[str, Any]) -> bool:
    """True when *schema* has a discriminator property but no explicit ``mapping``."""
    discriminator = schema.get("discriminator")
    return (
        isinstance(discriminator, dict)
        and bool(discriminator.get("propertyName"))
        and not discriminator.get("mapping")
    )


def extract_discriminator(
    schema: dict[str, Any], registry: SchemaRegistry
) -> Optional[PropertyDiscriminator]:
    """Build the discriminator configuration of a ``oneOf`` schema.

    An explicit ``mapping`` is used when present, its targets translated to
    display names. Otherwise every ``$ref`` member of ``oneOf`` is mapped from
    its lower-cased display name. That implicit convention is a heuristic:
    providers are free to use other values, and :func:`has_implicit_mapping`
    lets callers report when it was applied.

    Returns:
        ``None`` when the schema declares no ``discriminator.propertyName``.
    """
    discriminator = schema.get("discriminator")
    if not isinstance(discriminator, dict) or not discriminator.get("propertyName"):
        return None

    mapping: dict[str, str] = {}
    explicit = discriminator.get("mapping")
    if explicit:
        for value, target in explicit.items():
            mapping[str(value)] = registry.name_for_ref(str(target))
    else:
        for name in one_of_ref_names(schema.get("oneOf") or [], registry):
            mapping[name.lower()] = name

    return PropertyDiscriminator(property_name=discriminator["propertyName"], mapping=mapping)
