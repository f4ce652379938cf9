"""Canonical Pydantic models shared across all specir modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- settings that steer a conversion:
    :class:`ConverterConfig`.

**IR models** -- the intermediate representation produced by
:func:`~specir.ir.converter.convert` and handed to a code-emission layer:
    :class:`SimpleType`, :class:`CompositeType` (together :data:`IrType`),
    :class:`Validator`, :class:`PropertyDiscriminator`, :class:`IrProperty`,
    :class:`SubType`, :class:`IrModel`, :class:`IrParameter`,
    :class:`IrOperation`, :class:`IrService`, :class:`IrInfo`, and
    :class:`IrDefinition`.

Every IR model is frozen. Passes that need to change a record build a new one
with ``model_copy(update=...)`` and store it back under the same key, so a
value handed out once never changes underneath its holder. Everything
serialises to plain JSON with ``model_dump(mode="json")``.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# --- Config ---


class ConverterConfig(BaseModel):
    """Settings for a single conversion.

    Resolved by :func:`~specir.config.resolve_config` from CLI flags,
    ``SPECIR_*`` environment variables and the project ``specir.json``.
    The defaults reproduce the behaviour of a conversion without any
    configuration.
    """

    reserved_suffix: str = Field(
        default="_",
        min_length=1,
        description="Suffix appended to model names that are reserved words",
    )
    extra_reserved_words: list[str] = Field(
        default_factory=list,
        description="Additional identifiers treated as reserved (case-insensitive)",
    )
    default_tag: str = Field(
        default="Default", description="Tag used for operations that declare none"
    )
    service_suffix: str = Field(
        default="Service", description="Suffix appended to every service name"
    )


# --- Types ---


class Composition(str, enum.Enum):
    """How the members of a :class:`CompositeType` combine."""

    UNION = "union"
    INTERSECTION = "intersection"


class SimpleType(BaseModel):
    """A single named type.

    ``name`` is a primitive name (see :mod:`specir.ir.type_resolver`), the
    display name of a model, or, when ``is_literal`` is set, a literal enum
    value. ``is_dict`` marks a string-keyed dictionary whose values have this
    type.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["simple"] = "simple"
    name: str
    is_array: bool = False
    is_primitive: bool = True
    is_dict: bool = False
    is_literal: bool = False


class CompositeType(BaseModel):
    """An ordered union or intersection of member types.

    A composite is primitive only if it is not a dictionary and every member
    is primitive, so ``is_primitive`` is computed rather than stored.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["composite"] = "composite"
    members: tuple[IrType, ...]
    composition: Composition
    is_array: bool = False
    is_dict: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_primitive(self) -> bool:
        return not self.is_dict and all(member.is_primitive for member in self.members)


IrType = Annotated[Union[SimpleType, CompositeType], Field(discriminator="kind")]
"""Sum type of :class:`SimpleType` and :class:`CompositeType`, tagged by ``kind``."""

CompositeType.model_rebuild()


# --- Validators ---


class ValidatorKind(str, enum.Enum):
    """Abstract validation facts a downstream emitter can wire to its own library."""

    EMAIL = "email"
    UUID = "uuid"
    DATE = "date"
    URL = "url"
    MIN = "min"
    MAX = "max"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    PATTERN = "pattern"
    NOT_EMPTY = "notEmpty"


class Validator(BaseModel):
    """A validation rule attached to a property, e.g. ``min`` with ``param=0``."""

    model_config = ConfigDict(frozen=True)

    kind: ValidatorKind
    param: Optional[Union[int, float, str]] = None

    @property
    def signature(self) -> tuple[str, str]:
        """Identity used to de-duplicate validators (``("min", "5")``)."""
        return (self.kind.value, "" if self.param is None else repr(self.param))


# --- Models ---


class SchemaShape(str, enum.Enum):
    """Classification made once per component schema.

    Decides how :class:`~specir.ir.model_builder.ModelBuilder` populates it.
    """

    ENUM = "enum"
    UNION = "union"
    COMPOSED = "composed"
    OBJECT = "object"


class PropertyDiscriminator(BaseModel):
    """Discriminator of a polymorphic property: value -> model display name."""

    model_config = ConfigDict(frozen=True)

    property_name: str
    mapping: dict[str, str] = Field(default_factory=dict)


class IrProperty(BaseModel):
    """A single field of an :class:`IrModel`."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: IrType
    is_optional: bool = True
    is_readonly: bool = False
    description: Optional[str] = None
    validators: tuple[Validator, ...] = ()
    discriminator: Optional[PropertyDiscriminator] = None


class SubType(BaseModel):
    """One member of a polymorphic union.

    ``value`` is the discriminator value selecting it, or ``None`` when the
    union has no discriminator.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: Optional[str] = None


class IrModel(BaseModel):
    """A data model (class, enum or union alias) derived from one component schema.

    ``key`` is the original schema key and is what every cross reference is
    resolved against. ``name`` is the display name and may carry a suffix when
    the derived name is a reserved word (``Record`` -> ``Record_``), while
    ``file_name`` always follows the key.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    file_name: str
    shape: SchemaShape = SchemaShape.OBJECT
    is_enum: bool = False
    enum_values: Optional[tuple[str, ...]] = None
    properties: tuple[IrProperty, ...] = ()
    description: Optional[str] = None
    extends: Optional[str] = None
    discriminator: Optional[str] = None
    sub_types: tuple[SubType, ...] = ()

    def get_property(self, name: str) -> Optional[IrProperty]:
        """Return the property called *name*, or ``None``."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


# --- Services ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods turned into service operations, in processing order."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ParameterLocation(str, enum.Enum):
    """Where an operation parameter travels; ``body`` is the synthetic request body."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


class ResponseKind(str, enum.Enum):
    """Transport hint for how a response payload should be read."""

    TEXT = "text"
    BINARY = "binary"
    JSON = "json"


class IrParameter(BaseModel):
    """A single argument of an :class:`IrOperation`."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: IrType
    location: ParameterLocation
    is_required: bool = False
    description: Optional[str] = None


class IrOperation(BaseModel):
    """One callable variant of an OpenAPI operation.

    An operation whose success response offers several content types yields
    one :class:`IrOperation` per content type; they share ``operation_id`` and
    differ in ``method_name``, ``accept_header`` and ``response_kind``.
    """

    model_config = ConfigDict(frozen=True)

    operation_id: str
    method_name: str
    path: str
    method: HTTPMethod
    parameters: tuple[IrParameter, ...] = ()
    return_type: IrType
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    request_content_type: Optional[str] = None
    accept_header: Optional[str] = None
    response_kind: Optional[ResponseKind] = None


class IrService(BaseModel):
    """Operations sharing a tag, keyed by ``"<operationId>:<methodName>"``."""

    model_config = ConfigDict(frozen=True)

    name: str
    operations: dict[str, IrOperation] = Field(default_factory=dict)

    def get_operation(self, method_name: str) -> Optional[IrOperation]:
        """Return the operation exposed under *method_name*, or ``None``."""
        for operation in self.operations.values():
            if operation.method_name == method_name:
                return operation
        return None


# --- Definition ---


class IrInfo(BaseModel):
    """API metadata copied from the document's *Info Object*."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    version: Optional[str] = None


class IrDefinition(BaseModel):
    """Complete result of a conversion.

    ``models`` follow the declaration order of ``components.schemas`` and
    ``services`` follow the order in which their tags were first seen.
    """

    model_config = ConfigDict(frozen=True)

    info: IrInfo = Field(default_factory=IrInfo)
    models: tuple[IrModel, ...] = ()
    services: tuple[IrService, ...] = ()

    def get_model(self, name: str) -> Optional[IrModel]:
        """Return the model with display name *name*, or ``None``."""
        for model in self.models:
            if model.name == name:
                return model
        return None

    def get_service(self, name: str) -> Optional[IrService]:
        """Return the service called *name*, or ``None``."""
        for service in self.services:
            if service.name == name:
                return service
        return None
