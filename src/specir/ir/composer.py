"""Flatten ``allOf`` compositions into a single property set.

OpenAPI ``allOf`` mixes two ideas: inheritance and mixins. The composer
separates them:

* the **first** member, when it is a ``$ref``, becomes the parent class
  (``primary_ref``). Its properties are *not* copied; they arrive through
  ``extends``.
* every later ``$ref`` member is a **mixin**. Its own properties (not the ones
  it inherits) are shallow-copied into the result.
* inline members contribute their declared properties directly, and their
  ``required`` arrays are unioned into one set.

When several sources declare the same property the last one wins, except
for validators, which accumulate and are de-duplicated by signature. Any
property named in the accumulated ``required`` set ends up non-optional
with a ``notEmpty`` validator.

A ``$ref`` back to a schema already on the composition chain is a structural
error and raises :class:`~specir.exceptions.CircularReferenceError`. That is
the only exception a conversion lets escape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from specir.diagnostics import DiagnosticCode, Diagnostics
from specir.exceptions import CircularReferenceError
from specir.ir.registry import SchemaRegistry, is_ref, ref_key
from specir.ir.type_resolver import merge_validators
from specir.models import IrProperty, Validator, ValidatorKind

logger = logging.getLogger(__name__)

PropertyFactory = Callable[[str, Any, bool, Optional[str]], IrProperty]
"""``(name, schema, required, owner_key) -> IrProperty``."""

PopulateHook = Callable[[str, frozenset[str]], None]
"""``(schema_key, visited_keys)``; finishes a model before it is read."""


@dataclass
class MergeResult:
    """Outcome of :meth:`SchemaComposer.merge`."""

    properties: dict[str, IrProperty] = field(default_factory=dict)
    required_fields: set[str] = field(default_factory=set)
    primary_ref: Optional[str] = None
    additional_refs: list[str] = field(default_factory=list)


class SchemaComposer:
    """Merge ``allOf`` member lists.

    Args:
        registry: Read view of the models built so far.
        diagnostics: Sink for missing-reference and collision warnings.
        build_property: Factory turning an inline property schema into an
            :class:`~specir.models.IrProperty`.
        ensure_populated: Optional hook called before a referenced model is
            read, with the keys already on the composition chain. The model
            builder uses it to populate mixins on demand.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        diagnostics: Diagnostics,
        build_property: PropertyFactory,
        ensure_populated: Optional[PopulateHook] = None,
    ) -> None:
        self._registry = registry
        self._diagnostics = diagnostics
        self._build_property = build_property
        self._ensure_populated = ensure_populated

    def merge(
        self,
        all_of: list[Any],
        current_key: str,
        visited: Iterable[str] = (),
    ) -> MergeResult:
        """Merge the members of an ``allOf`` list declared by *current_key*.

        Args:
            all_of: The ``allOf`` members, in declaration order.
            current_key: Registry key of the schema being composed.
            visited: Keys already on the composition chain above
                *current_key*.

        Raises:
            CircularReferenceError: If a ``$ref`` member points at a key on
                the chain (including *current_key* itself).
        """
        chain = frozenset(visited) | {current_key}
        result = MergeResult()

        for index, member in enumerate(all_of):
            if is_ref(member):
                self._merge_ref(member["$ref"], index, chain, current_key, result)
            elif isinstance(member, dict):
                self._merge_inline(member, current_key, result)

        self._apply_required(result)
        return result

    def _merge_ref(
        self,
        ref: str,
        index: int,
        chain: frozenset[str],
        current_key: str,
        result: MergeResult,
    ) -> None:
        key = ref_key(ref)
        if key in chain:
            raise CircularReferenceError(current_key, key)

        if key not in self._registry:
            self._diagnostics.warn(
                DiagnosticCode.MISSING_REFERENCE,
                f"Referenced model '{key}' not found while composing '{current_key}'.",
                subject=current_key,
                logger=logger,
            )
            return

        if self._ensure_populated is not None:
            self._ensure_populated(key, chain)
        model = self._registry.get(key)
        if model is None:
            return

        if index == 0:
            result.primary_ref = model.name
            return

        result.additional_refs.append(model.name)
        self._merge_properties(result, model.properties, model.name, current_key)

    def _merge_inline(
        self, schema: dict[str, Any], current_key: str, result: MergeResult
    ) -> None:
        required = schema.get("required")
        if not isinstance(required, list):
            required = []
        properties = [
            self._build_property(name, prop_schema, name in required, current_key)
            for name, prop_schema in (schema.get("properties") or {}).items()
        ]
        self._merge_properties(result, properties, "inline schema", current_key)
        result.required_fields.update(required)

    def _merge_properties(
        self,
        result: MergeResult,
        properties: Iterable[IrProperty],
        source: str,
        current_key: str,
    ) -> None:
        for prop in properties:
            existing = result.properties.get(prop.name)
            if existing is not None:
                self._diagnostics.warn(
                    DiagnosticCode.PROPERTY_COLLISION,
                    f"Property collision: '{prop.name}' in '{current_key}' "
                    f"is being overwritten by '{source}'.",
                    subject=current_key,
                    logger=logger,
                )
            validators = merge_validators(
                existing.validators if existing is not None else (), prop.validators
            )
            result.properties[prop.name] = prop.model_copy(update={"validators": validators})

    @staticmethod
    def _apply_required(result: MergeResult) -> None:
        for name, prop in list(result.properties.items()):
            if name not in result.required_fields:
                continue
            validators = prop.validators
            if not any(v.kind == ValidatorKind.NOT_EMPTY for v in validators):
                validators = validators + (Validator(kind=ValidatorKind.NOT_EMPTY),)
            result.properties[name] = prop.model_copy(
                update={"is_optional": False, "validators": validators}
            )
