"""Schema registry: the arena of :class:`~specir.models.IrModel` records.

Every component schema gets exactly one record, stored under its **original**
schema key (``"Record"``, ``"user_profile"``). Cross references are always
resolved through that key, never through the display name, so renaming a
model during sanitization can not break a ``$ref``.

Records are frozen; passes update a model by storing a modified copy under
the same key with :meth:`SchemaRegistry.replace`. Iteration follows the
declaration order of ``components.schemas``.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from specir.models import IrModel
from specir.naming import to_kebab_case, to_pascal_case


def ref_key(ref: str) -> str:
    """Return the last segment of a ``$ref`` pointer, JSON-Pointer unescaped.

    ``"#/components/schemas/Pet"`` -> ``"Pet"``.
    """
    segment = ref.rsplit("/", 1)[-1]
    return segment.replace("~1", "/").replace("~0", "~")


def is_ref(node: Any) -> bool:
    """True if *node* is a Reference Object."""
    return isinstance(node, dict) and "$ref" in node


class SchemaRegistry:
    """Mapping of original schema key to the current model record."""

    def __init__(self, schemas: Optional[dict[str, Any]] = None) -> None:
        self._schemas: dict[str, Any] = dict(schemas or {})
        self._models: dict[str, IrModel] = {}

    @classmethod
    def discover(cls, schemas: Optional[dict[str, Any]]) -> SchemaRegistry:
        """Create a skeleton model for every schema in *schemas*.

        The skeleton carries the PascalCase display name, the kebab-case file
        name, the enum flag and the description. Everything else is filled in
        by :class:`~specir.ir.model_builder.ModelBuilder`.
        """
        registry = cls(schemas)
        for key, schema in registry._schemas.items():
            schema_obj = schema if isinstance(schema, dict) else {}
            registry._models[key] = IrModel(
                key=key,
                name=to_pascal_case(key),
                file_name=to_kebab_case(key),
                is_enum="enum" in schema_obj,
                description=schema_obj.get("description"),
            )
        return registry

    def get(self, key: str) -> Optional[IrModel]:
        return self._models.get(key)

    def schema(self, key: str) -> Any:
        """The raw schema declared under *key* (``None`` if absent)."""
        return self._schemas.get(key)

    def replace(self, key: str, model: IrModel) -> None:
        """Store *model* as the record for *key*, which must already exist."""
        if key not in self._models:
            raise KeyError(key)
        self._models[key] = model

    def display_name(self, key: str) -> str:
        """Display name of *key*, or *key* itself when it is not registered."""
        model = self._models.get(key)
        return model.name if model is not None else key

    def name_for_ref(self, ref: str) -> str:
        """Display name of the schema a ``$ref`` string points at."""
        return self.display_name(ref_key(ref))

    def keys(self) -> list[str]:
        return list(self._models)

    def models(self) -> list[IrModel]:
        return list(self._models.values())

    def items(self) -> list[tuple[str, IrModel]]:
        return list(self._models.items())

    def __contains__(self, key: object) -> bool:
        return key in self._models

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._models))

    def __len__(self) -> int:
        return len(self._models)
