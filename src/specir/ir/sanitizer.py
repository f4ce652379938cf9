"""Rename models whose display name is a reserved identifier."""

from __future__ import annotations

import logging

from specir.diagnostics import DiagnosticCode, Diagnostics
from specir.ir.registry import SchemaRegistry
from specir.models import ConverterConfig
from specir.naming import rename_if_reserved

logger = logging.getLogger(__name__)


def sanitize_model_names(
    registry: SchemaRegistry, config: ConverterConfig, diagnostics: Diagnostics
) -> list[str]:
    """Suffix every reserved display name in *registry*.

    Only the display name changes; the registry key stays the original schema
    key. Each rename is recorded as a ``reserved-name`` warning.

    Returns:
        The keys of the renamed models, in registry order.
    """
    renamed: list[str] = []
    for key, model in registry.items():
        new_name = rename_if_reserved(
            model.name, config.reserved_suffix, config.extra_reserved_words
        )
        if new_name == model.name:
            continue
        diagnostics.warn(
            DiagnosticCode.RESERVED_NAME,
            f"Model name '{model.name}' is a reserved word. "
            f"Renaming to '{new_name}' (schema key: {key}).",
            subject=key,
            logger=logger,
        )
        registry.replace(key, model.model_copy(update={"name": new_name}))
        renamed.append(key)
    return renamed
