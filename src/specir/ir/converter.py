"""Run the conversion passes over an OpenAPI document.

The passes run in a fixed order, each reading the result of the previous
one:

1. :meth:`SchemaRegistry.discover` creates a skeleton for every component
   schema.
2. :func:`sanitize_model_names` renames skeletons whose display name is
   reserved, before any type refers to them.
3. :class:`ModelBuilder` populates every model.
4. :class:`ServiceBuilder` groups path operations into services.

All state lives in the :class:`OpenApiConverter` instance, so a converter
converts one document once.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.diagnostics import Diagnostics
from specir.ir.model_builder import ModelBuilder
from specir.ir.registry import SchemaRegistry
from specir.ir.sanitizer import sanitize_model_names
from specir.ir.service_builder import ServiceBuilder
from specir.ir.type_resolver import TypeResolver
from specir.models import ConverterConfig, IrDefinition, IrInfo

logger = logging.getLogger(__name__)


class OpenApiConverter:
    """Convert a loaded OpenAPI 3.x document into an :class:`IrDefinition`.

    Args:
        document: The OpenAPI document as a plain dict.
        config: Conversion settings; defaults apply when omitted.
        diagnostics: Collector for non-fatal findings. A fresh one is created
            when omitted and is available as :attr:`diagnostics`.
    """

    def __init__(
        self,
        document: dict[str, Any],
        config: Optional[ConverterConfig] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> None:
        self.document = document
        self.config = config or ConverterConfig()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def convert(self) -> IrDefinition:
        """Run every pass and return the IR.

        Raises:
            CircularReferenceError: If an ``allOf`` chain loops back on itself.
        """
        components = self.document.get("components") or {}
        registry = SchemaRegistry.discover(components.get("schemas") or {})
        logger.debug("Discovered %d schemas", len(registry))

        sanitize_model_names(registry, self.config, self.diagnostics)

        resolver = TypeResolver(registry)
        ModelBuilder(registry, resolver, self.diagnostics).populate_all()

        services = ServiceBuilder(
            self.document, resolver, self.config, self.diagnostics
        ).build()
        logger.debug(
            "Built %d services with %d operations",
            len(services),
            sum(len(service.operations) for service in services),
        )

        info = self.document.get("info") or {}
        version = info.get("version")
        return IrDefinition(
            info=IrInfo(
                title=info.get("title"),
                version=str(version) if version is not None else None,
            ),
            models=tuple(registry.models()),
            services=tuple(services),
        )


def convert(
    document: dict[str, Any],
    config: Optional[ConverterConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> IrDefinition:
    """Convert *document* into an :class:`IrDefinition`.

    Shorthand for ``OpenApiConverter(document, config, diagnostics).convert()``.
    Pass a :class:`~specir.diagnostics.Diagnostics` instance to inspect the
    warnings raised along the way.
    """
    return OpenApiConverter(document, config, diagnostics).convert()
