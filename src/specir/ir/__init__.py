"""OpenAPI to IR conversion passes.

Sub-modules, leaves first:

* :mod:`~specir.ir.registry` -- arena of model records keyed by schema key.
* :mod:`~specir.ir.sanitizer` -- reserved-name renaming.
* :mod:`~specir.ir.type_resolver` -- schema node to IR type, validators,
  discriminators.
* :mod:`~specir.ir.composer` -- ``allOf`` flattening and cycle detection.
* :mod:`~specir.ir.model_builder` -- per-schema population.
* :mod:`~specir.ir.service_builder` -- paths to services and operations.
* :mod:`~specir.ir.converter` -- the pass pipeline.
"""

from specir.ir.converter import OpenApiConverter, convert

__all__ = ["OpenApiConverter", "convert"]
