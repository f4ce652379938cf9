"""Group path operations into services.

Walks every path item and every supported HTTP method, in document order,
and turns each OpenAPI operation into one or more
:class:`~specir.models.IrOperation` variants:

* operations are grouped by tag (``Default`` when untagged); an operation
  with several tags is built once and registered in each tag's service;
* the success response is the first ``2xx`` entry, else ``default``; an
  operation with neither is skipped;
* a success response without content yields a single ``void`` variant, one
  with content yields a variant per content type, suffixed with a label
  derived from the content type (none for ``application/json``);
* path-level and operation-level parameters are merged, with operation-level
  entries overriding path-level ones that share ``name`` and ``in``;
  ``$ref`` parameters, request bodies and responses are followed through
  their ``components`` tables;
* method names that are already taken in a service get ``_2``, ``_3``, ...

Every skipped unit is recorded as a warning diagnostic.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.diagnostics import DiagnosticCode, Diagnostics
from specir.ir.registry import is_ref, ref_key
from specir.ir.type_resolver import VOID_TYPE, TypeResolver
from specir.models import (
    ConverterConfig,
    HTTPMethod,
    IrOperation,
    IrParameter,
    IrService,
    ParameterLocation,
    ResponseKind,
)
from specir.naming import generate_operation_id, to_camel_case, to_pascal_case

logger = logging.getLogger(__name__)

_CONTENT_TYPE_LABELS: dict[str, str] = {
    "application/xml": "Xml",
    "application/x-xml": "Xml",
    "text/xml": "Xml",
    "application/octet-stream": "Binary",
    "text/plain": "Text",
    "text/html": "Html",
}

_BINARY_CONTENT_TYPES = frozenset({"application/pdf", "application/octet-stream"})

# Locations an OpenAPI 3 parameter object may declare that we turn into arguments.
_PARAMETER_LOCATIONS = frozenset(
    {ParameterLocation.PATH, ParameterLocation.QUERY, ParameterLocation.HEADER}
)


def _base_content_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def content_type_label(content_type: str) -> str:
    """Method-name suffix for a response content type.

    ``application/json`` -> ``""``, ``application/pdf`` -> ``"Pdf"``,
    ``image/png`` -> ``"ImagePng"``, ``*/*`` -> ``"Any"``.
    """
    base = _base_content_type(content_type)
    if base == "*/*":
        return "Any"
    if base == "application/json":
        return ""
    if base in _CONTENT_TYPE_LABELS:
        return _CONTENT_TYPE_LABELS[base]

    main_type, _, subtype = base.partition("/")
    if main_type == "image":
        return "Image" if subtype in ("", "*") else f"Image{to_pascal_case(subtype)}"
    return to_pascal_case(subtype) or "Unknown"


def response_kind_for(content_type: str) -> Optional[ResponseKind]:
    """Transport hint for a response content type, ``None`` when unknown."""
    base = _base_content_type(content_type)
    if base.startswith("text/"):
        return ResponseKind.TEXT
    if base.startswith("image/") or base in _BINARY_CONTENT_TYPES or "binary" in base:
        return ResponseKind.BINARY
    if base == "application/json" or base.endswith("+json"):
        return ResponseKind.JSON
    return None


def select_success_response(responses: dict[Any, Any]) -> Optional[tuple[str, Any]]:
    """Return ``(status_code, response)`` for the first ``2xx``, else ``default``."""
    for status_code, response in responses.items():
        if str(status_code).startswith("2"):
            return str(status_code), response
    if "default" in responses:
        return "default", responses["default"]
    return None


def merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameter objects.

    Operation-level parameters override path-level parameters with the same
    ``name`` and ``in``. Path-level survivors come first.
    """
    op_keys = {(param.get("name", ""), param.get("in", "")) for param in op_params}
    merged = [
        param
        for param in path_params
        if (param.get("name", ""), param.get("in", "")) not in op_keys
    ]
    merged.extend(op_params)
    return merged


class ServiceBuilder:
    """Extract :class:`~specir.models.IrService` objects from ``paths``.

    Args:
        document: The OpenAPI document.
        resolver: Type resolver bound to the populated, sanitized registry.
        config: Default tag and service suffix.
        diagnostics: Sink for skipped units and collisions.
    """

    def __init__(
        self,
        document: dict[str, Any],
        resolver: TypeResolver,
        config: ConverterConfig,
        diagnostics: Diagnostics,
    ) -> None:
        self._document = document
        self._resolver = resolver
        self._config = config
        self._diagnostics = diagnostics

        components = document.get("components") or {}
        self._parameters: dict[str, Any] = components.get("parameters") or {}
        self._request_bodies: dict[str, Any] = components.get("requestBodies") or {}
        self._responses: dict[str, Any] = components.get("responses") or {}

        self._services: dict[str, dict[str, IrOperation]] = {}

    def build(self) -> list[IrService]:
        """Process every path and return the services in first-seen order."""
        self._services = {}
        for path, path_item in (self._document.get("paths") or {}).items():
            if not isinstance(path_item, dict):
                continue
            for method in HTTPMethod:
                operation = path_item.get(method.value.lower())
                if not isinstance(operation, dict):
                    continue
                self._process_operation(str(path), method, operation, path_item)

        return [
            IrService(name=name, operations=operations)
            for name, operations in self._services.items()
        ]

    def _process_operation(
        self,
        path: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        path_item: dict[str, Any],
    ) -> None:
        tags = operation.get("tags") or [self._config.default_tag]
        service_names = list(
            dict.fromkeys(f"{to_pascal_case(str(tag))}{self._config.service_suffix}" for tag in tags)
        )
        for name in service_names:
            self._services.setdefault(name, {})

        operation_id = operation.get("operationId") or generate_operation_id(method.value, path)
        variants = self._build_variants(path, method, operation, path_item, operation_id)

        for name in service_names:
            for variant in variants:
                self._add_operation(name, variant)

    # ------------------------------------------------------------------ #
    # Variants
    # ------------------------------------------------------------------ #

    def _build_variants(
        self,
        path: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        path_item: dict[str, Any],
        operation_id: str,
    ) -> list[IrOperation]:
        selected = select_success_response(operation.get("responses") or {})
        if selected is None:
            self._diagnostics.warn(
                DiagnosticCode.MISSING_SUCCESS_RESPONSE,
                f"Operation '{operation_id}' ({method.value} {path}) has no 2xx or "
                "default response; skipping.",
                subject=operation_id,
                logger=logger,
            )
            return []

        status_code, raw_response = selected
        response = self._follow_ref(raw_response, self._responses)
        if response is None:
            self._diagnostics.warn(
                DiagnosticCode.UNRESOLVED_RESPONSE,
                f"Cannot resolve response '{status_code}' of operation '{operation_id}'; skipping.",
                subject=operation_id,
                logger=logger,
            )
            return []

        parameters, request_content_type = self._extract_parameters(
            operation, path_item, operation_id
        )
        base_name = to_camel_case(operation_id)
        common: dict[str, Any] = {
            "operation_id": operation_id,
            "path": path,
            "method": method,
            "parameters": tuple(parameters),
            "summary": operation.get("summary"),
            "description": operation.get("description"),
            "deprecated": bool(operation.get("deprecated", False)),
            "request_content_type": request_content_type,
        }

        content = response.get("content") or {}
        if not content:
            return [IrOperation(method_name=base_name, return_type=VOID_TYPE, **common)]

        variants: list[IrOperation] = []
        for content_type, media_type in content.items():
            schema = media_type.get("schema") if isinstance(media_type, dict) else None
            if schema is None:
                self._diagnostics.warn(
                    DiagnosticCode.MISSING_RESPONSE_SCHEMA,
                    f"Response '{status_code}' of operation '{operation_id}' declares "
                    f"'{content_type}' without a schema; skipping that content type.",
                    subject=operation_id,
                    logger=logger,
                )
                continue

            label = content_type_label(content_type)
            variants.append(
                IrOperation(
                    method_name=f"{base_name}_{label}" if label else base_name,
                    return_type=self._resolver.resolve(schema),
                    accept_header=content_type,
                    response_kind=response_kind_for(content_type),
                    **common,
                )
            )
        return variants

    # ------------------------------------------------------------------ #
    # Parameters and request body
    # ------------------------------------------------------------------ #

    def _extract_parameters(
        self,
        operation: dict[str, Any],
        path_item: dict[str, Any],
        operation_id: str,
    ) -> tuple[list[IrParameter], Optional[str]]:
        merged = merge_parameters(
            self._resolve_parameters(path_item.get("parameters") or [], operation_id),
            self._resolve_parameters(operation.get("parameters") or [], operation_id),
        )

        parameters: list[IrParameter] = []
        for param in merged:
            location_str = param.get("in")
            try:
                location = ParameterLocation(location_str)
            except ValueError:
                location = None
            if location not in _PARAMETER_LOCATIONS:
                self._diagnostics.warn(
                    DiagnosticCode.UNSUPPORTED_PARAMETER,
                    f"Parameter '{param.get('name')}' of operation '{operation_id}' "
                    f"uses unsupported location '{location_str}'; skipping.",
                    subject=operation_id,
                    logger=logger,
                )
                continue

            parameters.append(
                IrParameter(
                    name=str(param.get("name", "")),
                    type=self._resolver.resolve(param.get("schema")),
                    location=location,
                    # Path parameters are always required.
                    is_required=bool(param.get("required", False))
                    or location == ParameterLocation.PATH,
                    description=param.get("description"),
                )
            )

        request_content_type = None
        if operation.get("requestBody") is not None:
            request_content_type = self._extract_request_body(
                operation["requestBody"], operation_id, parameters
            )
        return parameters, request_content_type

    def _resolve_parameters(
        self, params: list[Any], operation_id: str
    ) -> list[dict[str, Any]]:
        resolved: list[dict[str, Any]] = []
        for param in params:
            target = self._follow_ref(param, self._parameters)
            if target is None:
                ref = param.get("$ref") if isinstance(param, dict) else param
                self._diagnostics.warn(
                    DiagnosticCode.UNRESOLVED_PARAMETER,
                    f"Cannot resolve parameter reference: {ref} (operation '{operation_id}').",
                    subject=str(ref),
                    logger=logger,
                )
                continue
            resolved.append(target)
        return resolved

    def _extract_request_body(
        self,
        request_body: Any,
        operation_id: str,
        parameters: list[IrParameter],
    ) -> Optional[str]:
        body = self._follow_ref(request_body, self._request_bodies)
        if body is None:
            ref = request_body.get("$ref") if isinstance(request_body, dict) else request_body
            self._diagnostics.warn(
                DiagnosticCode.UNRESOLVED_REQUEST_BODY,
                f"Cannot resolve request body reference: {ref} (operation '{operation_id}').",
                subject=str(ref),
                logger=logger,
            )
            return None

        content = body.get("content") or {}
        if not content:
            return None

        content_type = next(iter(content))
        media_type = content[content_type]
        schema = media_type.get("schema") if isinstance(media_type, dict) else None
        if schema is not None:
            parameters.append(
                IrParameter(
                    name="body",
                    type=self._resolver.resolve(schema),
                    location=ParameterLocation.BODY,
                    is_required=bool(body.get("required", False)),
                    description=body.get("description"),
                )
            )
        return content_type

    @staticmethod
    def _follow_ref(node: Any, table: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Follow a chain of ``$ref`` objects through *table*.

        Returns ``None`` for a dangling or looping chain.
        """
        seen: set[str] = set()
        while is_ref(node):
            key = ref_key(str(node["$ref"]))
            if key in seen:
                return None
            seen.add(key)
            node = table.get(key)
        return node if isinstance(node, dict) else None

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def _add_operation(self, service_name: str, operation: IrOperation) -> None:
        operations = self._services[service_name]
        method_name = self._unique_method_name(service_name, operations, operation)
        key = f"{operation.operation_id}:{method_name}"
        operations[key] = operation.model_copy(update={"method_name": method_name})

    def _unique_method_name(
        self,
        service_name: str,
        operations: dict[str, IrOperation],
        operation: IrOperation,
    ) -> str:
        taken = {op.method_name: op for op in operations.values()}
        base_name = operation.method_name
        if base_name not in taken:
            return base_name

        counter = 2
        candidate = f"{base_name}_{counter}"
        while candidate in taken:
            counter += 1
            candidate = f"{base_name}_{counter}"

        self._diagnostics.warn(
            DiagnosticCode.METHOD_COLLISION,
            f"Operation collision in service '{service_name}': method '{base_name}' "
            f"of '{taken[base_name].operation_id}' already exists; "
            f"'{operation.operation_id}' renamed to '{candidate}'.",
            subject=operation.operation_id,
            logger=logger,
        )
        return candidate
