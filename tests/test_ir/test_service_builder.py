"""Tests for specir.ir.service_builder."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from specir.diagnostics import DiagnosticCode, Diagnostics
from specir.ir.registry import SchemaRegistry
from specir.ir.service_builder import (
    ServiceBuilder,
    content_type_label,
    merge_parameters,
    response_kind_for,
    select_success_response,
)
from specir.ir.type_resolver import TypeResolver
from specir.models import (
    ConverterConfig,
    HTTPMethod,
    IrService,
    ParameterLocation,
    ResponseKind,
    SimpleType,
)


def _services(
    document: dict[str, Any],
    diagnostics: Diagnostics,
    config: Optional[ConverterConfig] = None,
) -> dict[str, IrService]:
    schemas = (document.get("components") or {}).get("schemas")
    registry = SchemaRegistry.discover(schemas)
    builder = ServiceBuilder(document, TypeResolver(registry), config or ConverterConfig(), diagnostics)
    return {service.name: service for service in builder.build()}


def _json_response(schema: Any) -> dict[str, Any]:
    return {"200": {"description": "OK", "content": {"application/json": {"schema": schema}}}}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestContentTypeLabel:
    @pytest.mark.parametrize(
        "content_type, label",
        [
            ("*/*", "Any"),
            ("*/*; q=0.8", "Any"),
            ("application/json", ""),
            ("application/json; charset=utf-8", ""),
            ("application/xml", "Xml"),
            ("text/xml", "Xml"),
            ("application/octet-stream", "Binary"),
            ("text/plain", "Text"),
            ("text/html", "Html"),
            ("image/png", "ImagePng"),
            ("image/*", "Image"),
            ("application/pdf", "Pdf"),
            ("text/csv", "Csv"),
            ("application/vnd.api+json", "VndApiJson"),
        ],
    )
    def test_labels(self, content_type: str, label: str) -> None:
        assert content_type_label(content_type) == label


class TestResponseKind:
    @pytest.mark.parametrize(
        "content_type, kind",
        [
            ("text/plain", ResponseKind.TEXT),
            ("text/csv", ResponseKind.TEXT),
            ("image/png", ResponseKind.BINARY),
            ("application/pdf", ResponseKind.BINARY),
            ("application/octet-stream", ResponseKind.BINARY),
            ("application/x-binary", ResponseKind.BINARY),
            ("application/json", ResponseKind.JSON),
            ("application/problem+json", ResponseKind.JSON),
            ("application/xml", None),
        ],
    )
    def test_kinds(self, content_type: str, kind: Optional[ResponseKind]) -> None:
        assert response_kind_for(content_type) == kind


class TestSelectSuccessResponse:
    def test_first_2xx_wins(self) -> None:
        responses = {"404": {"description": "no"}, "201": {"description": "a"}, "200": {"description": "b"}}
        assert select_success_response(responses) == ("201", {"description": "a"})

    def test_default_fallback(self) -> None:
        responses = {"400": {}, "default": {"description": "d"}}
        assert select_success_response(responses) == ("default", {"description": "d"})

    def test_integer_status_codes(self) -> None:
        assert select_success_response({200: {"description": "ok"}}) == ("200", {"description": "ok"})

    def test_none(self) -> None:
        assert select_success_response({"500": {}}) is None


class TestMergeParameters:
    def test_operation_overrides_path_by_name_and_location(self) -> None:
        path_params = [
            {"name": "id", "in": "path", "description": "path-level"},
            {"name": "id", "in": "query"},
        ]
        op_params = [{"name": "id", "in": "path", "description": "op-level"}]
        merged = merge_parameters(path_params, op_params)
        assert merged == [
            {"name": "id", "in": "query"},
            {"name": "id", "in": "path", "description": "op-level"},
        ]


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


class TestGrouping:
    def test_fixture_services(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        services = _services(shop_raw, diagnostics)
        assert list(services) == ["ProductsService", "AdminService", "DefaultService"]

        products = services["ProductsService"]
        assert [op.method_name for op in products.operations.values()] == [
            "listProducts",
            "createProduct",
            "getProduct",
            "getProduct_Pdf",
            "deleteProductsByProductId",
        ]
        assert list(services["AdminService"].operations) == [
            "deleteProductsByProductId:deleteProductsByProductId"
        ]
        assert services["DefaultService"].get_operation("getHealth_Text") is not None

    def test_custom_default_tag_and_suffix(self, diagnostics: Diagnostics) -> None:
        document = {"paths": {"/ping": {"get": {"responses": {"204": {"description": "ok"}}}}}}
        config = ConverterConfig(default_tag="misc", service_suffix="Api")
        services = _services(document, diagnostics, config)
        assert list(services) == ["MiscApi"]

    def test_method_order(self, diagnostics: Diagnostics) -> None:
        ok = {"204": {"description": "ok"}}
        document = {
            "paths": {
                "/items": {
                    "patch": {"operationId": "patchItem", "responses": ok},
                    "get": {"operationId": "getItem", "responses": ok},
                    "delete": {"operationId": "deleteItem", "responses": ok},
                    "post": {"operationId": "postItem", "responses": ok},
                    "put": {"operationId": "putItem", "responses": ok},
                    "head": {"operationId": "headItem", "responses": ok},
                }
            }
        }
        services = _services(document, diagnostics)
        operations = list(services["DefaultService"].operations.values())
        assert [op.method for op in operations] == [
            HTTPMethod.GET,
            HTTPMethod.POST,
            HTTPMethod.PUT,
            HTTPMethod.DELETE,
            HTTPMethod.PATCH,
        ]

    def test_service_created_even_when_operation_skipped(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/broken": {
                    "get": {"tags": ["broken"], "operationId": "broken", "responses": {"500": {}}}
                }
            }
        }
        services = _services(document, diagnostics)
        assert services["BrokenService"].operations == {}
        [warning] = diagnostics.warnings
        assert warning.code == DiagnosticCode.MISSING_SUCCESS_RESPONSE
        assert warning.subject == "broken"


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TestResponses:
    def test_one_variant_per_content_type(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        products = _services(shop_raw, diagnostics)["ProductsService"]

        json_variant = products.get_operation("getProduct")
        pdf_variant = products.get_operation("getProduct_Pdf")
        assert json_variant is not None and pdf_variant is not None
        assert json_variant.operation_id == pdf_variant.operation_id == "getProduct"

        assert json_variant.accept_header == "application/json"
        assert json_variant.response_kind == ResponseKind.JSON
        assert json_variant.return_type == SimpleType(name="Product", is_primitive=False)

        assert pdf_variant.accept_header == "application/pdf"
        assert pdf_variant.response_kind == ResponseKind.BINARY
        assert pdf_variant.return_type == SimpleType(name="binary", is_primitive=False)

    def test_no_content_returns_void(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        products = _services(shop_raw, diagnostics)["ProductsService"]
        delete = products.get_operation("deleteProductsByProductId")
        assert delete is not None
        assert delete.return_type == SimpleType(name="void")
        assert delete.accept_header is None
        assert delete.response_kind is None

    def test_response_ref_is_resolved(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        create = _services(shop_raw, diagnostics)["ProductsService"].get_operation("createProduct")
        assert create is not None
        assert create.return_type.name == "Product"

    def test_unresolved_response_ref(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/x": {
                    "get": {
                        "operationId": "getX",
                        "responses": {"200": {"$ref": "#/components/responses/Missing"}},
                    }
                }
            }
        }
        services = _services(document, diagnostics)
        assert services["DefaultService"].operations == {}
        assert diagnostics.codes() == {DiagnosticCode.UNRESOLVED_RESPONSE}

    def test_content_without_schema_is_skipped(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/x": {
                    "get": {
                        "operationId": "getX",
                        "responses": {
                            "200": {
                                "description": "OK",
                                "content": {
                                    "application/json": {},
                                    "text/plain": {"schema": {"type": "string"}},
                                },
                            }
                        },
                    }
                }
            }
        }
        service = _services(document, diagnostics)["DefaultService"]
        assert [op.method_name for op in service.operations.values()] == ["getX_Text"]
        assert diagnostics.codes() == {DiagnosticCode.MISSING_RESPONSE_SCHEMA}

    def test_metadata_is_carried(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/old": {
                    "get": {
                        "operationId": "old",
                        "summary": "Old endpoint",
                        "description": "Do not use",
                        "deprecated": True,
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        }
        old = _services(document, diagnostics)["DefaultService"].get_operation("old")
        assert old is not None
        assert old.summary == "Old endpoint"
        assert old.description == "Do not use"
        assert old.deprecated is True
        assert old.path == "/old"


# ---------------------------------------------------------------------------
# Parameters and request bodies
# ---------------------------------------------------------------------------


class TestParameters:
    def test_fixture_parameters(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        products = _services(shop_raw, diagnostics)["ProductsService"]

        listing = products.get_operation("listProducts")
        assert listing is not None
        assert [(p.name, p.location, p.is_required) for p in listing.parameters] == [
            ("limit", ParameterLocation.QUERY, False),
            ("category", ParameterLocation.QUERY, False),
        ]
        assert listing.parameters[0].type == SimpleType(name="number")

        get = products.get_operation("getProduct")
        assert get is not None
        [product_id] = get.parameters
        assert product_id.name == "productId"
        assert product_id.location == ParameterLocation.PATH
        assert product_id.is_required is True

    def test_request_body_ref(self, shop_raw: dict[str, Any], diagnostics: Diagnostics) -> None:
        create = _services(shop_raw, diagnostics)["ProductsService"].get_operation("createProduct")
        assert create is not None
        assert create.request_content_type == "application/json"
        [body] = create.parameters
        assert body.name == "body"
        assert body.location == ParameterLocation.BODY
        assert body.is_required is True
        assert body.type == SimpleType(name="Product", is_primitive=False)

    def test_first_request_content_type_wins(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/upload": {
                    "post": {
                        "operationId": "upload",
                        "requestBody": {
                            "content": {
                                "multipart/form-data": {"schema": {"type": "object"}},
                                "application/json": {"schema": {"type": "string"}},
                            }
                        },
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        }
        upload = _services(document, diagnostics)["DefaultService"].get_operation("upload")
        assert upload is not None
        assert upload.request_content_type == "multipart/form-data"
        assert upload.parameters[0].is_required is False

    def test_unresolved_and_unsupported_parameters(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/x": {
                    "get": {
                        "operationId": "getX",
                        "parameters": [
                            {"$ref": "#/components/parameters/Missing"},
                            {"name": "session", "in": "cookie"},
                            {"name": "q", "in": "query", "required": True},
                        ],
                        "requestBody": {"$ref": "#/components/requestBodies/Missing"},
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        }
        get_x = _services(document, diagnostics)["DefaultService"].get_operation("getX")
        assert get_x is not None
        assert [(p.name, p.is_required) for p in get_x.parameters] == [("q", True)]
        assert get_x.request_content_type is None
        assert diagnostics.codes() == {
            DiagnosticCode.UNRESOLVED_PARAMETER,
            DiagnosticCode.UNSUPPORTED_PARAMETER,
            DiagnosticCode.UNRESOLVED_REQUEST_BODY,
        }

    def test_parameter_ref_chains_and_loops(self, diagnostics: Diagnostics) -> None:
        document = {
            "paths": {
                "/x": {
                    "get": {
                        "operationId": "getX",
                        "parameters": [
                            {"$ref": "#/components/parameters/Alias"},
                            {"$ref": "#/components/parameters/Loop"},
                        ],
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            },
            "components": {
                "parameters": {
                    "Alias": {"$ref": "#/components/parameters/Page"},
                    "Page": {"name": "page", "in": "query", "schema": {"type": "integer"}},
                    "Loop": {"$ref": "#/components/parameters/Loop"},
                }
            },
        }
        get_x = _services(document, diagnostics)["DefaultService"].get_operation("getX")
        assert get_x is not None
        assert [p.name for p in get_x.parameters] == ["page"]
        assert diagnostics.codes() == {DiagnosticCode.UNRESOLVED_PARAMETER}


# ---------------------------------------------------------------------------
# Collisions
# ---------------------------------------------------------------------------


class TestCollisions:
    def test_method_names_are_suffixed(self, diagnostics: Diagnostics) -> None:
        ok = {"204": {"description": "ok"}}
        document = {
            "paths": {
                "/a": {"get": {"operationId": "get-item", "responses": ok}},
                "/b": {"get": {"operationId": "getItem", "responses": ok}},
                "/c": {"get": {"operationId": "get_item", "responses": ok}},
            }
        }
        service = _services(document, diagnostics)["DefaultService"]
        assert list(service.operations) == [
            "get-item:getItem",
            "getItem:getItem_2",
            "get_item:getItem_3",
        ]
        assert [op.method_name for op in service.operations.values()] == [
            "getItem",
            "getItem_2",
            "getItem_3",
        ]

        warnings = diagnostics.by_code(DiagnosticCode.METHOD_COLLISION)
        assert len(warnings) == 2
        assert "'get-item'" in warnings[0].message
        assert "'getItem'" in warnings[0].message

    def test_collisions_are_per_service(self, diagnostics: Diagnostics) -> None:
        ok = {"204": {"description": "ok"}}
        document = {
            "paths": {
                "/a": {"get": {"tags": ["a"], "operationId": "list", "responses": ok}},
                "/b": {"get": {"tags": ["b"], "operationId": "list", "responses": ok}},
            }
        }
        services = _services(document, diagnostics)
        assert services["AService"].get_operation("list") is not None
        assert services["BService"].get_operation("list") is not None
        assert len(diagnostics) == 0

    def test_shared_operation_id_across_paths(self, diagnostics: Diagnostics) -> None:
        ok = {"204": {"description": "ok"}}
        document = {
            "paths": {
                f"/{path}": {"post": {"operationId": "processData", "responses": ok}}
                for path in ("a", "b", "c")
            }
        }
        service = _services(document, diagnostics)["DefaultService"]
        assert [op.method_name for op in service.operations.values()] == [
            "processData",
            "processData_2",
            "processData_3",
        ]
        assert [op.path for op in service.operations.values()] == ["/a", "/b", "/c"]
