"""Document loading -- the I/O boundary in front of the converter.

Typical usage::

    from specir.parser import load_spec, validate_openapi_version

    document = load_spec("https://petstore3.swagger.io/api/v3/openapi.json")
    validate_openapi_version(document)
"""

from specir.parser.loader import load_spec, parse_document, validate_openapi_version

__all__ = ["load_spec", "parse_document", "validate_openapi_version"]
