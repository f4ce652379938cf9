"""specir -- Convert OpenAPI 3.0/3.1 documents into an SDK intermediate representation.

The IR is a language-agnostic graph of models (classes, enums, unions) and
services (operations grouped by tag) that a code-emission layer renders into
client source files.

Typical usage::

    from specir import convert
    from specir.parser import load_spec, validate_openapi_version

    document = load_spec("openapi.yaml")
    validate_openapi_version(document)
    ir = convert(document)

Or from the command line::

    specir convert openapi.yaml -o ir.json

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the configuration and the IR.
    config: Precedence resolution of converter settings.
    diagnostics: Structured collector for non-fatal findings.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    naming: Identifier casing and reserved words.
    output: stdout/stderr formatting with Rich.
"""

from specir.ir.converter import convert

__version__ = "0.1.0"

__all__ = ["convert", "__version__"]
