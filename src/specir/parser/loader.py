"""Read OpenAPI documents from a file, a URL or stdin.

The loader is the only place that does I/O. It returns the document as a
plain dict, ready for :func:`~specir.ir.converter.convert`, and is also the
boundary at which documents that are not OpenAPI 3.x are rejected.

* :func:`load_spec` -- read and parse a document (JSON or YAML).
* :func:`validate_openapi_version` -- accept ``3.x`` and reject Swagger 2.0
  and anything else.

External ``$ref`` targets are not fetched; only the document itself is read.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specir.exceptions import SpecParseError

logger = logging.getLogger(__name__)

_JSON = "json"
_YAML = "yaml"

_SUFFIX_FORMATS = {".json": _JSON, ".yaml": _YAML, ".yml": _YAML}


def load_spec(source: str, timeout: float = 30.0) -> dict[str, Any]:
    """Load an OpenAPI document.

    Args:
        source: An ``http(s)`` URL, a file path, or ``"-"`` for stdin.
        timeout: Timeout in seconds for URL sources.

    Returns:
        The document as a dict.

    Raises:
        SpecParseError: If the source cannot be read or is not a JSON/YAML
            object.
    """
    if source == "-":
        logger.debug("Reading document from stdin")
        text, fmt = _read_stdin(), ""
    elif source.startswith(("http://", "https://")):
        logger.debug("Fetching document from %s", source)
        text, fmt = _read_url(source, timeout)
    else:
        logger.debug("Reading document from %s", source)
        text, fmt = _read_file(source)

    return parse_document(text, fmt, origin=source)


def _read_stdin() -> str:
    try:
        text = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
    if not text.strip():
        raise SpecParseError("No input received from stdin")
    return text


def _read_url(url: str, timeout: float) -> tuple[str, str]:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "").lower()
    if "json" in content_type:
        fmt = _JSON
    elif "yaml" in content_type or "yml" in content_type:
        fmt = _YAML
    else:
        fmt = _SUFFIX_FORMATS.get(Path(httpx.URL(url).path).suffix.lower(), "")
    return response.text, fmt


def _read_file(path: str) -> tuple[str, str]:
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {path}")
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        raise SpecParseError(f"Document is empty: {path}")
    return text, _SUFFIX_FORMATS.get(file_path.suffix.lower(), "")


def parse_document(text: str, fmt: str = "", origin: str = "<string>") -> dict[str, Any]:
    """Parse *text* as JSON or YAML.

    With no format hint JSON is tried first and YAML second, since any JSON
    document is also YAML but the JSON parser reports errors more precisely.

    Args:
        text: Raw document text.
        fmt: ``"json"``, ``"yaml"`` or ``""`` when unknown.
        origin: Where the text came from, for error messages.

    Raises:
        SpecParseError: If the text does not parse, or parses to something
            other than an object.
    """
    errors: list[str] = []

    if fmt != _YAML:
        try:
            return _require_object(json.loads(text), origin)
        except json.JSONDecodeError as exc:
            if fmt == _JSON:
                raise SpecParseError(f"Invalid JSON in {origin}: {exc}") from exc
            errors.append(f"JSON error: {exc}")

    try:
        return _require_object(yaml.safe_load(text), origin)
    except yaml.YAMLError as exc:
        errors.append(f"YAML error: {exc}")

    raise SpecParseError(
        f"Failed to parse {origin} as JSON or YAML\n  " + "\n  ".join(errors)
    )


def _require_object(value: Any, origin: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        kind = "empty document" if value is None else type(value).__name__
        raise SpecParseError(f"{origin} must contain a JSON/YAML object (got {kind})")
    return value


def validate_openapi_version(document: dict[str, Any]) -> str:
    """Return the ``openapi`` version of *document* if it is 3.x.

    Versions past 3.1 are accepted with a logged warning.

    Raises:
        SpecParseError: For Swagger 2.0, a missing ``openapi`` field, or any
            other major version.
    """
    if "swagger" in document:
        raise SpecParseError(
            f"Swagger {document['swagger']} is not supported; "
            "convert the document to OpenAPI 3.x first."
        )

    version = document.get("openapi")
    if version is None:
        raise SpecParseError("Missing 'openapi' field. Is this an OpenAPI 3.x document?")

    version_str = str(version)
    if not version_str.startswith("3."):
        raise SpecParseError(
            f"Unsupported OpenAPI version: {version_str}. Only 3.x documents are supported."
        )
    if not version_str.startswith(("3.0.", "3.1.")):
        logger.warning("OpenAPI version %s is newer than 3.1; converting anyway", version_str)
    return version_str
