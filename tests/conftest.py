"""Shared test fixtures for specir.

Provides the fixture documents, a factory for small inline documents,
isolation of the converter configuration, and the CLI runner. Global output
and logging state is reset between tests.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from specir.diagnostics import Diagnostics
from specir.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the CLI log handler after every test.

    Both hold references to the streams Typer's CliRunner swaps in for the
    duration of an invocation; once the test ends those streams are closed.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("specir")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def shop_raw() -> dict[str, Any]:
    """The raw shop fixture document."""
    with open(FIXTURES_DIR / "shop.json") as f:
        return json.load(f)


@pytest.fixture
def shop_path() -> Path:
    return FIXTURES_DIR / "shop.json"


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Factory for minimal OpenAPI 3.0 documents.

    Usage::

        doc = make_document(schemas={"Pet": {...}}, paths={"/pets": {...}})
    """

    def _make(
        schemas: Optional[dict[str, Any]] = None,
        paths: Optional[dict[str, Any]] = None,
        **components: Any,
    ) -> dict[str, Any]:
        return {
            "openapi": "3.0.3",
            "info": {"title": "Test API", "version": "1.0.0"},
            "paths": paths or {},
            "components": {"schemas": schemas or {}, **components},
        }

    return _make


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary working directory.

    Clears all SPECIR_* environment variables and changes the working
    directory to tmp_path so no real ``specir.json`` is picked up.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in [
        "SPECIR_RESERVED_SUFFIX",
        "SPECIR_DEFAULT_TAG",
        "SPECIR_SERVICE_SUFFIX",
        "SPECIR_EXTRA_RESERVED_WORDS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
