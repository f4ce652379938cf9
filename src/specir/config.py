"""Converter settings and their precedence resolution.

A :class:`~specir.models.ConverterConfig` is assembled from four layers,
highest precedence first:

1. CLI flags (``--reserved-suffix``, ``--default-tag``, ...)
2. Environment variables (``SPECIR_RESERVED_SUFFIX``, ``SPECIR_DEFAULT_TAG``,
   ``SPECIR_SERVICE_SUFFIX``, ``SPECIR_EXTRA_RESERVED_WORDS``)
3. Project-local ``specir.json`` in the working directory
4. Model defaults

A layer only contributes the keys it sets. ``SPECIR_EXTRA_RESERVED_WORDS`` is
a comma-separated list.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specir.exceptions import ConfigError
from specir.models import ConverterConfig

PROJECT_CONFIG_FILENAME = "specir.json"

_ENV_PREFIX = "SPECIR_"
_ENV_FIELDS = ("reserved_suffix", "default_tag", "service_suffix", "extra_reserved_words")
_LIST_FIELDS = frozenset({"extra_reserved_words"})


def load_project_config(project_dir: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load ``specir.json`` from *project_dir* (default: the working directory).

    Returns:
        The parsed object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object.
    """
    path = (project_dir or Path.cwd()) / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field in _ENV_FIELDS:
        value = os.environ.get(_ENV_PREFIX + field.upper())
        if value is None:
            continue
        if field in _LIST_FIELDS:
            overrides[field] = [word.strip() for word in value.split(",") if word.strip()]
        else:
            overrides[field] = value
    return overrides


def resolve_config(
    cli_reserved_suffix: Optional[str] = None,
    cli_default_tag: Optional[str] = None,
    cli_service_suffix: Optional[str] = None,
    project_dir: Optional[Path] = None,
) -> ConverterConfig:
    """Resolve the effective converter settings.

    Args:
        cli_reserved_suffix: ``--reserved-suffix`` flag value.
        cli_default_tag: ``--default-tag`` flag value.
        cli_service_suffix: ``--service-suffix`` flag value.
        project_dir: Directory holding ``specir.json``; the working directory
            when omitted.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    values: dict[str, Any] = {}

    project = load_project_config(project_dir)
    if project is not None:
        values.update(project)

    values.update(_env_overrides())

    cli = {
        "reserved_suffix": cli_reserved_suffix,
        "default_tag": cli_default_tag,
        "service_suffix": cli_service_suffix,
    }
    values.update({key: value for key, value in cli.items() if value is not None})

    try:
        return ConverterConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid converter configuration: {exc}") from exc
