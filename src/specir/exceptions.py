"""Exception hierarchy for specir.

All exceptions inherit from :class:`SpecirError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specir.exit_codes`.
The command line catches ``SpecirError`` and exits with that code.

Only two of these ever escape a conversion: :class:`SpecParseError` from the
loader boundary and :class:`CircularReferenceError` from the schema composer.
Every other anomaly found while converting is recorded as a
:class:`~specir.diagnostics.Diagnostic` instead of being raised.

Subclass hierarchy::

    SpecirError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- SpecParseError          (exit 7)
    +-- CircularReferenceError  (exit 8)
    +-- ConfigError             (exit 1)
"""

from __future__ import annotations

from specir.exit_codes import (
    EXIT_CIRCULAR_REFERENCE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecirError(Exception):
    """Base exception for all specir errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecirError):
    """Raised for invalid command line arguments."""

    exit_code = EXIT_INVALID_USAGE


class SpecParseError(SpecirError):
    """Raised when the document cannot be loaded or is not OpenAPI 3.x."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class CircularReferenceError(SpecirError):
    """Raised when an ``allOf`` chain leads back to a schema already on it.

    Args:
        schema_key: The schema being composed when the cycle was found.
        ref_key: The referenced schema that closes the cycle.
    """

    exit_code = EXIT_CIRCULAR_REFERENCE

    def __init__(self, schema_key: str, ref_key: str):
        super().__init__(
            f"Circular allOf dependency detected: '{schema_key}' references '{ref_key}'."
        )
        self.schema_key = schema_key
        self.ref_key = ref_key


class ConfigError(SpecirError):
    """Raised for configuration problems (invalid project config, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
