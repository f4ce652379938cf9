"""Structured collector for non-fatal conversion findings.

A conversion never raises for a missing reference, an unresolvable parameter
or a name clash. It records a :class:`Diagnostic` and carries on with a
smaller but still valid IR. :class:`Diagnostics` keeps those records in the
order they were found so callers (and tests) can inspect them as data, and
mirrors each one onto the :mod:`logging` logger of the module that found it.

Typical usage::

    diagnostics = Diagnostics()
    ir = convert(document, diagnostics=diagnostics)
    if diagnostics.has_warnings:
        for item in diagnostics.warnings:
            print(item.code.value, item.message)
"""

from __future__ import annotations

import enum
import logging
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict


class Severity(str, enum.Enum):
    """How much attention a diagnostic deserves."""

    INFO = "info"
    WARNING = "warning"


class DiagnosticCode(str, enum.Enum):
    """Stable identifiers for every kind of finding."""

    RESERVED_NAME = "reserved-name"
    MISSING_REFERENCE = "missing-reference"
    PROPERTY_COLLISION = "property-collision"
    IMPLICIT_DISCRIMINATOR = "implicit-discriminator"
    INLINE_UNION_MEMBER = "inline-union-member"
    MISSING_SUCCESS_RESPONSE = "missing-success-response"
    MISSING_RESPONSE_SCHEMA = "missing-response-schema"
    UNRESOLVED_PARAMETER = "unresolved-parameter"
    UNSUPPORTED_PARAMETER = "unsupported-parameter"
    UNRESOLVED_REQUEST_BODY = "unresolved-request-body"
    UNRESOLVED_RESPONSE = "unresolved-response"
    METHOD_COLLISION = "method-collision"


class Diagnostic(BaseModel):
    """A single finding.

    ``subject`` names the unit it concerns: a schema key, an operation id or
    a ``$ref`` string.
    """

    model_config = ConfigDict(frozen=True)

    code: DiagnosticCode
    severity: Severity
    message: str
    subject: Optional[str] = None


class Diagnostics:
    """Ordered, per-conversion sink for :class:`Diagnostic` records.

    One instance belongs to one conversion. It is not shared between threads.
    """

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def warn(
        self,
        code: DiagnosticCode,
        message: str,
        subject: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Diagnostic:
        """Record a warning and log it on *logger* (or this module's logger)."""
        return self._add(Severity.WARNING, code, message, subject, logger)

    def info(
        self,
        code: DiagnosticCode,
        message: str,
        subject: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Diagnostic:
        """Record an informational note and log it at INFO level."""
        return self._add(Severity.INFO, code, message, subject, logger)

    def _add(
        self,
        severity: Severity,
        code: DiagnosticCode,
        message: str,
        subject: Optional[str],
        logger: Optional[logging.Logger],
    ) -> Diagnostic:
        item = Diagnostic(code=code, severity=severity, message=message, subject=subject)
        self._items.append(item)
        log = logger or _logger
        log.log(logging.WARNING if severity == Severity.WARNING else logging.INFO, message)
        return item

    @property
    def items(self) -> list[Diagnostic]:
        """All diagnostics in the order they were recorded."""
        return list(self._items)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [item for item in self._items if item.severity == Severity.WARNING]

    @property
    def has_warnings(self) -> bool:
        return any(item.severity == Severity.WARNING for item in self._items)

    def codes(self) -> set[DiagnosticCode]:
        """The distinct codes recorded so far."""
        return {item.code for item in self._items}

    def by_code(self, code: DiagnosticCode) -> list[Diagnostic]:
        return [item for item in self._items if item.code == code]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


_logger = logging.getLogger(__name__)
