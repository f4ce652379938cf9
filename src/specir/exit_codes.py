"""Numeric process exit codes returned by the ``specir`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specir.exceptions.SpecirError` subclass, so build
scripts can tell a broken document from a broken schema graph without parsing
stderr.

Example::

    $ specir convert api.yaml -o ir.json
    $ echo $?
    8   # EXIT_CIRCULAR_REFERENCE -- a schema inherits from itself
"""

EXIT_SUCCESS = 0
"""The conversion completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be read, parsed, or has an unsupported version."""

EXIT_CIRCULAR_REFERENCE = 8
"""The schema graph contains a circular ``allOf`` chain."""

EXIT_STRICT_WARNINGS = 9
"""``--strict`` was given and the conversion produced warnings."""
