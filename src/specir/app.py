"""Typer application and CLI entry point for specir.

Commands:

* ``specir convert SPEC`` -- convert a document and write the IR as JSON to
  stdout (or ``-o FILE``). Conversion warnings go to stderr through the
  logging handler installed here.
* ``specir summary SPEC`` -- print the models and services of the IR as
  tables, followed by a count of diagnostics per code.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn, Optional

import typer
from rich.logging import RichHandler

from specir import __version__
from specir.exit_codes import EXIT_GENERIC_FAILURE, EXIT_STRICT_WARNINGS
from specir.models import Composition, CompositeType, IrDefinition, IrType

if TYPE_CHECKING:
    from specir.exceptions import SpecirError


app = typer.Typer(
    name="specir",
    help="Convert OpenAPI 3.0/3.1 documents into an SDK intermediate representation.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specir {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only report warnings and errors."
    ),
) -> None:
    """Install the global :class:`~specir.output.OutputManager`."""
    from specir.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet))


def _configure_logging(verbose: bool) -> None:
    """Send ``specir.*`` log records to stderr through Rich.

    Warnings are shown by default, everything down to DEBUG with
    ``--verbose``.
    """
    from specir.output import get_output

    output = get_output()
    handler = RichHandler(
        console=output.stderr_console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    package_logger = logging.getLogger("specir")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    if verbose:
        package_logger.setLevel(logging.DEBUG)
    elif output.is_quiet:
        package_logger.setLevel(logging.ERROR)
    else:
        package_logger.setLevel(logging.WARNING)


def _exit_with(exc: SpecirError) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    from specir.output import error

    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def _check_output_path(output_file: Optional[Path]) -> None:
    """Reject an ``--output`` target that cannot be written as a file.

    Raises:
        InvalidUsageError: If the path is a directory or its parent is missing.
    """
    from specir.exceptions import InvalidUsageError

    if output_file is None:
        return
    if output_file.is_dir():
        raise InvalidUsageError(f"Output path is a directory: {output_file}")
    if not output_file.parent.is_dir():
        raise InvalidUsageError(f"Output directory does not exist: {output_file.parent}")


def _load_and_convert(
    source: str,
    reserved_suffix: Optional[str] = None,
    default_tag: Optional[str] = None,
    service_suffix: Optional[str] = None,
):  # noqa: ANN202
    """Load *source*, resolve the config and convert.

    Returns:
        An ``(IrDefinition, Diagnostics)`` tuple.

    Raises:
        typer.Exit: With the error's exit code for any
            :class:`~specir.exceptions.SpecirError`.
    """
    from specir.config import resolve_config
    from specir.diagnostics import Diagnostics
    from specir.exceptions import SpecirError
    from specir.ir import convert
    from specir.parser import load_spec, validate_openapi_version

    diagnostics = Diagnostics()
    try:
        config = resolve_config(
            cli_reserved_suffix=reserved_suffix,
            cli_default_tag=default_tag,
            cli_service_suffix=service_suffix,
        )
        document = load_spec(source)
        validate_openapi_version(document)
        definition = convert(document, config=config, diagnostics=diagnostics)
    except SpecirError as exc:
        _exit_with(exc)

    return definition, diagnostics


@app.command("convert")
def convert_command(
    spec: str = typer.Argument(..., help="OpenAPI document: file path, URL, or '-' for stdin."),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the IR to this file instead of stdout."
    ),
    indent: int = typer.Option(2, "--indent", min=0, help="JSON indentation (0 for compact)."),
    reserved_suffix: Optional[str] = typer.Option(
        None, "--reserved-suffix", help="Suffix for model names that are reserved words."
    ),
    default_tag: Optional[str] = typer.Option(
        None, "--default-tag", help="Tag for operations that declare none."
    ),
    service_suffix: Optional[str] = typer.Option(
        None, "--service-suffix", help="Suffix appended to every service name."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail with exit code 9 if the conversion reports warnings."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Convert an OpenAPI document and print the IR as JSON.

    Example::

        specir convert openapi.yaml -o ir.json
        curl -s https://example.com/openapi.json | specir convert - --strict
    """
    from specir.exceptions import SpecirError
    from specir.output import error, get_output, success, warning

    _configure_logging(verbose)
    try:
        _check_output_path(output_file)
    except SpecirError as exc:
        _exit_with(exc)
    definition, diagnostics = _load_and_convert(
        spec, reserved_suffix, default_tag, service_suffix
    )

    warnings = diagnostics.warnings
    if strict and warnings:
        error(f"{len(warnings)} warning(s) reported in strict mode; no output written.")
        raise typer.Exit(code=EXIT_STRICT_WARNINGS)

    payload = json.dumps(
        definition.model_dump(mode="json"),
        indent=indent or None,
        ensure_ascii=False,
    )
    get_output().print_data(payload, output_file)
    if warnings:
        warning(f"{len(warnings)} warning(s) reported during conversion.")

    if output_file is not None:
        success(
            f"Wrote {len(definition.models)} models and "
            f"{len(definition.services)} services to {output_file}"
        )


def _describe_type(ir_type: IrType) -> str:
    """Short human-readable rendering of an IR type for tables."""
    if isinstance(ir_type, CompositeType):
        joiner = " | " if ir_type.composition == Composition.UNION else " & "
        text = joiner.join(_describe_type(member) for member in ir_type.members)
        if len(ir_type.members) > 1 and (ir_type.is_array or ir_type.is_dict):
            text = f"({text})"
    else:
        text = repr(ir_type.name) if ir_type.is_literal else ir_type.name
    if ir_type.is_dict:
        text = f"dict[str, {text}]"
    if ir_type.is_array:
        text = f"{text}[]"
    return text


def _print_summary(definition: IrDefinition, counts: dict[str, int]) -> None:
    from specir.output import get_output, info

    output = get_output()
    title = definition.info.title or "API"

    model_rows: list[list[str]] = []
    for model in definition.models:
        if model.is_enum:
            detail = ", ".join(model.enum_values or ())
        elif model.sub_types:
            detail = " | ".join(sub.name for sub in model.sub_types)
        else:
            detail = ", ".join(prop.name for prop in model.properties)
        model_rows.append(
            [model.name, model.key, model.shape.value, model.extends or "", detail]
        )
    output.print_table(
        ["Model", "Key", "Shape", "Extends", "Members"],
        model_rows,
        title=f"{title} -- Models ({len(model_rows)})",
    )

    operation_rows: list[list[str]] = []
    for service in definition.services:
        for operation in service.operations.values():
            operation_rows.append(
                [
                    service.name,
                    operation.method_name,
                    operation.method.value,
                    operation.path,
                    _describe_type(operation.return_type),
                ]
            )
    output.print_table(
        ["Service", "Method", "HTTP", "Path", "Returns"],
        operation_rows,
        title=f"{title} -- Operations ({len(operation_rows)})",
    )

    if counts:
        for code, count in sorted(counts.items()):
            info(f"{code}: {count}")
    else:
        info("No diagnostics.")


@app.command("summary")
def summary_command(
    spec: str = typer.Argument(..., help="OpenAPI document: file path, URL, or '-' for stdin."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Print the models and operations a document converts to.

    Example::

        specir summary openapi.yaml
    """
    _configure_logging(verbose)
    definition, diagnostics = _load_and_convert(spec)
    counts = Counter(item.code.value for item in diagnostics)
    _print_summary(definition, dict(counts))


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``specir`` console script.

    :class:`~specir.exceptions.SpecirError` instances that escape a command
    exit with their ``exit_code``; anything else exits with a generic failure.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specir.exceptions import SpecirError
        from specir.output import error

        if isinstance(exc, SpecirError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
