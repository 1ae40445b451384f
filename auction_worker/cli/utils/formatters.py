"""Coloured status lines for CLI output."""

import click

# marker, colour, stream-is-stderr
_STYLES: dict[str, tuple[str, str, bool]] = {
    "success": ("✓ ", "green", False),
    "error": ("✗ ", "red", True),
    "warning": ("⚠ ", "yellow", False),
    "header": ("\n", "cyan", False),
}


def _emit(kind: str, message: str) -> None:
    marker, colour, to_stderr = _STYLES[kind]
    click.secho(f"{marker}{message}", fg=colour, bold=kind == "header", err=to_stderr)


def success(message: str) -> None:
    _emit("success", message)


def error(message: str) -> None:
    """Errors go to stderr so stdout stays parseable."""
    _emit("error", message)


def warning(message: str) -> None:
    _emit("warning", message)


def header(message: str) -> None:
    _emit("header", message)
