"""
inkgen — generate typed Python clients from ink! contract metadata.

Commands:
  inkgen generate METADATA [--wasm PATH] [--out FILE] [--runtime-module MOD]
                           [--handle-name NAME] [--selector-policy P]
                           [--no-strict-schema] [-v]
  inkgen inspect METADATA [--wasm PATH]

Exit codes:
  0  success
  1  the metadata could not be compiled (message on stderr, nothing written)
  2  usage error

Examples:
  inkgen generate target/ink/flipper.json --wasm target/ink/flipper.wasm -o flipper.py
  inkgen inspect target/ink/psp22.json | jq .messages
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from .. import compiler
from ..config import InkgenConfig, load_config
from ..errors import CompileError
from ..version import __version__

log = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(
    name="inkgen",
    help="Generate typed Python clients from ink! contract metadata",
    no_args_is_help=True,
    add_completion=False,
)


class _EchoHandler(logging.Handler):
    """Writes records through typer.echo so they follow the current stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            typer.echo(self.format(record), err=True)
        except Exception:  # pragma: no cover
            self.handleError(record)


def _configure_logging(level: int) -> None:
    logger = logging.getLogger("inkgen")
    logger.setLevel(level)
    if not any(isinstance(h, _EchoHandler) for h in logger.handlers):
        handler = _EchoHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def _config(
    verbose: bool,
    runtime_module: Optional[str] = None,
    handle_name: Optional[str] = None,
    selector_policy: Optional[str] = None,
    strict_schema: Optional[bool] = None,
) -> InkgenConfig:
    try:
        cfg = compiler.with_overrides(
            load_config(),
            runtime_module=runtime_module,
            handle_name=handle_name,
            selector_policy=selector_policy.lower() if selector_policy else None,
            strict_schema=strict_schema,
            log_level=logging.DEBUG if verbose else None,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    _configure_logging(cfg.log_level)
    log.debug("config: %s", cfg.as_dict())
    return cfg


def _read(path: Optional[Path]) -> Optional[bytes]:
    return path.read_bytes() if path is not None else None


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"inkgen {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the inkgen version and exit",
    ),
) -> None:
    """
    inkgen compiles an ink! metadata document (v4) into a Python module with
    typed declarations, a contract handle and an event decoder.

    Settings are resolved from flags, then INKGEN_* environment variables,
    then built-in defaults.
    """


@app.command()
def generate(
    metadata: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Contract metadata JSON"),
    wasm: Optional[Path] = typer.Option(
        None, "--wasm", exists=True, dir_okay=False, readable=True, help="Contract code; enables upload()"
    ),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the module here instead of stdout"),
    runtime_module: Optional[str] = typer.Option(
        None, "--runtime-module", help="Import path of the runtime package"
    ),
    handle_name: Optional[str] = typer.Option(
        None, "--handle-name", help="Class name of the contract handle"
    ),
    selector_policy: Optional[str] = typer.Option(
        None, "--selector-policy", help="declared | computed"
    ),
    strict_schema: Optional[bool] = typer.Option(
        None, "--strict-schema/--no-strict-schema", help="Validate against the metadata JSON schema"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline details to stderr"),
) -> None:
    """Compile METADATA into a Python client module."""
    cfg = _config(verbose, runtime_module, handle_name, selector_policy, strict_schema)
    try:
        source = compiler.generate(metadata.read_bytes(), wasm=_read(wasm), config=cfg)
    except CompileError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)

    if out is None:
        typer.echo(source, nl=False)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(source, encoding="utf-8")
    log.info("wrote %s", out)


@app.command()
def inspect(
    metadata: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Contract metadata JSON"),
    wasm: Optional[Path] = typer.Option(None, "--wasm", exists=True, dir_okay=False, readable=True, help="Contract code"),
    selector_policy: Optional[str] = typer.Option(
        None, "--selector-policy", help="declared | computed"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline details to stderr"),
) -> None:
    """Print a JSON summary: selectors, interfaces, events and declarations."""
    cfg = _config(verbose, selector_policy=selector_policy)
    try:
        unit = compiler.compile_metadata(metadata.read_bytes(), wasm=_read(wasm), config=cfg)
    except CompileError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(unit.to_dict(), indent=2))


def main() -> None:
    """Entry point for the inkgen CLI."""
    app()


if __name__ == "__main__":
    main()
