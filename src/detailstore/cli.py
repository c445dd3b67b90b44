# src/detailstore/cli.py
"""detailstore Command Line Interface.

Inspection tooling: which columns a table declares and how column
references resolve against them.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from detailstore import __version__
from detailstore.contracts import DetailPath, MissingDetailColumnError, ResolvedTarget, SchemaColumn
from detailstore.core.cache import MemoryCacheProvider
from detailstore.core.config import DetailStoreSettings, load_settings
from detailstore.core.resolver import resolve_column, resolve_column_strict
from detailstore.core.store import DetailStore

__all__ = [
    "app",
]

app = typer.Typer(
    name="detailstore",
    help="detailstore: relational columns plus a JSON detail column.",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    console = "console"
    json = "json"


class ConfigFormat(str, Enum):
    yaml = "yaml"
    json = "json"


SettingsOption = typer.Option(
    None,
    "--settings",
    "-s",
    help="Path to settings YAML file.",
)
UrlOption = typer.Option(
    None,
    "--url",
    help="Database URL (overrides settings).",
)
FormatOption = typer.Option(
    OutputFormat.console,
    "--format",
    "-f",
    help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"detailstore version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)
    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """detailstore: relational columns plus a JSON detail column."""
    from detailstore.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)


def _load_settings(settings: Path | None) -> DetailStoreSettings:
    """Load settings, turning configuration errors into a clean exit."""
    try:
        return load_settings(settings)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        # Must precede ValueError: ValidationError inherits from it
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _open_store(settings: Path | None, url: str | None) -> DetailStore:
    loaded = _load_settings(settings)
    if url is not None:
        loaded = loaded.model_copy(update={"database": loaded.database.model_copy(update={"url": url})})
    # Fresh provider: one-shot commands share no snapshots
    return DetailStore.from_settings(loaded, MemoryCacheProvider())


def _kind(target: ResolvedTarget) -> str:
    match target:
        case SchemaColumn():
            return "schema"
        case DetailPath():
            return "detail"
        case _:
            return "passthrough"


@app.command()
def columns(
    table: str = typer.Argument(..., help="Table to inspect."),
    settings: Path | None = SettingsOption,
    url: str | None = UrlOption,
    output_format: OutputFormat = FormatOption,
) -> None:
    """Show the declared columns of a table."""
    with _open_store(settings, url) as store:
        declared = store.schema_cache.columns_of(table)
        has_detail = store.schema_cache.has_detail_column(table)

    if output_format == OutputFormat.json:
        typer.echo(json.dumps({"table": table, "columns": list(declared), "has_detail_column": has_detail}))
        return

    if not declared:
        typer.echo(f"{table}: no columns (table not found?)")
        return
    typer.echo(f"{table}:")
    for name in declared:
        typer.echo(f"  {name}")
    typer.echo(f"detail column: {'yes' if has_detail else 'no'}")


@app.command()
def resolve(
    table: str = typer.Argument(..., help="Table the references belong to."),
    references: list[str] = typer.Argument(..., help="Column references to resolve."),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail when a reference needs a detail column the table lacks.",
    ),
    entity: str | None = typer.Option(
        None,
        "--entity",
        help="Entity name reported by --strict failures (defaults to the table).",
    ),
    settings: Path | None = SettingsOption,
    url: str | None = UrlOption,
    output_format: OutputFormat = FormatOption,
) -> None:
    """Show how column references resolve against a table."""
    with _open_store(settings, url) as store:
        declared = store.schema_cache.columns_of(table)

    results: list[dict[str, str]] = []
    for reference in references:
        try:
            if strict:
                target = resolve_column_strict(table, reference, declared, entity_name=entity or table)
            else:
                target = resolve_column(table, reference, declared)
        except MissingDetailColumnError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None
        results.append({"reference": reference, "kind": _kind(target), "column": str(target.column)})

    if output_format == OutputFormat.json:
        typer.echo(json.dumps(results))
        return
    for result in results:
        typer.echo(f"{result['reference']} -> {result['column']} ({result['kind']})")


@app.command("config")
def show_config(
    settings: Path | None = SettingsOption,
    output_format: ConfigFormat = typer.Option(
        ConfigFormat.yaml,
        "--format",
        "-f",
        help="Output format: 'yaml' or 'json'.",
    ),
) -> None:
    """Show the effective configuration (file, environment and defaults)."""
    config_dict = _load_settings(settings).model_dump()
    if output_format == ConfigFormat.json:
        typer.echo(json.dumps(config_dict, indent=2))
    else:
        typer.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    app()
