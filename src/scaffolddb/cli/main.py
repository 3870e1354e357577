"""scaffolddb CLI - Main entry point."""

from typing import Annotated

import typer

import scaffolddb
from scaffolddb.cli.context import CLIContext, get_database_url, get_schema_path

# Create main Typer app
app = typer.Typer(
    name="scaffolddb",
    help="scaffolddb CLI - Schema-driven tables and CRUD over SQLite",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="SCAFFOLDDB_URL",
            help="Database URL or SQLite file path",
        ),
    ] = None,
    schema: Annotated[
        str | None,
        typer.Option(
            "--schema",
            "-s",
            envvar="SCAFFOLDDB_SCHEMA",
            help="Schema YAML file",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    cli_ctx = CLIContext(
        database_url=get_database_url(database),
        schema_path=get_schema_path(schema),
        echo=echo,
        json_output=json_output,
    )

    # Store in Typer context for command access
    ctx.obj = cli_ctx


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"scaffolddb v{scaffolddb.__version__}")


# Register command groups
from scaffolddb.cli.commands import data, schema  # noqa: E402

app.add_typer(schema.app, name="schema")
app.add_typer(data.app, name="data")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
