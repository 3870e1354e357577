"""Schema and migration commands."""

from typing import Annotated

import typer

from scaffolddb.cli.context import CLIContext
from scaffolddb.cli.output import OutputFormatter
from scaffolddb.exceptions import ScaffoldDBError

# Create schema subcommand group
app = typer.Typer(help="Migrate the database and inspect entities")


@app.command("migrate")
def schema_migrate(ctx: typer.Context) -> None:
    """Create missing tables and columns, then seed empty tables.

    Safe to run repeatedly: a second run reports nothing created or seeded.
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        migration = db.migration_result
        formatter.print_success(
            "Database is up to date",
            {
                "created": migration.created,
                "altered": migration.altered,
                "seeded": db.seed_result.seeded,
            },
        )
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("list")
def schema_list(ctx: typer.Context) -> None:
    """List all entities declared in the schema."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        table_data = [
            {
                "Name": meta.entity_name,
                "Table": meta.table_name,
                "Route": meta.route_path,
                "Properties": len(meta.properties),
                "Pivot": "✓" if meta.pivot else "",
                "Relations": ", ".join(rel.short_name for rel in meta.relations),
            }
            for meta in db.entities
        ]

        if cli_ctx.json_output:
            formatter.print_data(db.describe()["entities"])
        else:
            formatter.print_table(
                f"Entities ({len(table_data)} total)",
                table_data,
                ["Name", "Table", "Route", "Properties", "Pivot", "Relations"],
            )
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("describe")
def schema_describe(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
) -> None:
    """Show detailed entity information."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        formatter.print_entity(db.resource(entity_name).meta)
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("routes")
def schema_routes(ctx: typer.Context) -> None:
    """List the routes a web server should bind, six per entity."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        routes = [route.model_dump(mode="json") for route in db.routes()]
        formatter.print_table(
            f"Routes ({len(routes)} total)",
            routes,
            ["method", "path", "operation", "entity"],
        )
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()
