"""Data CRUD commands."""

from typing import Annotated

import typer

from scaffolddb.cli.context import CLIContext
from scaffolddb.cli.output import OutputFormatter
from scaffolddb.cli.parsing import load_body, parse_params
from scaffolddb.exceptions import ScaffoldDBError

# Create data subcommand group
app = typer.Typer(help="Manage entity data (CRUD operations)")

DataArgument = Annotated[str | None, typer.Argument(help="Record data as JSON string")]
FromFileOption = Annotated[
    str | None,
    typer.Option("--from-file", "-f", help="Load record data from a JSON file"),
]


@app.command("list")
def data_list(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    params: Annotated[
        list[str] | None,
        typer.Option(
            "--param",
            "-p",
            help="Query parameter as key=value (page, per_page, sort, with, filters). "
            "Can be repeated.",
        ),
    ] = None,
) -> None:
    """List records with filters, sorting and pagination.

    Examples:

        scaffolddb data list items -p sort=-name -p per_page=10

        scaffolddb data list items -p quantity_gte=5 -p email_null=true -p with=category
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        query = parse_params(params)
        resource = cli_ctx.get_db().resource(entity_name)
        formatter.print_records(resource.meta, resource.list(query))
    except (ScaffoldDBError, ValueError) as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("get")
def data_get(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    record_id: Annotated[str, typer.Argument(help="Record ID")],
    with_relations: Annotated[
        str | None,
        typer.Option("--with", "-w", help="Relations to load, comma-separated"),
    ] = None,
) -> None:
    """Get a record by ID.

    Examples:

        scaffolddb data get items 1 --with category
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        resource = cli_ctx.get_db().resource(entity_name)
        params = {"with": with_relations} if with_relations else None
        formatter.print_data(resource.get(record_id, params)["data"])
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("create")
def data_create(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    data_json: DataArgument = None,
    from_file: FromFileOption = None,
) -> None:
    """Create a record.

    Examples:

        scaffolddb data create items '{"name": "Widget", "category_id": 1}'

        scaffolddb data create items --from-file item.json
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        body = load_body(data_json, from_file)
        record = cli_ctx.get_db().resource(entity_name).create(body)["data"]
        formatter.print_success("Created record", {"id": record["id"]})
    except (ScaffoldDBError, ValueError, OSError) as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("replace")
def data_replace(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    record_id: Annotated[str, typer.Argument(help="Record ID")],
    data_json: DataArgument = None,
    from_file: FromFileOption = None,
) -> None:
    """Replace a record. Properties left out fall back to their default or NULL.

    Examples:

        scaffolddb data replace items 3 '{"name": "Widget", "category_id": 2}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        body = load_body(data_json, from_file)
        record = cli_ctx.get_db().resource(entity_name).replace(record_id, body)["data"]
        formatter.print_success("Replaced record", {"id": record["id"]})
    except (ScaffoldDBError, ValueError, OSError) as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("update")
def data_update(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    record_id: Annotated[str, typer.Argument(help="Record ID")],
    data_json: DataArgument = None,
    from_file: FromFileOption = None,
) -> None:
    """Update only the given properties of a record.

    Examples:

        scaffolddb data update items 3 '{"quantity": 7}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        body = load_body(data_json, from_file)
        record = cli_ctx.get_db().resource(entity_name).patch(record_id, body)["data"]
        formatter.print_success("Updated record", {"id": record["id"]})
    except (ScaffoldDBError, ValueError, OSError) as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()


@app.command("delete")
def data_delete(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name or route path")],
    record_id: Annotated[str, typer.Argument(help="Record ID")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation"),
    ] = False,
) -> None:
    """Delete a record.

    Examples:

        scaffolddb data delete items 3 --force
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        if not force and not cli_ctx.json_output:
            typer.confirm(f"Delete {entity_name} record {record_id}?", abort=True)

        deleted = cli_ctx.get_db().resource(entity_name).delete(record_id)["data"]
        formatter.print_success("Deleted record", {"id": deleted["id"]})
    except ScaffoldDBError as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e
    finally:
        cli_ctx.close()
