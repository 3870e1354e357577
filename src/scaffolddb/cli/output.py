"""Output formatting for CLI commands."""

import json
import pprint
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scaffolddb.core.types import EntityMeta
from scaffolddb.exceptions import ScaffoldDBError

console = Console()


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array.

        Args:
            title: Table title
            data: List of row dictionaries
            columns: Column names to display
        """
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[_cell(row.get(col)) for col in columns])
            console.print(table)

    def print_entity(self, meta: EntityMeta) -> None:
        """Print one entity with its properties and relations."""
        if self.json_mode:
            print(json.dumps(meta.model_dump(mode="json"), default=str, indent=2))
            return

        console.print(f"\n[bold]Entity:[/bold] {meta.entity_name}")
        console.print(f"Table: {meta.table_name}")
        console.print(f"Route: {meta.route_path}")
        if meta.pivot:
            console.print("Pivot: yes")
        if meta.seed:
            console.print(f"Seed rows: {len(meta.seed)}")

        if meta.properties:
            console.print(f"\n[bold]Properties ({len(meta.properties)}):[/bold]")
            props_table = Table(show_header=True, header_style="bold cyan")
            props_table.add_column("Name")
            props_table.add_column("Type")
            props_table.add_column("Nullable")
            props_table.add_column("Default")
            props_table.add_column("Values / Entity")

            for prop in meta.properties:
                extra = ", ".join(str(v) for v in prop.values) if prop.values else prop.entity
                props_table.add_row(
                    prop.name,
                    prop.type.value,
                    "✓" if prop.nullable else "",
                    _cell(prop.default) if prop.has_default else "",
                    extra or "",
                )
            console.print(props_table)

        if meta.relations:
            console.print(f"\n[bold]Relations ({len(meta.relations)}):[/bold]")
            rel_table = Table(show_header=True, header_style="bold cyan")
            rel_table.add_column("With")
            rel_table.add_column("Property")
            rel_table.add_column("To Entity")

            for rel in meta.relations:
                rel_table.add_row(rel.short_name, rel.property, rel.target_entity)
            console.print(rel_table)

    def print_records(self, entity: EntityMeta, result: dict[str, Any]) -> None:
        """Print a list response: the page of records and its pagination block."""
        if self.json_mode:
            print(json.dumps(result, default=str, indent=2))
            return

        meta = result.get("meta", {})
        rows = result.get("data", [])
        columns = ["id", *(p.name for p in entity.properties)]
        # Loaded relations; timestamps are left to JSON mode.
        extra = [rel.short_name for rel in entity.relations if rows and rel.short_name in rows[0]]
        self.print_table(
            f"{entity.entity_name} (page {meta.get('page')} of {meta.get('last_page')}, "
            f"{meta.get('total')} total)",
            rows,
            columns + extra,
        )

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, ScaffoldDBError):
                print(json.dumps(error.to_dict(), indent=2))
            else:
                print(json.dumps({"error": {"message": str(error)}}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, ScaffoldDBError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (dict, list, etc.)."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            pprint.pprint(data)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)
