"""Terminal output for result rows."""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from ga4explorer.export import columns_for, save_export, to_csv, to_json
from ga4explorer.views import Page, as_text


def format_cell(value: Any) -> str:
    # GA4 hands back rates like 0.4285714285714; 3 places is plenty on screen
    if isinstance(value, float) and not value.is_integer():
        return str(round(value, 3))
    return as_text(value)


def render_table(
    console: Console,
    rows: list[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
    caption: str | None = None,
) -> None:
    table = Table(title=title, caption=caption)
    columns = columns_for(rows, columns)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*[format_cell(row.get(c)) for c in columns])
    console.print(table)


def output_rows(
    console: Console,
    rows: list[dict[str, Any]],
    columns: list[str] | None,
    output_format: str,
    title: str | None = None,
    page: Page | None = None,
    save: bool = False,
    out_dir: Path = Path("./.out"),
) -> Path | None:
    """Print (or save) rows as table, json or csv.

    only the table view is paginated - json and csv always get every row,
    since they're usually piped somewhere.
    """
    if output_format not in ("table", "json", "csv"):
        raise ValueError(f"Unknown output format: {output_format}. Use: table, json, csv")

    if output_format == "table" and not save:
        shown = page.data if page is not None else rows
        caption = None
        if page is not None and page.total_pages > 1:
            caption = (
                f"Page {page.current_page} of {page.total_pages} "
                f"(rows {page.start_index + 1}-{page.end_index} of {page.total_records})"
            )
        render_table(console, shown, columns, title=title, caption=caption)
        return None

    if output_format == "csv":
        content, ext = to_csv(rows, columns), "csv"
    elif output_format == "json":
        content, ext = to_json(rows), "json"
    else:
        # saving a table view writes csv - a rich table isn't a file format
        content, ext = to_csv(rows, columns), "csv"

    if save:
        path = save_export(content, ext, out_dir)
        console.print(f"[green]Saved to {path}[/green]")
        return path

    # plain print so redirected output isn't wrapped or styled
    print(content, end="" if content.endswith("\n") else "\n")
    return None
