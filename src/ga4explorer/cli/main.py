"""CLI for GA4 Explorer."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ga4explorer.auth import load_credentials, sign_out
from ga4explorer.cli.render import output_rows
from ga4explorer.config.settings import Settings
from ga4explorer.dates import RANGE_TYPES, resolve_date_range
from ga4explorer.explorer import Explorer
from ga4explorer.logging_config import configure_logging
from ga4explorer.models.query import DateRange, OrderBy, QueryResult, QuerySpec
from ga4explorer.session_flow import SessionFlowAnalyzer
from ga4explorer.views import (
    ViewState,
    apply_view,
    filters_summary,
    paginate,
    parse_filter,
    parse_sort_key,
)

app = typer.Typer(
    name="gax",
    help="GA4 Explorer - Google Analytics 4 reporting CLI",
    no_args_is_help=True,
)
console = Console()

# shared option types - every reporting command takes the same output knobs
CatalogueOpt = Annotated[
    Path | None, typer.Option("--catalogue", "-c", help="Extra catalogue YAML file")
]
PropertyOpt = Annotated[
    str | None, typer.Option("--property", "-p", help="GA4 property ID (overrides selection)")
]
RangeOpt = Annotated[
    str | None, typer.Option("--range", "-r", help=f"Date range: {', '.join(RANGE_TYPES)}")
]
StartOpt = Annotated[str | None, typer.Option("--start", help="Start date (YYYY-MM-DD)")]
EndOpt = Annotated[str | None, typer.Option("--end", help="End date (YYYY-MM-DD)")]
OutputOpt = Annotated[
    str, typer.Option("--output", "-o", help="Output format: table, json, csv")
]
SaveOpt = Annotated[bool, typer.Option("--save", help="Save output to the output directory")]
SortOpt = Annotated[
    list[str] | None, typer.Option("--sort", help="Sort column, e.g. sessions:desc (repeatable)")
]
FilterOpt = Annotated[
    list[str] | None,
    typer.Option("--filter", "-f", help="Row filter, e.g. country=US or sessions>=10 (repeatable)"),
]
PageOpt = Annotated[int, typer.Option("--page", help="Page to show in table output")]
PageSizeOpt = Annotated[int, typer.Option("--page-size", help="Rows per page in table output")]


def get_explorer(catalogue_file: Path | None = None) -> Explorer:
    settings = Settings()
    if catalogue_file is not None:
        settings.catalogue_file = catalogue_file
    return Explorer(settings)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    configure_logging(logging.DEBUG if verbose else Settings().log_level)


def _load_explorer(catalogue_file: Path | None = None) -> Explorer:
    try:
        return get_explorer(catalogue_file)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


def _date_range(explorer: Explorer, kind: str | None, start: str | None, end: str | None) -> DateRange:
    if start or end:
        return resolve_date_range("custom", start, end)
    if kind:
        return resolve_date_range(kind)
    return explorer.default_date_range()


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


@app.command()
def auth() -> None:
    """Sign in with Google and cache the token."""
    try:
        load_credentials(Settings(), interactive=True)
    except Exception as e:
        console.print(f"[red]Authentication failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]Authentication successful![/green]")


@app.command()
def signout() -> None:
    """Forget the cached token and selected property."""
    removed = sign_out(Settings())
    if removed:
        console.print(f"[green]Cleared: {', '.join(removed)}[/green]")
    else:
        console.print("[yellow]No stored data found to clear[/yellow]")


@app.command()
def properties() -> None:
    """List the GA4 properties your account can access."""
    explorer = _load_explorer()
    try:
        props = explorer.list_properties()
    except Exception as e:
        console.print(f"[red]Failed to fetch properties: {e}[/red]")
        raise typer.Exit(1)

    if not props:
        console.print("[yellow]No Google Analytics properties found[/yellow]")
        return

    table = Table(title="Properties")
    table.add_column("Property ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Account", style="yellow")
    for prop in props:
        table.add_row(prop.property_id, prop.display_name, prop.account_name)
    console.print(table)

    current = explorer.selected_property()
    if current:
        console.print(f"Currently selected: [green]{current}[/green]")


@app.command()
def select(
    property_id: Annotated[str | None, typer.Argument(help="Property ID to use for queries")] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Forget the selection")] = False,
) -> None:
    """Select the property used by later queries (no argument shows the current one)."""
    explorer = _load_explorer()

    if clear:
        if explorer.clear_property():
            console.print("[green]Property selection cleared[/green]")
        else:
            console.print("[yellow]No property selected[/yellow]")
        return

    if property_id is None:
        current = explorer.selected_property()
        if current:
            console.print(f"Selected property: [green]{current}[/green]")
        else:
            console.print("[yellow]No property selected[/yellow]")
        return

    try:
        explorer.select_property(property_id)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Selected property: {explorer.selected_property()}[/green]")


@app.command()
def presets(catalogue_file: CatalogueOpt = None) -> None:
    """List the preset reports."""
    explorer = _load_explorer(catalogue_file)
    items = explorer.list_presets()
    if not items:
        console.print("[yellow]No presets defined[/yellow]")
        return

    table = Table(title="Presets")
    table.add_column("ID", style="cyan")
    table.add_column("Label", style="green")
    table.add_column("Metrics")
    table.add_column("Dimensions", style="yellow")
    for p in items:
        table.add_row(p["id"], p["label"], ", ".join(p["metrics"]), ", ".join(p["dimensions"]))
    console.print(table)


@app.command()
def schema(catalogue_file: CatalogueOpt = None) -> None:
    """Show metric and dimension names and the GA4 names behind them."""
    explorer = _load_explorer(catalogue_file)
    info = explorer.schema()
    for kind in ("metrics", "dimensions"):
        table = Table(title=kind.capitalize())
        table.add_column("Name", style="cyan")
        table.add_column("GA4 name", style="green")
        for name, ga_name in info[kind].items():
            table.add_row(name, ga_name)
        console.print(table)


@app.command()
def query(
    metrics: Annotated[str, typer.Argument(help="Comma-separated metric names")],
    dimensions: Annotated[
        str | None, typer.Option("--dimensions", "-g", help="Comma-separated dimensions")
    ] = None,
    order_by: Annotated[
        list[str] | None,
        typer.Option("--order-by", help="Server-side ordering, e.g. sessions:desc (repeatable)"),
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Maximum rows")] = None,
    date_range: RangeOpt = None,
    start_date: StartOpt = None,
    end_date: EndOpt = None,
    property_id: PropertyOpt = None,
    catalogue_file: CatalogueOpt = None,
    output: OutputOpt = "table",
    save: SaveOpt = False,
    sort: SortOpt = None,
    filters: FilterOpt = None,
    page: PageOpt = 1,
    page_size: PageSizeOpt = 50,
) -> None:
    """Run an ad-hoc query."""
    explorer = _load_explorer(catalogue_file)
    metric_list = _split(metrics)
    dim_list = _split(dimensions)

    try:
        order_bys = []
        for text in order_by or []:
            key = parse_sort_key(text)
            desc = key.direction == "desc"
            if key.column in metric_list:
                order_bys.append(OrderBy(metric=key.column, desc=desc))
            else:
                order_bys.append(OrderBy(dimension=key.column, desc=desc))

        spec = QuerySpec(
            dimensions=dim_list,
            metrics=metric_list,
            date_range=_date_range(explorer, date_range, start_date, end_date),
            limit=limit,
            order_bys=order_bys,
        )
        result = explorer.query(spec, property_id)
    except Exception as e:
        console.print(f"[red]Query error: {e}[/red]")
        raise typer.Exit(1)

    _output_result(explorer, result, output, save, sort, filters, page, page_size)


@app.command()
def preset(
    preset_id: Annotated[str, typer.Argument(help="Preset ID (see 'gax presets')")],
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Maximum rows")] = None,
    date_range: RangeOpt = None,
    start_date: StartOpt = None,
    end_date: EndOpt = None,
    property_id: PropertyOpt = None,
    catalogue_file: CatalogueOpt = None,
    output: OutputOpt = "table",
    save: SaveOpt = False,
    sort: SortOpt = None,
    filters: FilterOpt = None,
    page: PageOpt = 1,
    page_size: PageSizeOpt = 50,
) -> None:
    """Run a preset report."""
    explorer = _load_explorer(catalogue_file)
    try:
        result = explorer.run_preset(
            preset_id,
            date_range=_date_range(explorer, date_range, start_date, end_date),
            limit=limit,
            property_id=property_id,
        )
    except Exception as e:
        console.print(f"[red]Query error: {e}[/red]")
        raise typer.Exit(1)

    title = explorer.catalogue.get_preset(preset_id).label
    _output_result(explorer, result, output, save, sort, filters, page, page_size, title)


@app.command()
def flow(
    kind: Annotated[
        str,
        typer.Argument(
            help="path_exploration, user_journey, funnel_analysis, exit_analysis, landing_analysis"
        ),
    ],
    date_range: RangeOpt = None,
    start_date: StartOpt = None,
    end_date: EndOpt = None,
    property_id: PropertyOpt = None,
    output: OutputOpt = "table",
    save: SaveOpt = False,
) -> None:
    """Run a session flow analysis."""
    explorer = _load_explorer()
    analyzer = SessionFlowAnalyzer(explorer, property_id)
    try:
        result = analyzer.analyze(kind, _date_range(explorer, date_range, start_date, end_date))
        output_rows(
            console,
            result.rows(),
            None,
            output,
            title=kind.replace("_", " ").title(),
            save=save,
            out_dir=explorer.settings.output_dir,
        )
    except Exception as e:
        console.print(f"[red]Analysis error: {e}[/red]")
        raise typer.Exit(1)

    if output == "table" and getattr(result, "overall_rate", None) is not None:
        console.print(f"[yellow]Overall conversion rate: {result.overall_rate}%[/yellow]")


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port to listen on")] = 3001,
) -> None:
    """Run the REST API server."""
    import uvicorn

    console.print(f"[green]GA4 Explorer API listening on http://{host}:{port}[/green]")
    uvicorn.run("ga4explorer.api.app:app", host=host, port=port)


def _output_result(
    explorer: Explorer,
    result: QueryResult,
    output_format: str,
    save: bool,
    sort: list[str] | None,
    filters: list[str] | None,
    page: int,
    page_size: int,
    title: str | None = None,
) -> None:
    """Apply view options then print the result."""
    try:
        state = ViewState(
            sort_keys=[parse_sort_key(s) for s in sort or []],
            page_size=page_size,
        )
        for text in filters or []:
            state.add_filter(parse_filter(text))

        rows = apply_view(result.data, state)
        summary = filters_summary(state)
        if summary and output_format == "table":
            console.print(f"[cyan]{summary}[/cyan]")

        output_rows(
            console,
            rows,
            result.columns,
            output_format,
            title=title or f"Query Results ({len(rows)} rows, {result.execution_time_ms}ms)",
            page=paginate(rows, page, state.page_size),
            save=save,
            out_dir=explorer.settings.output_dir,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
