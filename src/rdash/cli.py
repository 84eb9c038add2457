"""
Command-line interface for the retail dashboard.
"""

import typer
from typing import Optional
from rich.console import Console
from rich.table import Table

from .config import get_config, reload_config, setup_logging
from .aggregate import aggregate_sales, get_sales_summary, product_history
from .backtest import compare_models, best_model
from .constants import MIN_PRODUCT_HISTORY
from .data_loader import DataLoadError, LoadedOrders, load_orders
from .models.forecast_api import DemandForecaster, InsufficientHistoryError, UnknownModelError, UnknownProductError

app = typer.Typer(
    name="rdash",
    help="Retail Dashboard CLI - order feed inspection and monthly demand forecasting",
    rich_markup_mode="rich"
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Read settings from an env file first"),
):
    """Configure settings and logging for every command."""
    if env_file:
        reload_config(env_file)
    logging_config = get_config().logging
    if verbose:
        logging_config.level = "DEBUG"
    setup_logging(logging_config)


def _load(source: Optional[str]) -> LoadedOrders:
    cfg = get_config()
    source = source or cfg.data.data_url

    console.print(f"[blue]Loading orders from {source}[/blue]")
    try:
        return load_orders(source, timeout=cfg.data.request_timeout)
    except DataLoadError as e:
        console.print(f"[red]Error loading data: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def load(
    source: Optional[str] = typer.Option(None, "--source", help="Feed URL or JSON file path"),
    show_issues: bool = typer.Option(True, "--issues/--no-issues", help="Show validation issues"),
):
    """Load and validate the order feed."""
    loaded = _load(source)
    report = loaded.report

    table = Table(title="Load Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Source", report.source)
    table.add_row("Total Records", f"{report.total_records:,}")
    table.add_row("Valid Orders", f"{report.valid_records:,}")
    table.add_row("Invalid Records", f"{report.invalid_records:,}")

    summary = get_sales_summary(aggregate_sales(loaded.orders))
    table.add_row("Sales Records", f"{summary['records']:,}")
    table.add_row("Products", f"{summary['products']:,}")
    if summary["month_range"]:
        first, last = summary["month_range"]
        table.add_row("Month Range", f"{first} to {last}")
    table.add_row("Units Sold", f"{summary['total_units']:,.0f}")

    console.print(table)

    if show_issues and report.issues:
        issues = Table(title="Validation Issues")
        issues.add_column("Record", style="cyan")
        issues.add_column("Errors", style="yellow")
        for issue in report.issues:
            issues.add_row(str(issue.index), "\n".join(issue.errors))
        console.print(issues)


@app.command()
def sales(
    source: Optional[str] = typer.Option(None, "--source", help="Feed URL or JSON file path"),
    product: Optional[str] = typer.Option(None, "--product", help="Show only this product"),
):
    """Show monthly sales per product."""
    records = aggregate_sales(_load(source).orders)

    if product:
        records = product_history(records, product)
        if not records:
            console.print(f"[red]No sales data found for product: {product}[/red]")
            raise typer.Exit(1)
    else:
        records = sorted(records, key=lambda r: (r.product_name, r.month))

    table = Table(title="Monthly Sales")
    table.add_column("Product", style="cyan")
    table.add_column("Month", style="magenta")
    table.add_column("Units Sold", style="green", justify="right")
    table.add_column("Avg Price", style="yellow", justify="right")

    for record in records:
        table.add_row(
            record.product_name,
            record.month,
            f"{record.units_sold:,}",
            f"{record.price:,.2f}"
        )

    console.print(table)


@app.command()
def forecast(
    product: str = typer.Argument(..., help="Product to forecast"),
    model: Optional[str] = typer.Option(None, "--model", help="ses, holt or holt_winters"),
    horizon: Optional[int] = typer.Option(None, "--horizon", help="Forecast horizon in months"),
    source: Optional[str] = typer.Option(None, "--source", help="Feed URL or JSON file path"),
):
    """Forecast the monthly demand of a product."""
    cfg = get_config()
    model = model or cfg.model.default_model
    horizon = horizon or cfg.model.default_horizon

    forecaster = DemandForecaster(aggregate_sales(_load(source).orders))

    try:
        result = forecaster.forecast_product(product, model=model, horizon=horizon)
    except (UnknownProductError, UnknownModelError, InsufficientHistoryError, ValueError) as e:
        console.print(f"[red]Error generating forecast: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Forecast Results for {product}")
    table.add_column("Month", style="cyan")
    table.add_column("Units", style="green", justify="right")
    table.add_column("Type", style="yellow")

    for month, units in zip(result.months, result.history):
        table.add_row(month, f"{units:,}", "actual")
    for month, units in zip(result.forecast_months, result.forecast):
        table.add_row(month, f"{units:,.2f}", "forecast")

    console.print(table)

    console.print(f"\n[blue]Model Used: {result.model_used.label}[/blue]")
    if result.fell_back:
        console.print(
            f"[yellow]{result.model_requested.label} needs more history; "
            f"fell back to {result.model_used.label}[/yellow]"
        )
    console.print(f"[green]Demand forecast for next month: {result.demand_forecast} units[/green]")


@app.command()
def backtest(
    product: str = typer.Argument(..., help="Product to backtest"),
    source: Optional[str] = typer.Option(None, "--source", help="Feed URL or JSON file path"),
):
    """Compare the forecasting models on a product's history."""
    forecaster = DemandForecaster(aggregate_sales(_load(source).orders))

    try:
        series = forecaster.series(product)
    except UnknownProductError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if len(series) <= MIN_PRODUCT_HISTORY:
        console.print(
            f"[red]Backtesting needs at least {MIN_PRODUCT_HISTORY + 1} months of history, "
            f"{product} has {len(series)}[/red]"
        )
        raise typer.Exit(1)

    results = compare_models(series)
    winner = best_model(results)

    table = Table(title=f"Backtest Results for {product}")
    table.add_column("Model", style="cyan")
    table.add_column("Origins", style="magenta", justify="right")
    table.add_column("MAPE", style="green", justify="right")
    table.add_column("sMAPE", style="green", justify="right")
    table.add_column("RMSE", style="green", justify="right")

    for model, result in results.items():
        metrics = result["metrics"]
        name = f"{model.label} *" if model == winner else model.label
        table.add_row(
            name,
            str(result["origins"]),
            f"{metrics['mape']:.1f}%",
            f"{metrics['smape']:.1f}%",
            f"{metrics['rmse']:.2f}"
        )

    console.print(table)
    if winner:
        console.print(f"\n[blue]Best model by MAPE: {winner.label}[/blue]")


@app.command()
def api(
    serve: bool = typer.Option(False, "--serve", help="Start the API server"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Number of worker processes"),
):
    """API operations."""
    api_config = get_config().api

    if serve:
        host = host or api_config.host
        port = port or api_config.port
        console.print(f"[blue]Starting API server on {host}:{port}[/blue]")

        import uvicorn

        uvicorn.run(
            "rdash.api:app",
            host=host,
            port=port,
            workers=workers or api_config.workers,
            reload=api_config.reload,
            log_level=api_config.log_level
        )

    else:
        console.print("[yellow]No API operation specified. Use --serve to start the server.[/yellow]")


@app.command()
def version():
    """Show version information."""
    from . import __version__
    console.print(f"[blue]Retail Dashboard v{__version__}[/blue]")


if __name__ == "__main__":
    app()
