"""
Command-line interface for the coffee balancing report.
"""
import sys

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box
from rich.markup import escape

from .aggregator import format_number, format_ugx, percent
from .config import PAGE_SIZE_OPTIONS, config
from .exceptions import ValidationError
from .logging_config import setup_logging
from .models import AssessedFilter, BalancedFilter, FinanceFilter, FinanceState, Preset
from .reconciler import BalancingReport, create_demo_source
from .reporting import ReportGenerator
from .supabase_client import SupabaseDataSource


console = Console()


def _choices(enum_cls):
    return click.Choice([member.value for member in enum_cls])


@click.group()
@click.version_option(version="1.0.0")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", type=click.Path(), default=None, help="Also write logs to this file")
@click.option("--json-logs", is_flag=True, help="Emit structured JSON logs")
def cli(log_level, log_file, json_logs):
    """
    Coffee Balancing Report

    Joins coffee intake records with quality assessments and finance
    payments, and reports which deliveries are balanced.
    """
    setup_logging(level=log_level or config.log_level, log_file=log_file, json_format=json_logs)


@cli.command()
@click.option("--preset", "-p", type=_choices(Preset), default=Preset.DAILY.value, help="Date range preset")
@click.option("--from-date", "-s", help="Period start (YYYY-MM-DD); switches to custom")
@click.option("--to-date", "-e", help="Period end (YYYY-MM-DD); switches to custom")
@click.option("--assessed", type=_choices(AssessedFilter), default="all", help="Assessment filter")
@click.option("--finance", type=_choices(FinanceFilter), default="all", help="Finance state filter")
@click.option("--balanced", type=_choices(BalancedFilter), default="all", help="Balance filter")
@click.option("--coffee-type", default="all", help="Coffee type filter")
@click.option("--status", "record_status", default="all", help="Record status filter")
@click.option("--search", "-q", default="", help="Search batch, supplier, coffee type and status")
@click.option("--page", default=1, type=int, help="Page to display")
@click.option("--page-size", default=None, type=click.Choice([str(n) for n in PAGE_SIZE_OPTIONS]),
              help="Rows per page")
@click.option("--export/--no-export", default=False, help="Write the detail export")
@click.option("--summary", is_flag=True, help="Write the summary CSV")
@click.option("--format", "-f", "formats", multiple=True, default=["csv"],
              type=click.Choice(["csv", "json", "excel"]), help="Detail export formats")
@click.option("--output-dir", "-o", type=click.Path(), default=None, help="Output directory for exports")
@click.option("--demo", is_flag=True, help="Run with sample demo data")
def report(preset, from_date, to_date, assessed, finance, balanced, coffee_type, record_status,
           search, page, page_size, export, summary, formats, output_dir, demo):
    """
    Build the balancing report.

    Examples:
        balancing report --preset weekly
        balancing report --from-date 2024-03-01 --to-date 2024-03-10 --export
        balancing report --demo --preset monthly --finance missing
    """
    console.print(Panel.fit(
        "[bold blue]Coffee Balancing Report[/bold blue]\n"
        "Intake • Quality • Finance",
        border_style="blue"
    ))

    data_source = create_demo_source() if demo else SupabaseDataSource()
    generator = ReportGenerator(output_dir) if (export or summary) else None
    balancing = BalancingReport(data_source, preset=Preset(preset), report_generator=generator)

    try:
        if from_date:
            balancing.set_from_date(from_date)
        if to_date:
            balancing.set_to_date(to_date)
    except ValidationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(2)

    balancing.set_filters(
        assessed=AssessedFilter(assessed),
        finance=FinanceFilter(finance),
        balanced=BalancedFilter(balanced),
        coffee_type=coffee_type,
        status=record_status,
        search=search,
    )
    if page_size:
        balancing.set_page_size(int(page_size))

    console.print(f"\n[cyan]Period:[/cyan] {balancing.date_range} ({balancing.selection.preset.value})")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Loading records...", total=None)
        balancing.load()
        progress.update(task, description="Complete!")

    balancing.set_page(page)
    paths = {}
    if export or summary:
        paths = balancing.export(formats=list(formats) if export else [], summary=summary)

    view = balancing.view()
    _display_summary(view)
    _display_rows(view)
    _display_errors(view.errors)

    if paths:
        console.print("\n[bold green]Exports Generated:[/bold green]")
        for fmt, path in paths.items():
            console.print(f"  {fmt.upper()}: {path}")


@cli.command()
def status():
    """Show configuration status."""
    console.print("\n[bold]Configuration Status[/bold]\n")

    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Setting", style="cyan")
    table.add_column("Status")

    supabase = config.supabase
    table.add_row(
        "Supabase URL",
        "[green]Configured[/green]" if supabase.url_present() else "[yellow]Missing/invalid[/yellow]"
    )
    table.add_row(
        "Supabase Anon Key",
        "[green]Configured[/green]" if supabase.anon_key_present() else "[yellow]Missing/invalid[/yellow]"
    )
    table.add_row(
        "Session Token",
        "[green]Present[/green]" if supabase.access_token else "[yellow]Not set[/yellow]"
    )
    table.add_row("Chunk Size", str(config.report.chunk_size))
    table.add_row("Finance Types", ", ".join(config.report.finance_types))
    table.add_row("Default Page Size", str(config.report.page_size))
    table.add_row("Reports Directory", str(config.reports_dir))

    console.print(table)


def _display_summary(view):
    """Display report statistics."""
    s = view.summary
    total = s.total_rows
    console.print("\n")

    table = Table(title="Balancing Summary", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Details", justify="right")

    table.add_row("Records", str(total), escape(view.filters_text))
    table.add_row("Weight", f"{format_number(s.total_kilograms)} kg", f"{format_number(s.total_bags)} bags")
    table.add_row("Payments", format_ugx(s.total_paid), f"Confirmed: {format_ugx(s.total_confirmed_paid)}")
    table.add_row("Assessed", f"[green]{s.assessed_count}[/green] of {total}", percent(s.assessed_count, total))
    table.add_row("Not Assessed", f"[red]{s.not_assessed_count}[/red]", percent(s.not_assessed_count, total))
    table.add_row("Finance Confirmed", f"[green]{s.finance_confirmed_count}[/green]",
                  percent(s.finance_confirmed_count, total))
    table.add_row("Finance Pending", f"[yellow]{s.finance_pending_count}[/yellow]",
                  percent(s.finance_pending_count, total))
    table.add_row("Finance Missing", f"[red]{s.finance_missing_count}[/red]",
                  percent(s.finance_missing_count, total))
    table.add_row("Balanced", f"[green]{s.balanced_count}[/green]", percent(s.balanced_count, total))
    table.add_row("Unbalanced", f"[red]{s.unbalanced_count}[/red]", percent(s.unbalanced_count, total))

    health_color = "green" if s.flow_health >= 80 else "yellow" if s.flow_health >= 50 else "red"
    table.add_row("Flow Health", f"[bold {health_color}]{s.flow_health}%[/bold {health_color}]", "")

    console.print(table)


FINANCE_COLORS = {
    FinanceState.MISSING: "red",
    FinanceState.PENDING: "yellow",
    FinanceState.CONFIRMED: "green",
}


def _display_rows(view):
    """Display the current page of rows."""
    page = view.page
    if not page.total_rows:
        console.print("\n[yellow]No records match the current period and filters.[/yellow]")
        return

    table = Table(
        title=f"Records {page.first_index}-{page.last_index} of {page.total_rows} "
              f"(page {page.page}/{page.total_pages})",
        box=box.ROUNDED
    )
    table.add_column("Date")
    table.add_column("Batch", style="cyan")
    table.add_column("Supplier")
    table.add_column("Coffee")
    table.add_column("Kg", justify="right")
    table.add_column("Assessment")
    table.add_column("Finance")
    table.add_column("Paid (UGX)", justify="right")
    table.add_column("Balance")

    for row in page.items:
        record = row.record
        color = FINANCE_COLORS[row.finance_state]
        if row.assessment:
            assessment = escape(row.assessment.status or "Assessed")
        else:
            assessment = "[red]Missing[/red]"
        table.add_row(
            record.date.isoformat() if record.date else "",
            escape(record.batch_number),
            escape(record.supplier_name),
            escape(record.coffee_type),
            format_number(record.kilograms),
            assessment,
            f"[{color}]{row.finance_state.value}[/{color}] ({row.payment_count})",
            format_number(row.paid_total),
            "[green]Balanced[/green]" if row.is_balanced else "[red]Unbalanced[/red]",
        )

    console.print(table)


def _display_errors(errors):
    """Display the error panel."""
    if not errors:
        return

    console.print(f"\n[bold red]Errors ({len(errors)}):[/bold red]")
    for error in errors:
        lines = [f"[bold]{escape(error.message)}[/bold]"]
        for hint in error.hints:
            lines.append(f"  • {escape(hint)}")
        when = error.when[:19].replace("T", " ")
        console.print(Panel(
            "\n".join(lines),
            title=escape(f"[{error.kind.value}] {error.title}"),
            subtitle=when,
            border_style="red"
        ))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
