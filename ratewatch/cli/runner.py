# ratewatch/cli/runner.py

"""Headless CLI commands over the history repository and engine."""

import json
import logging
import sys
from datetime import UTC, datetime

from rich.console import Console
from rich.table import Table

from ratewatch.filters.rate_filter import (
    RateFilters,
    filter_statuses,
    search_comparisons,
    summarize,
)
from ratewatch.history.reconstruction import reconstruct
from ratewatch.history.time_series import time_series
from ratewatch.models.changes import (
    ChangeEntry,
    ComparisonEntry,
    FieldChange,
    TimeSeries,
)
from ratewatch.models.product import Product
from ratewatch.services.history_validator import validate_all
from ratewatch.services.snapshot_comparator import compare
from ratewatch.services.updates_timeline import (
    UpdatesFilter,
    collect_updates,
)
from ratewatch.storage.history_codec import field_json_name, product_to_dict
from ratewatch.storage.history_repository import HistoryRepository

logger = logging.getLogger("ratewatch.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

_STATUS_STYLES: dict[str, str] = {
    "decreased": "green",
    "increased": "red",
    "modified": "yellow",
    "unchanged": "dim",
    "new": "blue",
    "removed": "dim",
}


def parse_date(text: str | None) -> datetime | None:
    """Parse ``YYYY-MM-DD`` or a full ISO timestamp (UTC if naive).

    Raises ``SystemExit`` on malformed input.
    """
    if text is None:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        _err.print(f"[red]Invalid date: {text}[/red]")
        raise SystemExit(1) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _fmt_rate(value: float | None) -> str:
    return f"{value:.2f}%" if value is not None else "—"


def _fmt_delta(value: float | None) -> str:
    return f"{value:+.2f}" if value is not None else "—"


def _fmt_value(value: object) -> str:
    if value is None:
        return "—"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or "None"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _field_changes_to_dicts(
    changes: list[FieldChange] | None,
) -> list[dict[str, object]] | None:
    if changes is None:
        return None
    return [
        {
            "field": field_json_name(c.field),
            "previousValue": c.previous_value,
            "newValue": c.new_value,
        }
        for c in changes
    ]


def _change_to_dict(entry: ChangeEntry) -> dict[str, object]:
    return {
        "rateId": entry.product_id,
        "rateName": entry.product_name,
        "lenderId": entry.lender_id,
        "timestamp": entry.timestamp.isoformat(),
        "changeType": entry.change_type.value,
        "previousRate": entry.previous_rate,
        "newRate": entry.new_rate,
        "changeAmount": entry.change_amount,
        "changePercent": entry.change_percent,
        "fieldChanges": _field_changes_to_dicts(entry.field_changes),
    }


def _comparison_to_dict(entry: ComparisonEntry) -> dict[str, object]:
    return {
        "rate": product_to_dict(entry.product),
        "status": entry.status.value,
        "previousRate": entry.previous_rate,
        "currentRate": entry.current_rate,
        "changeAmount": entry.change_amount,
        "changePercent": entry.change_percent,
        "fieldChanges": _field_changes_to_dicts(entry.field_changes),
    }


def _series_to_dict(series: TimeSeries) -> dict[str, object]:
    return {
        "rateId": series.product_id,
        "rateName": series.product_name,
        "lenderId": series.lender_id,
        "dataPoints": [
            {
                "timestamp": p.timestamp.isoformat(),
                "rate": p.rate,
                "apr": p.apr,
            }
            for p in series.data_points
        ],
    }


def _dump_json(data: object) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


# ── Commands ─────────────────────────────────────────────


async def run_snapshot(
    lender_id: str,
    at: str | None,
    output_format: str,
    repo: HistoryRepository | None = None,
) -> int:
    """Print a lender's catalogue as it stood at a date (default: now)."""
    repo = repo or HistoryRepository()
    log = await repo.get(lender_id)
    if log is None:
        _err.print(f"[red]No history for lender '{lender_id}'.[/red]")
        return 1

    target = parse_date(at) or datetime.now(UTC)
    products = sorted(reconstruct(log, target), key=lambda p: p.id)
    if not products:
        _err.print(
            f"[yellow]No data for {lender_id} on "
            f"{target.date().isoformat()}.[/yellow]"
        )

    if output_format == "table":
        _print_products(products, f"{lender_id} on {target.date()}")
    else:
        _dump_json([product_to_dict(p) for p in products])
    return 0


def _print_products(products: list[Product], title: str) -> None:
    table = Table(title=title, show_lines=False, title_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", max_width=50)
    table.add_column("Type")
    table.add_column("Rate", justify="right", style="green")
    table.add_column("APR", justify="right")
    table.add_column("LTV", justify="right")
    table.add_column("Buyers", style="magenta")
    for p in products:
        table.add_row(
            p.id,
            p.name,
            f"{p.fixed_term}y fixed" if p.fixed_term else p.type,
            _fmt_rate(p.rate),
            _fmt_rate(p.apr),
            f"{p.min_ltv:g}-{p.max_ltv:g}%",
            ", ".join(p.buyer_types),
        )
    Console().print(table)


async def run_series(
    lender_id: str,
    product_id: str,
    output_format: str,
    chart: bool = False,
    repo: HistoryRepository | None = None,
) -> int:
    """Print (and optionally chart) one product's rate history."""
    repo = repo or HistoryRepository()
    log = await repo.get(lender_id)
    if log is None:
        _err.print(f"[red]No history for lender '{lender_id}'.[/red]")
        return 1

    series = time_series(log, product_id)
    if series is None:
        _err.print(
            f"[yellow]Rate '{product_id}' never existed at "
            f"{lender_id}.[/yellow]"
        )
        return 1

    if chart:
        from ratewatch.storage.chart_exporter import export_series_chart

        path = export_series_chart(
            [series], title=f"Rate History: {series.product_name}",
        )
        if path is not None:
            _err.print(f"[dim]Chart saved → {path}[/dim]")

    if output_format == "table":
        table = Table(
            title=f"{series.product_name} ({series.lender_id})",
            title_style="bold cyan",
        )
        table.add_column("Date")
        table.add_column("Rate", justify="right", style="green")
        table.add_column("APR", justify="right")
        for point in series.data_points:
            table.add_row(
                point.timestamp.date().isoformat(),
                _fmt_rate(point.rate),
                _fmt_rate(point.apr),
            )
        Console().print(table)
    else:
        _dump_json(_series_to_dict(series))
    return 0


async def run_changes(
    lender_csv: str | None,
    start: str | None,
    end: str | None,
    change_type: str,
    output_format: str,
    repo: HistoryRepository | None = None,
) -> int:
    """Print the merged update feed for the selected lenders."""
    repo = repo or HistoryRepository()
    lender_ids = split_csv(lender_csv)
    logs = (
        await repo.get_many(lender_ids) if lender_ids else await repo.load_all()
    )
    if not logs:
        _err.print("[yellow]No history available.[/yellow]")
        return 1

    try:
        update_filter = UpdatesFilter(
            lender_ids=frozenset(lender_ids),
            start=parse_date(start),
            end=parse_date(end),
            change_type=change_type,
        )
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    entries = sorted(
        collect_updates(logs, update_filter),
        key=lambda e: e.timestamp,
        reverse=True,
    )

    if output_format == "table":
        table = Table(title="Rate Updates", title_style="bold cyan")
        table.add_column("Date")
        table.add_column("Lender", style="magenta")
        table.add_column("Rate", max_width=50)
        table.add_column("Change")
        table.add_column("From", justify="right")
        table.add_column("To", justify="right")
        table.add_column("Δ", justify="right")
        table.add_column("Fields", style="dim")
        for e in entries:
            fields = ", ".join(
                f.field for f in e.field_changes or [] if f.field != "rate"
            )
            table.add_row(
                e.timestamp.date().isoformat(),
                e.lender_id,
                e.product_name,
                e.change_type.value,
                _fmt_rate(e.previous_rate),
                _fmt_rate(e.new_rate),
                _fmt_delta(e.change_amount),
                fields,
            )
        Console().print(table)
    else:
        _dump_json([_change_to_dict(e) for e in entries])
    return 0


async def run_compare(
    start: str,
    end: str | None,
    lender_csv: str | None,
    rate_type: str | None,
    buyer_category: str,
    max_ltv: float | None,
    search: str | None,
    status_csv: str | None,
    output_format: str,
    repo: HistoryRepository | None = None,
) -> int:
    """Compare catalogues between two dates (end defaults to live rates)."""
    repo = repo or HistoryRepository()
    start_at = parse_date(start)
    end_at = parse_date(end)
    if start_at is None:
        _err.print("[red]A start date is required.[/red]")
        return 1

    try:
        filters = RateFilters(
            lender_ids=frozenset(split_csv(lender_csv)),
            rate_type=rate_type,
            buyer_category=buyer_category,
            max_ltv=max_ltv,
        )
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    lenders = await repo.get_lenders()
    lender_names = {lender.id: lender.name for lender in lenders}
    lender_ids = list(filters.lender_ids) or [
        lender.id for lender in lenders if not lender.discontinued
    ]
    logs = await repo.get_many(lender_ids)
    if not logs:
        _err.print("[yellow]No history available.[/yellow]")
        return 1

    current = (
        await repo.get_current_many(lender_ids) if end_at is None else None
    )
    entries = compare(logs, start_at, end_at, filters, current=current)
    counts = summarize(entries)
    entries = search_comparisons(entries, search or "", lender_names)
    statuses = split_csv(status_csv)
    entries = filter_statuses(entries, statuses or None)

    _err.print(
        "[bold]Summary:[/bold] "
        + "  ".join(f"{status}={n}" for status, n in counts.items())
    )

    if output_format == "table":
        table = Table(
            title=f"Rate Changes since {start_at.date()}",
            title_style="bold cyan",
        )
        table.add_column("Status")
        table.add_column("Lender", style="magenta")
        table.add_column("Rate", max_width=50)
        table.add_column("Was", justify="right")
        table.add_column("Now", justify="right")
        table.add_column("Δ", justify="right")
        table.add_column("Fields", style="dim")
        for e in entries:
            style = _STATUS_STYLES[e.status.value]
            fields = "; ".join(
                f"{f.field}: {_fmt_value(f.previous_value)} → "
                f"{_fmt_value(f.new_value)}"
                for f in e.field_changes or []
            )
            table.add_row(
                f"[{style}]{e.status.value}[/{style}]",
                lender_names.get(e.product.lender_id, e.product.lender_id),
                e.product.name,
                _fmt_rate(e.previous_rate),
                _fmt_rate(e.current_rate),
                _fmt_delta(e.change_amount),
                fields,
            )
        Console().print(table)
    else:
        _dump_json([_comparison_to_dict(e) for e in entries])
    return 0


async def run_validate(repo: HistoryRepository | None = None) -> int:
    """Validate every lender's history against its current rates."""
    repo = repo or HistoryRepository()
    _err.print("[bold]Validating rate history files...[/bold]")
    results = await validate_all(repo)
    if not results:
        _err.print("[yellow]No lenders registered.[/yellow]")
        return 1

    table = Table(
        title="History Validation",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Lender", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Notes", style="dim")
    for r in results:
        status = "[green]✓ OK[/green]" if r.success else "[red]✗ FAIL[/red]"
        notes = "\n".join(x for x in (r.error, r.details) if x)
        table.add_row(r.lender_id, status, notes)
    Console().print(table)

    passed = sum(1 for r in results if r.success)
    if passed < len(results):
        _err.print(
            f"[red]FAILED: {passed}/{len(results)} lenders passed[/red]"
        )
        return 1
    _err.print(f"[green]PASSED: all {len(results)} lenders[/green]")
    return 0
