from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from fbar.config import load_config
from fbar.core.pipeline import build_report
from fbar.errors import FbarError
from fbar.facts import build_rate_table
from fbar.ingest import iter_statements
from fbar.registry import registry_from_config
from fbar.reports import format_table, write_report_csv


app = typer.Typer(help="FBAR maximum-balance reports from statement exports.")

REPORT_FILE_NAME = "fbar_report.csv"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(e: FbarError) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


@app.command("report")
def report_cmd(
    path: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory of statement exports"),
    config: Optional[Path] = typer.Option(None, "--config", dir_okay=False, help="Config YAML (default: PATH/data.yml)"),
    out: Optional[Path] = typer.Option(None, "--out", file_okay=False, help="Output directory (default: PATH/reports)"),
    year: Optional[list[int]] = typer.Option(None, "--year", help="Only emit rows for these years"),
    skip_invalid: bool = typer.Option(False, "--skip-invalid", help="Drop malformed records with a warning instead of failing"),
    fmt: str = typer.Option("", "--format", help="Statement format override (e.g. generic_balance_csv)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    load_dotenv()
    _setup_logging(verbose)
    out_dir = out or (path / "reports")
    try:
        cfg, cfg_path = load_config(config, statements_dir=path)
        typer.echo(f"Using config: {cfg_path}")
        registry = registry_from_config(cfg)
        rates = build_rate_table(cfg)
        skip = skip_invalid or cfg.settings.skip_invalid_records
        warnings: list[str] = []
        records = iter_statements(
            path,
            skip_invalid=skip,
            warnings=warnings,
            exclude=[out_dir],
            format_override=(fmt.strip() or None),
        )
        result = build_report(
            records,
            registry=registry,
            rates=rates,
            threshold=cfg.settings.reporting_threshold,
            skip_invalid=skip,
            warnings=warnings,
        )
    except FbarError as e:
        _fail(e)

    rows = result.rows
    if year:
        wanted = set(year)
        rows = [r for r in rows if r.year in wanted]

    typer.echo(format_table(rows, currency=result.reporting_currency))
    for y, total in sorted(result.year_totals.items()):
        if year and y not in year:
            continue
        met = total >= result.threshold
        typer.echo(f"{y}: aggregate {total} {result.reporting_currency} -> threshold {result.threshold} {'met' if met else 'not met'}")
    for w in result.warnings:
        typer.echo(f"Warning: {w}", err=True)

    target = out_dir / REPORT_FILE_NAME
    write_report_csv(rows, target)
    typer.echo(f"Wrote {target}")


@app.command("accounts")
def accounts_cmd(
    path: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory of statement exports"),
    config: Optional[Path] = typer.Option(None, "--config", dir_okay=False),
):
    load_dotenv()
    try:
        cfg, _ = load_config(config, statements_dir=path)
        registry = registry_from_config(cfg)
    except FbarError as e:
        _fail(e)
    out = []
    for cid in sorted(registry.accounts):
        a = registry.get(cid)
        out.append(
            {
                "handle": cid,
                "display_name": a.label(),
                "currency": a.native_currency,
                "ownership_fraction": str(a.ownership_fraction),
                "threshold_participant": a.threshold_participant,
                "aliases": [f"{inst}:{raw}" if inst else raw for raw, inst in registry.aliases_for(cid)],
            }
        )
    typer.echo(json.dumps(out, indent=2))


@app.command("rates")
def rates_cmd(
    path: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory of statement exports"),
    year: int = typer.Option(..., "--year"),
    config: Optional[Path] = typer.Option(None, "--config", dir_okay=False),
):
    load_dotenv()
    try:
        cfg, _ = load_config(config, statements_dir=path)
        rates = build_rate_table(cfg)
    except FbarError as e:
        _fail(e)
    out = [
        {"currency": r.currency, "rate": str(r.rate), "convention": r.convention, "source": r.source.value}
        for r in rates.for_year(year)
    ]
    typer.echo(json.dumps({"year": year, "reporting_currency": rates.reporting_currency, "rates": out}, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
