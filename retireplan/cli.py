"""Typer CLI interface for retireplan."""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import typer

DEFAULT_DB = Path.home() / ".retireplan" / "retireplan.db"

app = typer.Typer(
    name="retireplan",
    help="Retirement projection and Roth conversion planner.",
    no_args_is_help=True,
)
profile_app = typer.Typer(help="Manage saved plan profiles.", no_args_is_help=True)
app.add_typer(profile_app, name="profile")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Retirement projection and Roth conversion planner."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that serializes Decimal as string."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


def _parse_set(values: list[str] | None) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for item in values or []:
        if "=" not in item:
            typer.echo(f"Error: --set expects key=value, got '{item}'", err=True)
            raise typer.Exit(1)
        key, raw = item.split("=", 1)
        try:
            value = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError:
            value = raw
        overrides[key.strip()] = value
    return overrides


def _load_params(
    profile_file: Path | None,
    profile_name: str | None,
    db: Path,
    overrides: list[str] | None = None,
):
    """Resolve parameters from a JSON file, a saved profile, or defaults."""
    from retireplan.db import ProfileRepository, create_schema, load_parameters
    from retireplan.exceptions import ProjectionError
    from retireplan.models.params import Parameters
    from retireplan.queries import apply_overrides

    try:
        if profile_file is not None:
            if not profile_file.exists():
                typer.echo(f"Error: Profile file not found: {profile_file}", err=True)
                raise typer.Exit(1)
            payload = json.loads(profile_file.read_text(), parse_float=Decimal)
            params, messages = load_parameters(payload)
            for message in messages:
                typer.echo(f"Note: {message}", err=True)
        elif profile_name is not None:
            if not db.exists():
                typer.echo("Error: No database found. Save a profile first with `retireplan profile save`.", err=True)
                raise typer.Exit(1)
            conn = create_schema(db)
            params = ProfileRepository(conn).load_parameters(profile_name)
            conn.close()
            if params is None:
                typer.echo(f"Error: No profile named '{profile_name}'", err=True)
                raise typer.Exit(1)
        else:
            params = Parameters()
        return apply_overrides(params, _parse_set(overrides))
    except (ProjectionError, json.JSONDecodeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


def _precision_config(precision: str):
    from retireplan.formatting import FormatConfig, Precision

    try:
        return FormatConfig(precision=Precision(precision.lower()))
    except ValueError:
        valid = ", ".join(p.value for p in Precision)
        typer.echo(f"Error: Invalid precision '{precision}'. Valid: {valid}", err=True)
        raise typer.Exit(1)


def _print_warnings(warnings: list[str]) -> None:
    if warnings:
        typer.echo("\nWarnings:")
        for w in warnings:
            typer.echo(f"  - {w}")


ProfileFileOption = typer.Option(None, "--file", "-f", help="Profile JSON file")
ProfileNameOption = typer.Option(None, "--profile", "-p", help="Saved profile name")
DbOption = typer.Option(DEFAULT_DB, "--db", help="Path to the SQLite database file")
SetOption = typer.Option(None, "--set", help="Override a parameter: key=value (repeatable)")


@app.command()
def project(
    profile_file: Path | None = ProfileFileOption,
    profile_name: str | None = ProfileNameOption,
    db: Path = DbOption,
    overrides: list[str] | None = SetOption,
    start: int | None = typer.Option(None, "--start", help="First year to display"),
    end: int | None = typer.Option(None, "--end", help="Last year to display"),
    present_value: bool = typer.Option(
        False, "--present-value", "--pv", help="Show values discounted to start-year dollars"
    ),
    precision: str = typer.Option("sig3", "--precision", help="sig2, sig3, sig4, dollars, cents"),
    report: bool = typer.Option(False, "--report", help="Print the full text report"),
    save_run: str | None = typer.Option(
        None, "--save-run", help="Record the summary under this label (requires --profile)"
    ),
) -> None:
    """Run a year-by-year projection."""
    from rich.console import Console
    from rich.table import Table

    from retireplan.engines.sequencer import ProjectionSequencer
    from retireplan.exceptions import InvalidYearRangeError, ProjectionError
    from retireplan.reports import ProjectionReportGenerator, projection_rows
    from retireplan.reports.projection_report import REPORT_FIELDS

    params = _load_params(profile_file, profile_name, db, overrides)
    config = _precision_config(precision)
    rate = params.discount_rate if present_value else None

    first = start or params.start_year
    last = end or params.end_year
    try:
        if last < first or first < params.start_year or last > params.end_year:
            raise InvalidYearRangeError(
                first, last, f"plan covers {params.start_year}-{params.end_year}"
            )
        result = ProjectionSequencer().project(params)
    except ProjectionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if report:
        typer.echo(ProjectionReportGenerator(config).render(result, rate))
    else:
        shown = result.model_copy(
            update={"records": [r for r in result.records if first <= r.year <= last]}
        )
        rows = projection_rows(shown, REPORT_FIELDS, rate, config)
        table = Table(title=f"Projection {first}-{last}", show_header=True)
        for header in rows[0]:
            table.add_column(header, justify="right")
        for row in rows[1:]:
            table.add_row(*row)
        Console().print(table)

        summary = result.summary
        typer.echo("")
        typer.echo(f"Ending portfolio:  {summary.ending_portfolio:,.0f}")
        typer.echo(f"Ending heir value: {summary.ending_heir_value:,.0f}")
        typer.echo(f"Total tax:         {summary.total_tax:,.0f}")
        typer.echo(f"Total IRMAA:       {summary.total_irmaa:,.0f}")
        typer.echo(f"Final Roth share:  {summary.final_roth_percent * 100:.1f}%")
        if summary.total_conversion_requested > 0:
            typer.echo(
                f"Conversions:       {summary.total_conversion_actual:,.0f} of "
                f"{summary.total_conversion_requested:,.0f} "
                f"({summary.conversion_feasibility_percent:.1f}% feasible)"
            )
        _print_warnings(result.warnings)

    if save_run:
        if profile_name is None:
            typer.echo("Error: --save-run requires --profile", err=True)
            raise typer.Exit(1)
        from retireplan.db import ProfileRepository, create_schema

        conn = create_schema(db)
        repo = ProfileRepository(conn)
        record = repo.get_profile(profile_name)
        repo.save_scenario_run(record["id"], save_run, result.summary, result.warnings)
        conn.close()
        typer.echo(f"Saved run '{save_run}' for profile '{profile_name}'")


def _split_ints(value: str | None) -> list[int] | None:
    if not value:
        return None
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        typer.echo(f"Error: Expected comma-separated years, got '{value}'", err=True)
        raise typer.Exit(1)


def _split_decimals(value: str | None) -> list[Decimal] | None:
    if not value:
        return None
    try:
        return [Decimal(v.strip()) for v in value.split(",") if v.strip()]
    except ArithmeticError:
        typer.echo(f"Error: Expected comma-separated amounts, got '{value}'", err=True)
        raise typer.Exit(1)


@app.command()
def optimize(
    profile_file: Path | None = ProfileFileOption,
    profile_name: str | None = ProfileNameOption,
    db: Path = DbOption,
    overrides: list[str] | None = SetOption,
    objective: str = typer.Option(
        "MAX_HEIR_VALUE",
        "--objective",
        "-o",
        help="MAX_HEIR_VALUE, MIN_LIFETIME_TAX, MAX_PORTFOLIO, TARGET_ROTH_PERCENT",
    ),
    years: str | None = typer.Option(None, "--years", help="Conversion years, e.g. 2026,2027"),
    amounts: str | None = typer.Option(None, "--amounts", help="Test amounts, e.g. 100000,200000"),
    target_roth: float | None = typer.Option(None, "--target-roth", help="Target Roth share (0.5 = 50%)"),
    workers: int = typer.Option(1, "--workers", "-w", help="Parallel worker processes"),
    top: int = typer.Option(10, "--top", help="Number of candidates to show"),
    precision: str = typer.Option("sig3", "--precision", help="sig2, sig3, sig4, dollars, cents"),
) -> None:
    """Search Roth conversion schedules and rank them."""
    from retireplan.engines.optimizer import ScenarioOptimizer
    from retireplan.exceptions import ProjectionError
    from retireplan.models.enums import Objective
    from retireplan.reports import OptimizerReportGenerator

    params = _load_params(profile_file, profile_name, db, overrides)
    config = _precision_config(precision)
    try:
        obj = Objective(objective.upper())
    except ValueError:
        valid = ", ".join(o.value for o in Objective)
        typer.echo(f"Error: Invalid objective '{objective}'. Valid: {valid}", err=True)
        raise typer.Exit(1)

    optimizer = ScenarioOptimizer(workers=workers)
    try:
        result = optimizer.optimize(
            params,
            obj,
            years=_split_ints(years),
            amounts=_split_decimals(amounts),
            target_roth=Decimal(str(target_roth)) if target_roth is not None else None,
        )
    except ProjectionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(OptimizerReportGenerator(config).render(result, top=top))
    _print_warnings(optimizer.warnings)


@app.command()
def explain(
    field: str = typer.Argument(..., help="Projection field, e.g. total_tax"),
    year: int = typer.Argument(..., help="Projection year"),
    profile_file: Path | None = ProfileFileOption,
    profile_name: str | None = ProfileNameOption,
    db: Path = DbOption,
    overrides: list[str] | None = SetOption,
) -> None:
    """Explain how one projection value was computed."""
    from retireplan.engines.sequencer import ProjectionSequencer
    from retireplan.exceptions import ProjectionError
    from retireplan.formatting import format_value
    from retireplan.queries import explain_calculation

    params = _load_params(profile_file, profile_name, db, overrides)
    try:
        explanation = explain_calculation(ProjectionSequencer().project(params), field, year)
    except ProjectionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{field} ({year}) = {format_value(field, explanation['value'])}")
    if explanation["formula"]:
        typer.echo(f"  formula: {explanation['formula']}")
    for item in explanation["inputs"]:
        value = format_value(item["field"], item["value"])
        typer.echo(f"  {item['sign']} {item['field']} ({item['year']}): {value}")


@app.command()
def export(
    output: Path = typer.Option(..., "--output", "-o", help="CSV file to write"),
    profile_file: Path | None = ProfileFileOption,
    profile_name: str | None = ProfileNameOption,
    db: Path = DbOption,
    overrides: list[str] | None = SetOption,
    fields: str | None = typer.Option(None, "--fields", help="Comma-separated record fields"),
    present_value: bool = typer.Option(False, "--present-value", "--pv"),
    summary: bool = typer.Option(False, "--summary", help="Write the summary table instead"),
) -> None:
    """Export the projection table (or summary) to CSV."""
    from retireplan.engines.sequencer import ProjectionSequencer
    from retireplan.exceptions import ProjectionError
    from retireplan.reports.export import export_csv, summary_rows, write_csv

    params = _load_params(profile_file, profile_name, db, overrides)
    try:
        result = ProjectionSequencer().project(params)
        if summary:
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, "w", newline="", encoding="utf-8") as f:
                write_csv(summary_rows(result.summary), f)
        else:
            field_list = [f.strip() for f in fields.split(",")] if fields else None
            export_csv(
                result,
                output,
                field_list,
                params.discount_rate if present_value else None,
            )
    except ProjectionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Wrote {output}")


@app.command()
def tables(
    year: int = typer.Argument(..., help="Projection year"),
    filing_status: str = typer.Option("MFJ", "--filing-status", "-s", help="SINGLE or MFJ"),
    base_year: int = typer.Option(2024, "--base-year", help="Bracket table base year"),
    inflation: float = typer.Option(0.03, "--inflation", help="Annual bracket inflation"),
    age: int | None = typer.Option(None, "--age", help="Filer age (adds the 65+ deduction)"),
) -> None:
    """Show inflation-adjusted brackets and thresholds for a year."""
    from rich.console import Console
    from rich.table import Table

    from retireplan.engines.brackets import build_year_tables
    from retireplan.exceptions import ProjectionError
    from retireplan.models.enums import FilingStatus

    status_map = {"SINGLE": FilingStatus.SINGLE, "MFJ": FilingStatus.MFJ}
    fs = status_map.get(filing_status.upper())
    if fs is None:
        typer.echo(f"Error: Invalid filing status '{filing_status}'. Valid: SINGLE, MFJ", err=True)
        raise typer.Exit(1)
    try:
        yt = build_year_tables(year, fs, base_year, Decimal(str(inflation)), age)
    except ProjectionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    console = Console()
    tbl = Table(title=f"Federal Brackets {year} ({filing_status.upper()})", show_header=True)
    tbl.add_column("Up To", justify="right", style="cyan")
    tbl.add_column("Rate", justify="right", style="green")
    for upper, rate in yt.federal_brackets:
        tbl.add_row("-" if upper is None else f"${upper:,.0f}", f"{rate * 100:.0f}%")
    console.print(tbl)

    irmaa = Table(title="IRMAA Tiers (monthly, per person)", show_header=True)
    irmaa.add_column("MAGI Over", justify="right", style="cyan")
    irmaa.add_column("Part B", justify="right")
    irmaa.add_column("Part D", justify="right")
    for threshold, part_b, part_d in yt.irmaa_tiers:
        irmaa.add_row(f"${threshold:,.0f}", f"${part_b:,.2f}", f"${part_d:,.2f}")
    console.print(irmaa)

    typer.echo(f"Standard deduction: ${yt.standard_deduction:,.0f}")
    typer.echo(f"NIIT threshold:     ${yt.niit_threshold:,.0f}")


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@profile_app.command("save")
def profile_save(
    file: Path = typer.Argument(..., help="Profile JSON file (any version)"),
    name: str | None = typer.Option(None, "--name", "-n", help="Profile name (defaults to the file's)"),
    db: Path = DbOption,
) -> None:
    """Store a profile in the database, upgrading it if needed."""
    from retireplan.db import ProfileRepository, create_schema, migrate_profile
    from retireplan.exceptions import ProjectionError

    if not file.exists():
        typer.echo(f"Error: Profile file not found: {file}", err=True)
        raise typer.Exit(1)
    try:
        payload = json.loads(file.read_text(), parse_float=Decimal)
        migrated, messages = migrate_profile(payload)
    except (ProjectionError, json.JSONDecodeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    if name:
        migrated["name"] = name

    db.parent.mkdir(parents=True, exist_ok=True)
    conn = create_schema(db)
    try:
        _, messages_after = ProfileRepository(conn).save_payload(migrated)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    for message in messages + messages_after:
        typer.echo(f"Note: {message}")
    typer.echo(f"Saved profile '{migrated['name']}'")


@profile_app.command("load")
def profile_load(
    name: str = typer.Argument(..., help="Profile name"),
    db: Path = DbOption,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
) -> None:
    """Print (or write) a saved profile as current-version JSON."""
    from retireplan.db import PROFILE_VERSION, ProfileRepository, create_schema

    if not db.exists():
        typer.echo("Error: No database found.", err=True)
        raise typer.Exit(1)
    conn = create_schema(db)
    record = ProfileRepository(conn).get_profile(name)
    conn.close()
    if record is None:
        typer.echo(f"Error: No profile named '{name}'", err=True)
        raise typer.Exit(1)

    payload = {
        "schema_version": PROFILE_VERSION,
        "name": record["name"],
        "created_at": record["created_at"],
        "updated_at": record["updated_at"],
        "parameters": record["parameters"],
        "scenarios": record["scenarios"],
    }
    text = json.dumps(payload, indent=2, cls=_DecimalEncoder)
    if output:
        output.write_text(text)
        typer.echo(f"Wrote {output}")
    else:
        typer.echo(text)


@profile_app.command("list")
def profile_list(db: Path = DbOption) -> None:
    """List saved profiles."""
    from retireplan.db import ProfileRepository, create_schema

    if not db.exists():
        typer.echo("No profiles saved.")
        return
    conn = create_schema(db)
    profiles = ProfileRepository(conn).list_profiles()
    conn.close()
    if not profiles:
        typer.echo("No profiles saved.")
        return
    for p in profiles:
        typer.echo(f"{p['name']:<30} v{p['profile_version']}  updated {p['updated_at']}")


@profile_app.command("delete")
def profile_delete(
    name: str = typer.Argument(..., help="Profile name"),
    db: Path = DbOption,
) -> None:
    """Delete a saved profile and its run history."""
    from retireplan.db import ProfileRepository, create_schema

    if not db.exists():
        typer.echo("Error: No database found.", err=True)
        raise typer.Exit(1)
    conn = create_schema(db)
    deleted = ProfileRepository(conn).delete_profile(name)
    conn.close()
    if not deleted:
        typer.echo(f"Error: No profile named '{name}'", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted profile '{name}'")


@profile_app.command("runs")
def profile_runs(
    name: str = typer.Argument(..., help="Profile name"),
    db: Path = DbOption,
) -> None:
    """Show saved projection runs for a profile."""
    from retireplan.db import ProfileRepository, create_schema

    if not db.exists():
        typer.echo("Error: No database found.", err=True)
        raise typer.Exit(1)
    conn = create_schema(db)
    repo = ProfileRepository(conn)
    record = repo.get_profile(name)
    if record is None:
        conn.close()
        typer.echo(f"Error: No profile named '{name}'", err=True)
        raise typer.Exit(1)
    runs = repo.get_scenario_runs(record["id"])
    conn.close()
    if not runs:
        typer.echo("No runs saved.")
        return
    for run in runs:
        s = run["summary"]
        typer.echo(
            f"{run['label']:<24} {s.start_year}-{s.end_year}  "
            f"portfolio {s.ending_portfolio:,.0f}  heirs {s.ending_heir_value:,.0f}  "
            f"tax {s.total_tax:,.0f}"
        )


@profile_app.command("upgrade")
def profile_upgrade(
    file: Path = typer.Argument(..., help="Profile JSON file to upgrade"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file (default: overwrite)"),
) -> None:
    """Upgrade a profile JSON file to the current version."""
    from retireplan.db import migrate_profile
    from retireplan.exceptions import ProjectionError

    if not file.exists():
        typer.echo(f"Error: Profile file not found: {file}", err=True)
        raise typer.Exit(1)
    try:
        migrated, messages = migrate_profile(json.loads(file.read_text(), parse_float=Decimal))
    except (ProjectionError, json.JSONDecodeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if not messages:
        typer.echo("Profile is already current.")
        return
    target = output or file
    target.write_text(json.dumps(migrated, indent=2, cls=_DecimalEncoder))
    for message in messages:
        typer.echo(f"Note: {message}")
    typer.echo(f"Wrote {target}")


if __name__ == "__main__":
    app()
