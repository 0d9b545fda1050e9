"""Command line entry point: read a case workbook, aggregate, write an export."""
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from casereport.aggregation import compute_billing_summary, compute_team_summary
from casereport.export import (
    export_billing_workbook,
    export_matrix_workbook,
    export_summary_workbook,
    export_team_workbook,
)
from casereport.filters import FilterSpec, available_years, filter_cases
from casereport.grid import GRANULARITIES
from casereport.logging_utils import configure_logging
from casereport.matrix import MATRIX_VALUES, build_office_matrix
from casereport.settings import default_data_path, load_env_file
from casereport.store import load_adjustments_workbook, load_cases_workbook

logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser, default_output: str) -> None:
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Case workbook to read (default: CASEREPORT_DATA_PATH or data/cases.xlsx)",
    )
    parser.add_argument("--sheet", default=None, help="Sheet holding the cases (default: first sheet)")
    parser.add_argument("--output", type=Path, default=Path(default_output), help="Workbook to write")
    parser.add_argument("--team", help="Only cases for this team")
    parser.add_argument("--region", help="Only cases for this region")
    parser.add_argument("--status", action="append", default=[], help="Status to include (repeatable)")
    parser.add_argument("--search", default="", help="Free-text search over code, client, requestor, team, scope")
    parser.add_argument("--received-from", help="Earliest date received (inclusive)")
    parser.add_argument("--received-to", help="Latest date received (inclusive)")


def _add_years(parser: argparse.ArgumentParser, granularity: str) -> None:
    parser.add_argument(
        "--year",
        type=int,
        action="append",
        dest="years",
        help="Year to report (repeatable; default: most recent year in the data)",
    )
    parser.add_argument("--granularity", choices=GRANULARITIES, default=granularity)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per report."""

    parser = argparse.ArgumentParser(description="Case aggregation and reporting")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    billing = sub.add_parser("billing", help="Billing by type with adjustments")
    _add_common(billing, "output/billing_summary.xlsx")
    _add_years(billing, "monthly")
    billing.add_argument(
        "--adjustments",
        type=Path,
        help="Workbook with an 'Adjustments' sheet to overlay on monthly totals",
    )

    teams = sub.add_parser("teams", help="Revenue by team")
    _add_common(teams, "output/team_summary.xlsx")
    _add_years(teams, "monthly")

    matrix = sub.add_parser("matrix", help="Region/office matrix")
    _add_common(matrix, "output/case_matrix.xlsx")
    matrix.add_argument("--granularity", choices=GRANULARITIES, default="quarterly")
    matrix.add_argument("--year", type=int, default=None, help="Year for monthly/quarterly matrices")
    matrix.add_argument("--value", choices=MATRIX_VALUES, default="count")

    summary = sub.add_parser("summary", help="Overview, status and team breakdowns")
    _add_common(summary, "output/case_summary.xlsx")
    return parser


def _filter_spec(args: argparse.Namespace) -> FilterSpec:
    return FilterSpec(
        statuses=list(args.status),
        team=args.team,
        region=args.region,
        search=args.search,
        received_from=args.received_from,
        received_to=args.received_to,
    )


def _years(args: argparse.Namespace, cases) -> List[int]:
    if args.years:
        return args.years
    years = available_years(cases)
    if not years:
        raise SystemExit("No dated cases found; pass --year explicitly")
    return years[:1]


def run(args: argparse.Namespace) -> Path:
    data_path = args.data or default_data_path()
    cases = filter_cases(load_cases_workbook(data_path, args.sheet), _filter_spec(args))
    logger.info("%d cases after filtering", len(cases))

    if args.command == "billing":
        adjustments = load_adjustments_workbook(args.adjustments) if args.adjustments else []
        grid = compute_billing_summary(cases, _years(args, cases), args.granularity, adjustments)
        if grid.skipped_adjustments:
            logger.warning("%d adjustment(s) did not match a bucket in this report", grid.skipped_adjustments)
        return export_billing_workbook(grid, adjustments, args.output)
    if args.command == "teams":
        grid = compute_team_summary(cases, _years(args, cases), args.granularity)
        return export_team_workbook(grid, args.output)
    if args.command == "matrix":
        matrix = build_office_matrix(cases, args.granularity, args.year, value=args.value)
        return export_matrix_workbook(matrix, args.output)
    return export_summary_workbook(cases, args.output)


def main(argv: Optional[List[str]] = None) -> None:
    """Entrypoint for running a report from the command line."""

    load_env_file()
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    output_path = run(args)
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
