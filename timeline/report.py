"""
Timeline Report CLI.

Loads a catalog and a persisted project, computes every asset's schedule and
prints it with the feasibility report.
"""

import argparse
import sys
from pathlib import Path

from src.config.settings import Settings
from src.utils.logger import configure_logging
from schemas.validator import load_persisted_state, validated_df_to_csv, SchemaValidationError
from .cpm.calendar import WorkCalendar, parse_iso_date, InvalidDateError
from .cpm.engine import create_calculator
from .cpm.models import CalculationStrategy, CriticalPathResult
from .analysis.accordion import AccordionPropagator
from .analysis.conflicts import ConflictDetector, ConflictReport
from .analysis.critical_path import analyze_critical_path
from .data_loader import load_catalog, load_bank_holidays, hydrate_state, schedule_to_dataframe

logger = configure_logging('timeline.report')


def print_report(schedule_df, report: ConflictReport):
    """Print schedule and conflict report to console."""

    print(f"\n{'='*80}")
    print("SCHEDULE")
    print(f"{'='*80}")

    for asset_name, group in schedule_df.groupby('asset_name', sort=False):
        print(f"\n{asset_name}")
        columns = ['task_name', 'owner', 'duration', 'start', 'end']
        print(group[columns].to_string(index=False))

    print(f"\n{'='*80}")
    print(f"FEASIBILITY (today: {report.today})")
    print(f"{'='*80}")

    for item in report.assets:
        status = 'OK ' if item.is_feasible else 'LATE'
        print(f"  [{status}] {item.get_summary()}")

    for violation in report.weekday_violations:
        print(f"  [DAY ] {violation.get_summary()}")

    if report.alerts:
        print(f"\nWorking days needed: {report.working_days_needed}")


def print_critical_path(result: CriticalPathResult):
    """Print critical tasks and float distribution."""
    print(f"\n{'='*80}")
    print("CRITICAL PATH")
    print(f"{'='*80}")

    print(f"Critical Tasks: {len(result.critical_path)} of {result.total_tasks}")
    print(f"Near-Critical Tasks (<= {result.near_critical_threshold_days} days float): "
          f"{len(result.near_critical_tasks)}")

    print("\n--- Float Distribution ---")
    for bucket, count in sorted(result.float_distribution.items()):
        print(f"  {bucket:15s}: {count:5d}")

    print("\n--- Critical Tasks ---")
    for item in result.critical_path:
        print(f"  {item.task_id:25s} | {item.late_start} .. {item.late_end}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Compute campaign timelines and report conflicts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  timeline-report project.json                       # Use default catalog
  timeline-report project.json --catalog cat.csv     # Explicit catalog
  timeline-report project.json --today 2025-11-01    # Pin "today"
  timeline-report project.json -o schedule.csv       # Save schedule table
  timeline-report project.json --critical-path       # Show float per task
        """
    )

    parser.add_argument('state', type=str,
                        help='Persisted project JSON file')
    parser.add_argument('--catalog', type=str, default=None,
                        help=f'Catalog CSV (default: {Settings.CATALOG_FILE})')
    parser.add_argument('--holidays', type=str, default=None,
                        help='Bank holidays CSV with a date column')
    parser.add_argument('--strategy', choices=[s.value for s in CalculationStrategy], default=None,
                        help=f'Schedule strategy (default: {Settings.SCHEDULE_STRATEGY})')
    parser.add_argument('--today', type=str, default=None,
                        help='Reference date for feasibility (default: system date)')
    parser.add_argument('--critical-path', action='store_true',
                        help='Also print critical tasks and float')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Write the schedule table to this CSV path')

    args = parser.parse_args()

    problems = Settings.validate_required_settings()
    if problems:
        for problem in problems:
            logger.error(problem)
        return 2

    try:
        today = parse_iso_date(args.today) if args.today else None
        holidays = load_bank_holidays(Path(args.holidays)) if args.holidays else frozenset()
        calendar = WorkCalendar(holidays)
        catalog = load_catalog(Path(args.catalog) if args.catalog else None)
        persisted = load_persisted_state(Path(args.state))
    except (FileNotFoundError, InvalidDateError, SchemaValidationError, ValueError) as e:
        logger.error(str(e))
        return 2

    propagator = AccordionPropagator(create_calculator(args.strategy, calendar), catalog)
    try:
        state = hydrate_state(persisted, propagator)
    except SchemaValidationError as e:
        logger.error(str(e))
        return 2

    report = ConflictDetector(calendar, today=today).analyze(state)
    schedule_df = schedule_to_dataframe(state)
    print_report(schedule_df, report)
    if args.critical_path:
        print_critical_path(analyze_critical_path(state, propagator.calculator))

    if args.output:
        validated_df_to_csv(schedule_df, Path(args.output), index=False)
        logger.info(f"Saved schedule to {args.output}")

    return 1 if report.has_conflicts() else 0


if __name__ == "__main__":
    sys.exit(main())
