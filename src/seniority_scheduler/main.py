"""
Main Entry Point for Shift Scheduling System

Command line front end: generates the monthly roster and fills task
columns from the JSON data file, with file and console logging.
"""

import argparse
import sys
import logging
import random
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from .data_manager import DataManager, DataManagerError
from .dates import month_days
from .reporting import ReportGenerator
from .scheduler_logic import Schedule, ShiftScheduler
from .task_distribution import distribute_all_task_columns, distribute_task_column


def setup_logging(log_dir: str = "logs", level: int = logging.INFO):
    """Setup application logging"""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_file = log_path / f"seniority_scheduler_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seniority-scheduler",
        description="Generate a seniority-weighted monthly shift roster and distribute task columns."
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path("data/schedule_data.json"),
        help="JSON data file holding staff, constraints, schedule and tasks (default: data/schedule_data.json).",
    )
    parser.add_argument(
        "--log-dir",
        default="logs",
        help="Directory for log files (default: logs).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate the shift schedule for a month.")
    generate.add_argument(
        "--month",
        default=None,
        help="Target month as YYYY-MM (default: the month saved in constraints).",
    )
    generate.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the tie-breaking randomness, for reproducible runs.",
    )
    generate.add_argument(
        "--pdf",
        type=Path,
        default=None,
        help="Also write the roster and statistics to this PDF file.",
    )
    generate.add_argument(
        "--history-name",
        default=None,
        help="Save the generated schedule to history under this name.",
    )

    tasks = subparsers.add_parser("distribute-tasks", help="Fill task columns for the current schedule.")
    tasks.add_argument(
        "--column",
        type=int,
        default=None,
        help="Only distribute this column index (default: all configured columns).",
    )
    tasks.add_argument(
        "--fill-empty-only",
        action="store_true",
        help="Keep existing assignments and fill only empty days.",
    )
    tasks.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for candidate shuffling.",
    )
    return parser


def run_generate(data_manager: DataManager, args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    constraints = data_manager.get_constraints()
    if args.month:
        constraints.selected_month = args.month

    rng = random.Random(args.seed) if args.seed is not None else None
    scheduler = ShiftScheduler(rng=rng)
    schedule = scheduler.generate_schedule(data_manager.get_staff_list(), constraints, constraints.selected_month)

    data_manager.set_constraints(constraints)
    data_manager.save_schedule_data(schedule.to_dict())
    if args.history_name:
        data_manager.save_schedule_to_history(args.history_name)
    data_manager.save_data()

    reports = ReportGenerator(data_manager)
    summary = reports.team_summary(schedule)
    logger.info(
        f"{schedule.month_key}: {summary['total_shifts_assigned']}/{summary['total_shifts_needed']} shifts, "
        f"{summary['warnings']} warning(s), {summary['errors']} error(s)"
    )

    if args.pdf:
        if not reports.export_schedule_pdf(schedule, str(args.pdf)):
            return 1
    return 0


def run_distribute_tasks(data_manager: DataManager, args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    schedule_data = data_manager.get_schedule_data()
    if not schedule_data:
        logger.error("No current schedule; run 'generate' first")
        return 1

    schedule = Schedule.from_dict(schedule_data)
    constraints = data_manager.get_constraints()
    days = month_days(schedule.month_key)
    rng = random.Random(args.seed) if args.seed is not None else None

    if args.column is None:
        tasks = distribute_all_task_columns(days, data_manager.get_staff_list(), schedule,
                                            data_manager.get_tasks(), constraints,
                                            fill_empty_only=args.fill_empty_only, rng=rng)
    else:
        if not 0 <= args.column < len(constraints.task_columns):
            logger.error(f"Unknown task column {args.column}; {len(constraints.task_columns)} configured")
            return 1
        tasks = distribute_task_column(days, data_manager.get_staff_list(), schedule,
                                       data_manager.get_tasks(), constraints.column_config(args.column),
                                       args.column, fill_empty_only=args.fill_empty_only, rng=rng)

    data_manager.save_tasks(tasks)
    data_manager.save_data()
    logger.info(f"Task assignments saved for {schedule.month_key}")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    sys.excepthook = handle_exception
    logger = setup_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)

    try:
        data_manager = DataManager(str(args.data))
        if args.command == "generate":
            exit_code = run_generate(data_manager, args)
        else:
            exit_code = run_distribute_tasks(data_manager, args)
    except (DataManagerError, ValueError) as e:
        logger.error(f"Error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
