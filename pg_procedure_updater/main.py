"""Command line entry point for the procedure list updater."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pg_procedure_updater.core.comparator import summarize
from pg_procedure_updater.core.errors import ConfigError
from pg_procedure_updater.core.options import UpdaterOptions
from pg_procedure_updater.core.updater import ProcedureListUpdater
from pg_procedure_updater.utils.config import Config
from pg_procedure_updater.utils.logger import setup_logger
from pg_procedure_updater.utils.report_generator import export_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-procedure-updater",
        description=(
            "Update the CREATE OR REPLACE PROCEDURE/FUNCTION statements in a SQL script "
            "using one .sql file per procedure or function"
        ),
    )
    parser.add_argument("input", help="SQL script file to process")
    parser.add_argument(
        "-d", "--directory",
        help="Directory with the .sql files; defaults to the directory of the input file",
    )
    parser.add_argument(
        "--no-recurse",
        action="store_true",
        help="Only search the top level of the directory for .sql files",
    )
    parser.add_argument("-o", "--output", help="Output file; defaults to <input>_updated.<ext>")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show additional status messages")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--report", help="Write a per-object report (.csv, .json, .html, .xlsx or .pdf)")
    parser.add_argument("--log-dir", help="Directory for log files")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = Config(Path(args.config)) if args.config else Config()
    logging_settings = config.get_section("logging")
    log_dir = args.log_dir if args.log_dir else logging_settings.get("log_dir")
    level = logging.DEBUG if args.verbose else getattr(logging, str(logging_settings.get("level", "INFO")).upper(), logging.INFO)
    logger = setup_logger(log_dir=log_dir, level=level, console_level=level)

    try:
        options = UpdaterOptions.from_config(
            config,
            input_file_path=args.input,
            sql_files_directory=args.directory,
            output_file_path=args.output,
            recurse=False if args.no_recurse else None,
            verbose=True if args.verbose else None,
        )
        options.validate()
    except (ConfigError, TypeError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info(options.describe())

    updater = ProcedureListUpdater(options)
    result = updater.process_file()

    if not result.success:
        logger.error("Processing failed; no output file was written")
        return 1

    if args.report:
        report_format = config.get("report", "format", "csv")
        try:
            report_path = export_report([o.to_dict() for o in result.outcomes], Path(args.report), report_format)
        except (OSError, ValueError) as e:
            logger.error(f"Error writing report {args.report}: {e}")
            return 1
        logger.info(f"Report written to {report_path}")

    for status, count in summarize(result.outcomes).items():
        if count:
            logger.info(f"{status:<20} {count}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
