"""Rapport command line.

Usage:
    rapport --init                        # Create the database
    rapport --recalculate                 # Re-derive metrics for every contact
    rapport --brief                       # Print the attention brief
    rapport --export-csv contacts.csv     # Export contacts
    rapport --version                     # Show version
"""

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from rapport import __version__
from rapport.core.config import get_config, validate_config
from rapport.core.exceptions import RapportError
from rapport.core.logging import get_logger, setup_logging, shutdown_logging


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the rapport command."""
    parser = argparse.ArgumentParser(
        prog="rapport",
        description="Rapport - relationship scoring and attention tracking",
    )
    parser.add_argument("--init", action="store_true", help="Create the database schema")
    parser.add_argument(
        "--recalculate",
        action="store_true",
        help="Recalculate derived metrics for all contacts",
    )
    parser.add_argument("--brief", action="store_true", help="Print the attention brief")
    parser.add_argument("--export-csv", type=Path, metavar="PATH", help="Export contacts to CSV")
    parser.add_argument("--export-json", type=Path, metavar="PATH", help="Export contacts to JSON")
    parser.add_argument(
        "--export-xlsx", type=Path, metavar="PATH", help="Export contacts to Excel"
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for Rapport.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"Rapport v{__version__}")
        return 0

    config = get_config()
    setup_logging(console_level=logging.DEBUG if args.debug or config.debug else logging.INFO)
    logger = get_logger("main")
    logger.info(f"Rapport v{__version__} starting...")

    issues = validate_config(config)
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    from rapport.db.database import Database

    db = Database()
    try:
        db.initialize()
        if args.init:
            print(f"Database ready at {db.db_path}")

        if args.recalculate:
            from rapport.engine.refresh import ContactMetrics

            count = ContactMetrics(db).recalculate_all()
            print(f"Recalculated {count} contacts")

        if args.export_csv or args.export_json or args.export_xlsx:
            from rapport.engine import export

            contacts = db.get_contacts()
            if args.export_csv:
                export.export_contacts_csv(contacts, args.export_csv)
            if args.export_json:
                export.export_contacts_json(contacts, args.export_json)
            if args.export_xlsx:
                export.export_contacts_xlsx(contacts, args.export_xlsx)

        if args.brief:
            from rapport.content.attention_brief import generate_attention_brief

            print(generate_attention_brief(db).full_text)

    except RapportError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        db.close()
        shutdown_logging()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
