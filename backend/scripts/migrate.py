from __future__ import annotations

import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from config import get_settings  # noqa: E402

SCRIPT_LOCATION = BACKEND_DIR / "alembic"
VERSION_LOCATIONS = SCRIPT_LOCATION / "versions"


def build_alembic_config() -> Config:
    settings = get_settings()

    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    config.set_main_option("version_locations", str(VERSION_LOCATIONS))
    config.set_main_option("sqlalchemy.url", settings.sync_database_url)

    # No alembic.ini, so skip its logger sections.
    config.attributes["configure_logger"] = False
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run Alembic migrations for the study database")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_upgrade = subparsers.add_parser("upgrade", help="Upgrade to a revision")
    parser_upgrade.add_argument("revision", nargs="?", default="head")

    parser_downgrade = subparsers.add_parser("downgrade", help="Downgrade to a revision")
    parser_downgrade.add_argument("revision")

    parser_stamp = subparsers.add_parser("stamp", help="Stamp revision without running")
    parser_stamp.add_argument("revision", nargs="?", default="head")

    parser_revision = subparsers.add_parser("revision", help="Create a new revision")
    parser_revision.add_argument("-m", "--message", required=True)
    parser_revision.add_argument("--autogenerate", action="store_true")

    subparsers.add_parser("current", help="Show current revision")
    subparsers.add_parser("history", help="Show revision history")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = build_alembic_config()

    # Schema state only changes through explicit commands; nothing is auto-stamped.
    match args.command:
        case "upgrade":
            command.upgrade(config, args.revision)
        case "downgrade":
            command.downgrade(config, args.revision)
        case "stamp":
            command.stamp(config, args.revision)
        case "revision":
            command.revision(config, message=args.message, autogenerate=args.autogenerate)
        case "current":
            command.current(config)
        case "history":
            command.history(config)
        case _:
            parser.error(f"Unsupported command: {args.command}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
