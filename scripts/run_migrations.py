#!/usr/bin/env python3
"""
Alembic wrapper for local and CI use.

    python scripts/run_migrations.py upgrade [revision]
    python scripts/run_migrations.py downgrade [revision]
    python scripts/run_migrations.py current | history | check
    python scripts/run_migrations.py create "message"
"""

import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError

from config import settings
from database.utils import sanitize_db_url


def get_alembic_config() -> Config:
    cfg = Config(str(project_root / "alembic.ini"))
    cfg.set_main_option("script_location", str(project_root / "alembic"))
    return cfg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage BookingOps database migrations")
    sub = parser.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upgrade", help="Upgrade to a revision (default: head)")
    up.add_argument("revision", nargs="?", default="head")

    down = sub.add_parser("downgrade", help="Downgrade to a revision (default: one step back)")
    down.add_argument("revision", nargs="?", default="-1")

    sub.add_parser("current", help="Show the current revision")
    sub.add_parser("history", help="Show migration history")
    sub.add_parser("check", help="Fail if the models have changes without a migration")

    create = sub.add_parser("create", help="Autogenerate a new revision")
    create.add_argument("message", nargs="+")
    create.add_argument("--empty", action="store_true", help="Skip autogenerate")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cfg = get_alembic_config()
    print(f"Database: {sanitize_db_url(settings.database_url)}")

    try:
        if args.command == "upgrade":
            command.upgrade(cfg, args.revision)
            print(f"✓ Upgraded to {args.revision}")
        elif args.command == "downgrade":
            command.downgrade(cfg, args.revision)
            print(f"✓ Downgraded to {args.revision}")
        elif args.command == "current":
            command.current(cfg, verbose=True)
        elif args.command == "history":
            command.history(cfg)
        elif args.command == "check":
            command.check(cfg)
            print("✓ Models and migrations are in sync")
        elif args.command == "create":
            message = " ".join(args.message)
            command.revision(cfg, message=message, autogenerate=not args.empty)
            print(f"✓ Created revision: {message}")
    except CommandError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
