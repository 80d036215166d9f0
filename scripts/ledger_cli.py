#!/usr/bin/env python3
"""
Command-line access to the ledger.

Every command runs in its own transaction and prints a JSON document on
stdout.  Ledger errors are printed as ``{"error": CODE, ...}`` on stderr
with exit status 1.

Usage:
    python3 scripts/ledger_cli.py init-db
    python3 scripts/ledger_cli.py create-account ACC-1 checking 1000 owner-1
    python3 scripts/ledger_cli.py post ACC-1 2024-01-05 deposit 250.00
    python3 scripts/ledger_cli.py revise 3 2024-01-05 deposit 200.00
    python3 scripts/ledger_cli.py remove 3
    python3 scripts/ledger_cli.py statement 2024-01-01 2024-01-31 1 2
    python3 scripts/ledger_cli.py --owner owner-1=Alice statement 2024-01-01 2024-01-31 1
"""

import argparse
import json
import sys
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ledger_config import get_active_settings  # noqa: E402
from ledger_kernel.clients.owner_directory import (  # noqa: E402
    HttpOwnerDirectory,
    OwnerDirectory,
    StaticOwnerDirectory,
)
from ledger_kernel.db.engine import init_from_settings, session_scope  # noqa: E402
from ledger_kernel.db.types import plain_money  # noqa: E402
from ledger_kernel.exceptions import LedgerError  # noqa: E402
from ledger_kernel.logging_config import configure_logging  # noqa: E402
from ledger_kernel.services import AccountService, LedgerEngine, StatementBuilder  # noqa: E402


def _json_default(obj):
    if isinstance(obj, Decimal):
        return format(plain_money(obj), "f")
    if isinstance(obj, date):
        return obj.isoformat()
    raise TypeError(f"Cannot serialize {type(obj).__name__}")


def _emit(payload) -> None:
    print(json.dumps(payload, default=_json_default, indent=2))


def _owner_directory(args, settings) -> OwnerDirectory:
    if not args.owner:
        return HttpOwnerDirectory.from_settings(settings.owner_directory)
    names = {}
    for pair in args.owner:
        owner_id, sep, name = pair.partition("=")
        if not sep:
            raise SystemExit(f"--owner expects OWNER_ID=NAME, got {pair!r}")
        names[owner_id] = name
    return StaticOwnerDirectory(names)


# =============================================================================
# Commands
# =============================================================================

def cmd_init_db(args, session, directory):
    return {"status": "ok"}


def cmd_create_account(args, session, directory):
    account = AccountService(session).create_account(
        args.account_number, args.account_type, args.opening_balance, args.owner_id
    )
    return asdict(account)


def cmd_post(args, session, directory):
    movement = LedgerEngine(session, directory).apply_movement(
        args.account_number, args.date, args.type, args.value
    )
    return asdict(movement)


def cmd_revise(args, session, directory):
    movement = LedgerEngine(session, directory).revise_movement(
        args.movement_id, args.date, args.type, args.value
    )
    return asdict(movement)


def cmd_remove(args, session, directory):
    LedgerEngine(session, directory).remove_movement(args.movement_id)
    return {"removed": args.movement_id}


def cmd_statement(args, session, directory):
    statement = StatementBuilder(session, directory).build_statement(
        args.account_ids, args.start_date, args.end_date
    )
    data = asdict(statement)
    for section, built in zip(data["accounts"], statement.accounts):
        section["closing_balance"] = built.closing_balance
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Account ledger command line")
    parser.add_argument("--config", type=Path, default=None,
                        help="Settings YAML (default: ledger_config/sets/default.yaml)")
    parser.add_argument("--owner", action="append", metavar="OWNER_ID=NAME",
                        help="Resolve owner names locally instead of over HTTP")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create the ledger tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-account", help="Open an account")
    p.add_argument("account_number")
    p.add_argument("account_type")
    p.add_argument("opening_balance")
    p.add_argument("owner_id")
    p.set_defaults(func=cmd_create_account)

    p = sub.add_parser("post", help="Apply a movement to an account")
    p.add_argument("account_number")
    p.add_argument("date")
    p.add_argument("type")
    p.add_argument("value")
    p.set_defaults(func=cmd_post)

    p = sub.add_parser("revise", help="Replace a movement's date, type and value")
    p.add_argument("movement_id", type=int)
    p.add_argument("date")
    p.add_argument("type")
    p.add_argument("value")
    p.set_defaults(func=cmd_revise)

    p = sub.add_parser("remove", help="Delete a movement")
    p.add_argument("movement_id", type=int)
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("statement", help="Build a statement for accounts")
    p.add_argument("start_date")
    p.add_argument("end_date")
    p.add_argument("account_ids", type=int, nargs="+")
    p.set_defaults(func=cmd_statement)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_active_settings(args.config)
    configure_logging(level=settings.logging.level.upper())
    init_from_settings(settings, create=True)

    directory = _owner_directory(args, settings)
    try:
        with session_scope() as session:
            result = args.func(args, session, directory)
    except LedgerError as exc:
        print(
            json.dumps({"error": exc.code, "message": str(exc), **exc.details},
                       default=_json_default),
            file=sys.stderr,
        )
        return 1
    finally:
        if isinstance(directory, HttpOwnerDirectory):
            directory.close()

    _emit(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
