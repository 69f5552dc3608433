"""Command line maintenance tasks: backup, restore, dividend sweep and verification."""

from __future__ import annotations

import argparse
import asyncio
from datetime import date
from pathlib import Path
from typing import Sequence

from .api.database import Database
from .api.repository import SqlAlchemyRepository
from .core.logging import setup_logging
from .providers import SinaDividendSource
from .services import LedgerService


async def _service(database_url: str | None, **kwargs) -> tuple[LedgerService, Database]:
    database = Database(url=database_url)
    repository = SqlAlchemyRepository(database)
    await repository.initialize()
    return LedgerService(repository, **kwargs), database


async def _export(args: argparse.Namespace) -> int:
    service, database = await _service(args.database_url)
    try:
        payload = await service.export_backup()
    finally:
        await database.dispose()
    Path(args.output).write_text(payload, encoding="utf-8")
    print(f"Backup written to {args.output}")
    return 0


async def _import(args: argparse.Namespace) -> int:
    source = Path(args.backup_file)
    if not source.exists():
        raise SystemExit(f"Backup file not found: {source}")
    service, database = await _service(args.database_url)
    try:
        count = await service.import_backup(source.read_bytes())
    finally:
        await database.dispose()
    print(f"Restored {count} stock(s) from {source}")
    return 0


async def _check_dividends(args: argparse.Namespace) -> int:
    service, database = await _service(args.database_url, dividends=SinaDividendSource())
    try:
        updated = await service.check_all_dividends(args.as_of)
    finally:
        await database.dispose()
    print(f"Applied new dividends to {updated} stock(s)")
    return 0


async def _verify(args: argparse.Namespace) -> int:
    service, database = await _service(args.database_url)
    try:
        report = await service.verify()
    finally:
        await database.dispose()
    if not report:
        print("All stocks are consistent")
        return 0
    for symbol, problems in report.items():
        print(symbol)
        for problem in problems:
            print(f"  - {problem}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="harvest", description="Harvest ledger maintenance tasks")
    parser.add_argument("--database-url", default=None, help="Override HARVEST_DATABASE_URL")
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Write a JSON backup of settings, stocks and lots")
    export.add_argument("--output", default="backup.json")
    export.set_defaults(handler=_export)

    restore = commands.add_parser("import", help="Replace all stored data with a JSON backup")
    restore.add_argument("backup_file")
    restore.set_defaults(handler=_import)

    dividends = commands.add_parser("check-dividends", help="Apply new cash dividends to open lots")
    dividends.add_argument("--as-of", type=date.fromisoformat, default=None)
    dividends.set_defaults(handler=_check_dividends)

    verify = commands.add_parser("verify", help="Check stored lots for split and replay consistency")
    verify.set_defaults(handler=_verify)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    raise SystemExit(main())
