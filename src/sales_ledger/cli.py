"""Sales ledger command line interface.

Provides operational tools for:
- Ledger generation (for scheduled jobs)
- Ledger inspection
- Schema creation

Usage:
    python -m sales_ledger.cli generate --month 3 --year 2025 --user-id U
    python -m sales_ledger.cli ledger --month 3 --year 2025
    python -m sales_ledger.cli init-db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Callable
from uuid import UUID

from sales_ledger.config import ConfigurationError, Settings, configure_logging, get_settings
from sales_ledger.database import get_engine, make_session_factory
from sales_ledger.models import Base
from sales_ledger.services.audit_service import AuditAction, AuditService
from sales_ledger.services.ledger_generator import LedgerGenerator
from sales_ledger.services.ledger_service import LedgerConflictError, LedgerService
from sales_ledger.services.roster_service import RosterService
from sales_ledger.sources import AggregationError, build_order_process_client, build_order_source


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_month(s: str) -> int:
    month = int(s)
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"month must be 1-12, got {s}")
    return month


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


class SalesLedgerCli:
    """Sales ledger Command Line Interface."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self.parser = self._build_parser()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m sales_ledger.cli",
            description="Sales ledger operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Override DATABASE_URL",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # generate command
        generate = subparsers.add_parser(
            "generate",
            help="Generate or refresh the ledger for a month",
        )
        generate.add_argument("--month", type=parse_month, required=True)
        generate.add_argument("--year", type=int, required=True)
        generate.add_argument(
            "--user-id",
            type=parse_uuid,
            help="User recorded as having run the generation",
        )

        # ledger command
        ledger = subparsers.add_parser(
            "ledger",
            help="Print the ledger for a month as JSON",
        )
        ledger.add_argument("--month", type=parse_month, required=True)
        ledger.add_argument("--year", type=int, required=True)

        # init-db command
        subparsers.add_parser(
            "init-db",
            help="Create any missing tables",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        try:
            configure_logging(self.settings.log_level)
        except ConfigurationError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        handlers: dict[str, Callable[[argparse.Namespace], Any]] = {
            "generate": self._cmd_generate,
            "ledger": self._cmd_ledger,
            "init-db": self._cmd_init_db,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1
        return asyncio.run(handler(parsed))

    async def _cmd_generate(self, args: argparse.Namespace) -> int:
        """Run one generation and print a JSON summary."""
        engine = get_engine(args.database_url or self.settings.database_url)
        client = None
        if self.settings.is_external_mode:
            client = build_order_process_client(
                self.settings.order_process_url,
                self.settings.order_process_api_key,
                self.settings.order_process_timeout,
            )
        try:
            async with make_session_factory(engine)() as session:
                source = build_order_source(
                    self.settings, session, RosterService(session), client=client
                )
                try:
                    result = await LedgerGenerator(session, source).generate(
                        args.month, args.year, args.user_id
                    )
                except (AggregationError, LedgerConflictError) as e:
                    print(f"ERROR: {e}", file=sys.stderr)
                    return 1

                await AuditService(session).record(
                    args.user_id,
                    AuditAction.LEDGER_GENERATED,
                    f"Generated ledger for {args.month}/{args.year}: "
                    f"{result.entry_count} entries (cli)",
                    result.audit_details(),
                )
                await session.commit()
        finally:
            if client is not None:
                await client.aclose()
            await engine.dispose()

        print(_dump(result.audit_details()))
        return 0

    async def _cmd_ledger(self, args: argparse.Namespace) -> int:
        """Print the ledger for a month."""
        engine = get_engine(args.database_url or self.settings.database_url)
        try:
            async with make_session_factory(engine)() as session:
                rows = await LedgerService(session).get_ledger_for_month(args.month, args.year)
                payload = [
                    {
                        "sales_rep": row.sales_rep.display_name,
                        "office": row.sales_rep.office,
                        **row.entry.to_dict(),
                        "has_drift": row.has_drift,
                    }
                    for row in rows
                ]
        finally:
            await engine.dispose()

        print(_dump(payload))
        return 0

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create tables from the ORM metadata."""
        engine = get_engine(args.database_url or self.settings.database_url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()
        print("Schema ready")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = SalesLedgerCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
