#!/usr/bin/env python3
"""
Inventory and ledger maintenance from the command line.

Commands:
  health   Compare cached item stock with the cost layers (and, with
           --accounts, cached account balances with the journal lines).
  resync   Rewrite drifted item caches (and account balances with --accounts).
  reset    Delete all transactional data.  Requires --confirm DELETE-TEST-DATA.
  init     Create tables and seed the configured chart of accounts.

Usage:
  python3 scripts/ledger_admin.py --db-url sqlite:///erp.db health --accounts
  python3 scripts/ledger_admin.py reset --confirm DELETE-TEST-DATA

The database URL defaults to $DATABASE_URL.
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEFAULT_DB_URL = os.environ.get("DATABASE_URL", "sqlite:///erp.db")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="ERP inventory ledger maintenance")
    p.add_argument("--db-url", default=DEFAULT_DB_URL, help="Database URL (default: $DATABASE_URL)")
    p.add_argument("--config", type=Path, default=None, help="Path to an ERP YAML config")
    p.add_argument("--user", default="admin", help="User id recorded on rewritten rows")

    sub = p.add_subparsers(dest="command", required=True)
    health = sub.add_parser("health", help="Report drift without changing anything")
    health.add_argument("--accounts", action="store_true", help="Also check account balances")
    health.add_argument("--verbose", "-v", action="store_true", help="List every out-of-sync item")

    resync = sub.add_parser("resync", help="Rewrite cached aggregates from their sources")
    resync.add_argument("--accounts", action="store_true", help="Also resync account balances")

    reset = sub.add_parser("reset", help="Delete all transactional data")
    reset.add_argument("--confirm", required=True, help="Confirmation code")

    sub.add_parser("init", help="Create tables and seed the chart of accounts")
    return p.parse_args(argv)


def _cmd_health(session, config, args) -> int:
    from erp_services.reconciliation_service import InventoryReconciliationService

    service = InventoryReconciliationService(
        session, tolerance=config.inventory.health_tolerance, chart=config.chart_of_accounts,
    )
    summary = service.check_inventory_health()
    print(f"  Items checked:     {summary.total_items}")
    print(f"  Out of sync:       {summary.out_of_sync_count}")
    print(f"  Layer value:       {summary.layer_value:,}")
    print(f"  Cached value:      {summary.cached_value:,}")
    print(f"  Discrepancy:       {summary.discrepancy:,} (tolerance {summary.tolerance:,})")
    print(f"  Status:            {'HEALTHY' if summary.is_healthy else 'DRIFTED'}")

    if args.verbose:
        for status in service.audit_inventory_sync_status():
            if not status.in_sync:
                print(
                    f"    {status.sku}: qty {status.cached_quantity} vs {status.layer_quantity}, "
                    f"avg {status.cached_average_cost} vs {status.layer_average_cost}"
                )

    gl = service.check_inventory_gl_reconciliation()
    print(f"  GL vs layers:      {gl.gl_total:,} vs {gl.layer_total:,}")
    for account in gl.accounts:
        classes = ", ".join(account.item_classes) or "-"
        print(
            f"    {account.account_code} ({classes}): GL {account.gl_balance:,} "
            f"layers {account.layer_value:,} diff {account.discrepancy:,}"
        )
    print(f"  GL status:         {'RECONCILED' if gl.is_reconciled else 'DISCREPANCY'}")

    accounts_ok = True
    if args.accounts:
        drifts = [d for d in service.check_account_balances() if not d.in_sync]
        accounts_ok = not drifts
        print(f"  Account drift:     {len(drifts)}")
        for drift in drifts:
            print(f"    {drift.account_code}: cached {drift.cached_balance:,} vs derived {drift.derived_balance:,}")

    return 0 if summary.is_healthy and gl.is_reconciled and accounts_ok else 2


def _cmd_resync(session, config, args, actor) -> int:
    from erp_services.reconciliation_service import InventoryReconciliationService

    service = InventoryReconciliationService(session, tolerance=config.inventory.health_tolerance)
    items = service.resync_inventory_from_layers(actor)
    print(f"  Items: {items.updated} of {items.checked} rewritten")
    if args.accounts:
        accounts = service.resync_account_balances(actor)
        print(f"  Accounts: {accounts.updated} of {accounts.checked} rewritten")
    return 0


def _cmd_reset(session, config, args, actor) -> int:
    from erp_kernel.exceptions import ErpKernelError
    from erp_services.system_reset_service import SystemResetService

    service = SystemResetService(session, confirmation_code=config.reset_confirmation_code)
    try:
        report = service.reset_transactional_data(actor, args.confirm)
    except ErpKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    for table, count in report.deleted.items():
        if count:
            print(f"  {table}: {count} deleted")
    print(f"  Items reset: {report.items_reset}; accounts reset: {report.accounts_reset}")
    return 0


def _cmd_init(session, config) -> int:
    from erp_config.bridges import seed_chart_of_accounts
    from erp_kernel.db.engine import create_tables

    create_tables()
    created = seed_chart_of_accounts(session, config.chart_of_accounts)
    session.commit()
    print(f"  Tables ready; {len(created)} accounts created")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from erp_config import get_active_config
    from erp_kernel.db.engine import get_session, init_engine_from_url
    from erp_kernel.domain.actor import Actor, Role

    try:
        init_engine_from_url(args.db_url, echo=False)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    config = get_active_config(args.config)
    actor = Actor(user_id=args.user, role=Role.ADMIN)
    session = get_session()
    try:
        if args.command == "health":
            return _cmd_health(session, config, args)
        if args.command == "resync":
            return _cmd_resync(session, config, args, actor)
        if args.command == "reset":
            return _cmd_reset(session, config, args, actor)
        return _cmd_init(session, config)
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
