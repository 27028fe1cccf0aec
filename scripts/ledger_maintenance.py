"""
Ledger maintenance command line.

Runs the ledger consistency jobs against the configured database:

  python -m scripts.ledger_maintenance normalize   # flip negative entry amounts
  python -m scripts.ledger_maintenance repair      # balance transactions via Suspense
  python -m scripts.ledger_maintenance reconcile   # recompute cached balances
  python -m scripts.ledger_maintenance all         # all three, in that order

Exit status is 0 on success, 1 when another run holds the maintenance lock
or any account failed to reconcile.
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, Sequence

from bizos.app.core.config import settings
from bizos.app.core.exceptions import AppException
from bizos.app.core.observability import configure_logging
from bizos.app.db.session import AsyncSessionLocal, engine
from bizos.app.domain.ledger.reconciliation import MAINTENANCE_TASKS, run_ledger_maintenance

COMMANDS = MAINTENANCE_TASKS + ("all",)


def print_summary(results: Dict[str, Any]) -> bool:
    """Print one block per task. Returns False if any account failed."""
    ok = True

    if "normalize" in results:
        normalized = results["normalize"]["normalized"]
        print(f"🔁 Normalize: {len(normalized)} negative entries rewritten")
        for entry in normalized:
            print(
                f"   - entry {entry['entry_id']}: {entry['old_direction']} {entry['old_amount']}"
                f" -> {entry['new_direction']} {entry['new_amount']}"
            )

    if "repair" in results:
        repair = results["repair"]
        print(f"🩹 Repair: {len(repair['repaired'])} of {repair['transactions_checked']} transactions balanced")
        for fix in repair["repaired"]:
            print(
                f"   - transaction {fix['transaction_id']}: debits {fix['debits']}, credits {fix['credits']},"
                f" {fix['correction_direction']} {fix['correction_amount']} to suspense"
            )

    if "reconcile" in results:
        reconcile = results["reconcile"]
        print(
            f"⚖️  Reconcile: {reconcile['accounts_checked']} accounts checked,"
            f" {len(reconcile['adjustments'])} adjusted, {len(reconcile['errors'])} failed"
        )
        for adjustment in reconcile["adjustments"]:
            print(
                f"   - [{adjustment['code']}] {adjustment['name']}: "
                f"{adjustment['stored_balance']} -> {adjustment['recomputed_balance']}"
            )
        for error in reconcile["errors"]:
            print(f"   ❌ account {error['account_id']}: {error['error_code']} {error['message']}")
        ok = not reconcile["errors"]

    return ok


async def run(command: str, actor: str) -> int:
    tasks: Sequence[str] = MAINTENANCE_TASKS if command == "all" else (command,)

    try:
        async with AsyncSessionLocal() as db:
            results = await run_ledger_maintenance(db, tasks=tasks, actor_username=actor, holder=actor)
    except AppException as exc:
        print(f"❌ {exc.error_code}: {exc.message}")
        return 1
    finally:
        await engine.dispose()

    ok = print_summary(results)
    print("\n🎉 Ledger maintenance completed" if ok else "\n⚠️  Ledger maintenance completed with errors")
    return 0 if ok else 1


def main(argv: Sequence[str] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Ledger consistency maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Run 'all' to normalize, repair and reconcile in the safe order.",
    )
    parser.add_argument("command", choices=COMMANDS, help="Maintenance task to run")
    parser.add_argument("--actor", default="cli", help="Name recorded in the audit log and lock (default: cli)")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    return asyncio.run(run(args.command, args.actor))


if __name__ == "__main__":
    sys.exit(main())
