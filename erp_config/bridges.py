"""
Config -> kernel bridges.

Translates configuration artifacts into kernel rows.  The kernel never
imports ``erp_config``; callers that bootstrap a database go through here.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_config.schema import ChartOfAccounts
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account

logger = get_logger("config.bridges")


def seed_chart_of_accounts(
    session: Session,
    chart: ChartOfAccounts,
    created_by: str = "system",
) -> list[Account]:
    """
    Create every configured account that does not exist yet.

    Idempotent: existing codes are left untouched (names included).
    Flushes but does not commit.
    """
    existing = set(session.scalars(select(Account.code)).all())
    created: list[Account] = []
    for definition in chart.accounts:
        if definition.code in existing:
            continue
        account = Account(
            code=definition.code,
            name=definition.name,
            account_type=definition.account_type,
            description=definition.description,
            created_by=created_by,
        )
        session.add(account)
        created.append(account)
    session.flush()

    logger.info(
        "chart_of_accounts_seeded",
        extra={
            "accounts_created": len(created),
            "already_present": len(chart.accounts) - len(created),
        },
    )
    return created
