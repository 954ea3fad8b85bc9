#!/usr/bin/env python3
"""Delete read notifications older than a cutoff.

Run (e.g. from cron, once a day):
    python -m marketplace.scripts.clean_notifications --days 30

Unread notifications are never removed.
"""
from __future__ import annotations

import asyncio
import logging

import click

from marketplace.core.logger import configure
from marketplace.infra.database.engine import build_engine, build_session_factory, close_engine
from marketplace.services.notification_service import DEFAULT_RETENTION_DAYS, NotificationService

logger = logging.getLogger("marketplace.scripts.clean_notifications")


async def clean(days: int) -> int:
    engine = build_engine(use_null_pool=True)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            deleted = await NotificationService(session).clean_old_notifications(days_old=days)
            await session.commit()
    finally:
        await close_engine()
    logger.info("Notification cleanup complete: %d deleted (older than %d days).", deleted, days)
    return deleted


@click.command()
@click.option(
    "--days",
    type=click.IntRange(min=1),
    default=DEFAULT_RETENTION_DAYS,
    show_default=True,
    help="Age in days after which read notifications are deleted.",
)
def main(days: int) -> None:
    """Delete read notifications older than DAYS days."""
    configure()
    deleted = asyncio.run(clean(days))
    click.echo(f"Deleted {deleted} read notification(s) older than {days} days.")


if __name__ == "__main__":
    main()
