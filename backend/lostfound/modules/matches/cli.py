from __future__ import annotations

import asyncio

import click
from flask import current_app
from flask.cli import with_appcontext

from ...extensions import get_session_factory
from ..notifications.emitter import DatabaseNotificationEmitter, NullNotificationEmitter
from .service import MatchService


@click.command("rescan-matches")
@click.option("--kind", type=click.Choice(["lost", "found"]), default=None, help="Only rescan one side.")
@click.option("--item-id", type=int, default=None, help="Re-match a single item (defaults to --kind lost).")
@click.option("--no-notify", is_flag=True, help="Create matches without notifying users.")
@with_appcontext
def rescan_matches_command(kind: str | None, item_id: int | None, no_notify: bool) -> None:
    """Re-run matching over all open items, or one item (operational recovery)."""
    factory = get_session_factory()
    notifier = NullNotificationEmitter() if no_notify else DatabaseNotificationEmitter(factory)
    service = MatchService(factory, notifier, window_days=int(current_app.config["MATCH_WINDOW_DAYS"]))
    if item_id is not None:
        created = len(asyncio.run(service.on_item_created(item_id, kind or "lost")))
    else:
        created = asyncio.run(service.rescan(kind))
    click.echo(f"Matches created: {created}")
