"""Command-line booking client.

Usage:
    intranet-client list
    intranet-client book --room aquario --start 2025-03-10T09:00 --end 2025-03-10T10:00 --title "Daily"
    intranet-client cancel 42
    intranet-client reconcile
    intranet-client watch              # keep reconciling in the background
"""

from __future__ import annotations

import logging
import time
from datetime import datetime

import click

from intranet.client.local_store import LocalStore
from intranet.client.reconciler import BackgroundReconciler
from intranet.client.scheduler import ReservationScheduler
from intranet.client.settings import ClientSettings
from intranet.client.transport import HttpTransport
from intranet.core.auth.principal import Principal
from intranet.domains.reservations.errors import ReservationError, TransportError


def _build(settings: ClientSettings) -> ReservationScheduler:
    if not settings.email or not settings.password:
        raise click.ClickException("Set PORTAL_EMAIL and PORTAL_PASSWORD")
    transport = HttpTransport(settings.api_url, timeout=settings.timeout)
    try:
        user = transport.login(settings.email, settings.password)
    except TransportError as exc:
        if exc.status == 401:
            raise click.ClickException("Login failed: invalid credentials") from exc
        click.echo(f"Portal unreachable ({exc}); working offline", err=True)
        user = {}
    except ReservationError as exc:
        raise click.ClickException(f"Login failed: {exc}") from exc
    principal = Principal(
        id=int(user.get("id") or 0),
        name=user.get("full_name") or settings.email.split("@", 1)[0],
        email=user.get("email") or settings.email,
        sector=user.get("sector") or "Geral",
        avatar_url=user.get("avatar_url"),
    )
    return ReservationScheduler(transport, LocalStore(settings.state_path), principal, timezone=settings.timezone)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Book portal rooms, online or offline."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    settings = ClientSettings.from_env()
    ctx.obj = {"settings": settings}


def _scheduler(ctx: click.Context) -> ReservationScheduler:
    if "scheduler" not in ctx.obj:
        ctx.obj["scheduler"] = _build(ctx.obj["settings"])
    return ctx.obj["scheduler"]


@cli.command("list")
@click.pass_context
def list_command(ctx: click.Context):
    """Show known bookings (pending ones are marked)."""
    scheduler = _scheduler(ctx)
    for record in scheduler.list_bookings():
        marker = "*" if record.is_pending else " "
        click.echo(
            f"{marker} {record.key:>12}  {record.room:<10} {record.start:%Y-%m-%d %H:%M}-{record.end:%H:%M}  "
            f"{record.title} ({record.owner_name})"
        )
    if scheduler.offline:
        click.echo("(offline: showing last snapshot)", err=True)


@cli.command("book")
@click.option("--room", required=True)
@click.option("--start", "start", required=True, type=click.DateTime(["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]))
@click.option("--end", "end", required=True, type=click.DateTime(["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]))
@click.option("--title", required=True)
@click.pass_context
def book_command(ctx: click.Context, room: str, start: datetime, end: datetime, title: str):
    """Propose a booking; queued if the portal is unreachable."""
    scheduler = _scheduler(ctx)
    scheduler.list_bookings()
    try:
        record = scheduler.propose_booking(room, start, end, title)
    except ReservationError as exc:
        raise click.ClickException(f"{exc.code}: {exc}") from exc
    state = "queued" if record.is_pending else "confirmed"
    click.echo(f"Booking {record.key} {state}")


@cli.command("cancel")
@click.argument("key")
@click.pass_context
def cancel_command(ctx: click.Context, key: str):
    """Delete one of your bookings."""
    scheduler = _scheduler(ctx)
    scheduler.list_bookings()
    try:
        deleted = scheduler.delete_booking(key)
    except ReservationError as exc:
        raise click.ClickException(f"{exc.code}: {exc}") from exc
    click.echo("Deleted" if deleted else "Nothing to delete")


@cli.command("reconcile")
@click.pass_context
def reconcile_command(ctx: click.Context):
    """Replay queued offline writes now."""
    result = _scheduler(ctx).reconcile_pending()
    click.echo(
        f"Replayed {len(result.replayed)}, rejected {len(result.rejected)}, remaining {result.remaining}"
    )


@cli.command("watch")
@click.pass_context
def watch_command(ctx: click.Context):
    """Reconcile on start, then keep reconciling in the background."""
    scheduler = _scheduler(ctx)
    scheduler.start()
    reconciler = BackgroundReconciler(scheduler, interval=ctx.obj["settings"].reconcile_interval)
    reconciler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        reconciler.stop(timeout=5)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
