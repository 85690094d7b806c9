"""Flask CLI commands for portal maintenance.

Usage:
    flask dispatch-outbox              # drain ready outbox messages once
    flask dispatch-outbox --loop       # keep polling until interrupted
    flask rebuild-aggregates           # recompute every gamification profile
    flask rebuild-aggregates --user 7  # recompute a single profile
    flask grant-role --email a@b.c --role admin
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext


@click.command("dispatch-outbox")
@click.option("--loop", is_flag=True, help="Poll forever instead of draining once")
@with_appcontext
def dispatch_outbox_command(loop: bool):
    """Publish pending outbox messages to the in-process event bus."""
    from intranet.portal_platform.worker.config import DispatchConfig
    from intranet.portal_platform.worker.dispatcher import drain, run_dispatcher

    config = DispatchConfig.from_env()
    if loop:
        run_dispatcher(config)
        return
    processed = drain(config)
    click.echo(f"Processed {processed} outbox message(s)")


@click.command("rebuild-aggregates")
@click.option("--user", "-u", "user_id", type=int, help="Rebuild a single user's profile")
@with_appcontext
def rebuild_aggregates_command(user_id: int | None):
    """Recompute gamification profiles from the activity log."""
    from intranet.domains.gamification.services import rebuild_all_profiles, rebuild_profile

    if user_id is not None:
        profile = rebuild_profile(user_id)
        if profile is None:
            raise click.ClickException(f"No gamification profile for user {user_id}")
        click.echo(f"User {user_id}: {profile.total_points} points, level {profile.level}, streak {profile.streak}")
        return
    count = rebuild_all_profiles()
    click.echo(f"Rebuilt {count} profile(s)")


@click.command("grant-role")
@click.option("--email", required=True)
@click.option("--role", required=True)
@with_appcontext
def grant_role_command(email: str, role: str):
    """Attach a role (e.g. admin) to an existing account."""
    from sqlalchemy import func

    from intranet.core.auth.auth_service import grant_role
    from intranet.core.users.models import User

    user = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"No user with e-mail {email}")
    grant_role(user, role)
    click.echo(f"Granted {role} to {user.email}")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(dispatch_outbox_command)
    app.cli.add_command(rebuild_aggregates_command)
    app.cli.add_command(grant_role_command)
