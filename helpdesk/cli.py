"""CLI for working tickets from a terminal."""

from __future__ import annotations

from typing import Awaitable, Callable

import click

from helpdesk.core.async_utils import run_async
from helpdesk.core.config import settings
from helpdesk.core.errors import HelpdeskError
from helpdesk.core.structured_logging import configure_logging
from helpdesk.enums import TicketStatus
from helpdesk.schemas import Ticket, TicketFilter
from helpdesk.services.lifecycle_service import allowed_targets, display_lane
from helpdesk.session import HelpdeskSession

SessionAction = Callable[[HelpdeskSession], Awaitable[None]]


def _run(ctx: click.Context, action: SessionAction) -> None:
    """Open a session, run the action, always log out."""
    token = ctx.obj.get("token") if ctx.obj else None

    async def _main() -> None:
        async with await HelpdeskSession.open(settings, token=token) as session:
            await action(session)

    try:
        run_async(_main)
    except HelpdeskError as exc:
        click.echo(f"❌ {type(exc).__name__}: {exc.message}", err=True)
        ctx.exit(1)


def _ticket_line(ticket: Ticket) -> str:
    flags = []
    if ticket.cancelled:
        flags.append("cancelled")
    if ticket.archived:
        flags.append("archived")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    return (
        f"#{ticket.id} {ticket.protocol}  {ticket.status.value:<12} "
        f"{ticket.priority.value:<8} {ticket.title}{suffix}"
    )


@click.group()
@click.option("--token", envvar="HELPDESK_API_TOKEN", default=None, help="Bearer token (defaults to settings)")
@click.pass_context
def cli(ctx: click.Context, token: str | None):
    """Helpdesk ticket lifecycle tools."""
    configure_logging(settings.LOG_LEVEL)
    ctx.ensure_object(dict)
    ctx.obj["token"] = token


@cli.command()
@click.option("--status", type=click.Choice([s.value for s in TicketStatus]), default=None)
@click.option("--include-cancelled", is_flag=True, help="Include cancelled tickets")
@click.option("--include-archived", is_flag=True, help="Include archived tickets")
@click.pass_context
def tickets(ctx: click.Context, status: str | None, include_cancelled: bool, include_archived: bool):
    """
    List tickets visible to the logged-in user.

    Example:
        helpdesk tickets --status in_progress
    """

    async def action(session: HelpdeskSession) -> None:
        query = TicketFilter(
            status=TicketStatus(status) if status else None,
            include_cancelled=include_cancelled,
            include_archived=include_archived,
        )
        result = await session.coordinator.list(query)
        if not result:
            click.echo("No tickets.")
        for ticket in result:
            click.echo(_ticket_line(ticket))

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.pass_context
def show(ctx: click.Context, ticket_id: int):
    """Show one ticket with its comments and history."""

    async def action(session: HelpdeskSession) -> None:
        coordinator = session.coordinator
        ticket = await coordinator.get(ticket_id)
        if ticket is None:
            click.echo(f"❌ Ticket not found: {ticket_id}")
            return
        comments = await coordinator.list_comments(ticket_id)
        history = await coordinator.load_history(ticket_id)

        click.echo(_ticket_line(ticket))
        click.echo(f"  Lane: {display_lane(ticket.status).value}")
        click.echo(f"  Requester: {ticket.requester_id}  Technician: {ticket.assigned_technician_id or '-'}")
        if ticket.has_resolution:
            click.echo(f"  Resolution: {ticket.resolution_text}")
        if ticket.rating:
            click.echo(f"  Rating: {ticket.rating}/5")
        targets = allowed_targets(ticket.status, session.actor.role, cancelled=ticket.cancelled)
        if targets:
            click.echo(f"  Next: {', '.join(status.value for status in targets)}")
        click.echo(f"Comments ({len(comments)}):")
        for comment in comments:
            marker = " (internal)" if comment.internal else ""
            click.echo(f"  [{comment.created_at:%Y-%m-%d %H:%M}] #{comment.author_id}{marker}: {comment.text}")
        click.echo(f"History ({len(history)}):")
        for entry in history:
            change = ""
            if entry.prior_status and entry.new_status:
                change = f" {entry.prior_status.value} → {entry.new_status.value}"
            click.echo(f"  [{entry.timestamp:%Y-%m-%d %H:%M}] {entry.action.value}{change} by #{entry.actor_id}")

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.argument("status", type=click.Choice([s.value for s in TicketStatus]))
@click.option("--resolution", default=None, help="Resolution text (required for resolved)")
@click.pass_context
def transition(ctx: click.Context, ticket_id: int, status: str, resolution: str | None):
    """
    Move a ticket to another status.

    Example:
        helpdesk transition 42 resolved --resolution "Replaced the toner"
    """

    async def action(session: HelpdeskSession) -> None:
        ticket = await session.coordinator.apply_transition(
            ticket_id,
            TicketStatus(status),
            session.actor,
            resolution_text=resolution,
        )
        click.echo(f"✓ {_ticket_line(ticket)}")

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.argument("text")
@click.option("--internal", is_flag=True, help="Hide from the requester (staff only)")
@click.pass_context
def comment(ctx: click.Context, ticket_id: int, text: str, internal: bool):
    """Add a comment to a ticket."""

    async def action(session: HelpdeskSession) -> None:
        created = await session.coordinator.add_comment(ticket_id, session.actor, text, internal)
        click.echo(f"✓ Comment {created.id} added to ticket {ticket_id}")

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.option("--reason", required=True, help="Why the ticket is cancelled")
@click.pass_context
def cancel(ctx: click.Context, ticket_id: int, reason: str):
    """Cancel a ticket (soft removal)."""

    async def action(session: HelpdeskSession) -> None:
        ticket = await session.coordinator.cancel(ticket_id, session.actor, reason)
        click.echo(f"✓ {_ticket_line(ticket)}")

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.option("--undo", is_flag=True, help="Unarchive instead")
@click.pass_context
def archive(ctx: click.Context, ticket_id: int, undo: bool):
    """Archive (or unarchive) a ticket."""

    async def action(session: HelpdeskSession) -> None:
        if undo:
            ticket = await session.coordinator.unarchive(ticket_id, session.actor)
        else:
            ticket = await session.coordinator.archive(ticket_id, session.actor)
        click.echo(f"✓ {_ticket_line(ticket)}")

    _run(ctx, action)


@cli.command()
@click.argument("ticket_id", type=int)
@click.argument("rating", type=click.IntRange(1, 5))
@click.pass_context
def rate(ctx: click.Context, ticket_id: int, rating: int):
    """Rate a resolved ticket you opened."""

    async def action(session: HelpdeskSession) -> None:
        ticket = await session.coordinator.rate(ticket_id, session.actor, rating)
        click.echo(f"✓ Rated ticket {ticket.id}: {ticket.rating}/5")

    _run(ctx, action)


@cli.command()
@click.option("--include-cancelled", is_flag=True, help="Count cancelled tickets too")
@click.pass_context
def summary(ctx: click.Context, include_cancelled: bool):
    """Dashboard counters (archived tickets counted separately)."""

    async def action(session: HelpdeskSession) -> None:
        coordinator = session.coordinator
        await coordinator.list(
            TicketFilter(include_archived=True, include_cancelled=include_cancelled)
        )
        result = coordinator.summary()
        for status, count in result.by_status.items():
            click.echo(f"{status.value:<12} {count}")
        click.echo(f"{'archived':<12} {result.archived}")
        click.echo(f"Average resolution: {result.average_resolution_hours}h")
        click.echo("Recent:")
        for ticket in result.recent:
            click.echo(f"  {_ticket_line(ticket)}")

    _run(ctx, action)


if __name__ == "__main__":
    cli()
