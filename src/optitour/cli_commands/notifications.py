"""Notification inbox CLI commands."""

import asyncio
from datetime import datetime

import typer

from optitour.cli_commands.common import open_client, output

notifications_app = typer.Typer(
    name="notifications",
    help="Notification inbox - list and mark as read.",
    no_args_is_help=True,
)


@notifications_app.command("list")
def list_notifications(
    unread: bool = typer.Option(False, "--unread", "-u", help="Only unread notifications"),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List notifications, newest first."""
    client = open_client()
    try:
        notifications = [
            n for n in client.notifications.notifications if not (unread and n.read)
        ]
        lines = [f"{client.notifications.unread_count()} unread"]
        for n in notifications:
            created = datetime.fromtimestamp(n.created_at / 1000).strftime("%Y-%m-%d %H:%M")
            marker = " " if n.read else "*"
            lines.append(f"{marker} {n.id}  {created}  {n.title}: {n.body}")
        output([n.to_dict() for n in notifications], output_json, lines)
    finally:
        asyncio.run(client.close())


@notifications_app.command()
def read(
    notification_id: str = typer.Argument(
        None,
        help="Notification to mark as read (all when omitted)",
    ),
) -> None:
    """Mark one or all notifications as read."""
    client = open_client()
    try:
        if notification_id:
            client.notifications.mark_as_read(notification_id)
        else:
            client.notifications.mark_all_as_read()
        typer.echo(f"{client.notifications.unread_count()} unread")
    finally:
        asyncio.run(client.close())
