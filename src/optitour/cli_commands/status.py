"""Status command for the OptiTour CLI."""

import asyncio

import typer

from optitour.cli_commands.common import open_client, output


def status_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show queue, notification and backend status."""

    async def _run() -> dict:
        async with open_client() as client:
            status = client.get_status()
            status["server_reachable"] = await client.api.check_server()
            return status

    status = asyncio.run(_run())

    lines = [
        "",
        "OptiTour Client Status",
        "----------------------",
        f"Backend: {'reachable' if status['server_reachable'] else 'unreachable'}",
        f"Signed in: {'yes' if status['authenticated'] else 'no'}",
        f"Queue: {status['queue_total']} pending action(s)",
    ]
    for item_type, count in status["queue"].items():
        if count:
            lines.append(f"  {item_type}: {count}")
    if status["queue_unreadable"]:
        lines.append(f"Unreadable queue entries: {status['queue_unreadable']}")
    if status["dead_letters"]:
        lines.append(f"Dead letters: {status['dead_letters']}")
    lines.append(f"Unread notifications: {status['unread_notifications']}")
    lines.append("")
    output(status, output_json, lines)
