"""Offline queue CLI commands."""

import asyncio
from datetime import datetime

import typer

from optitour.cli_commands.common import open_client, output
from optitour.store.offline import QueueItemType

queue_app = typer.Typer(
    name="queue",
    help="Offline queue - inspect, replay or clear pending actions.",
    no_args_is_help=True,
)


def _format_created(created_ms: int) -> str:
    return datetime.fromtimestamp(created_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


@queue_app.command("list")
def list_items(
    item_type: QueueItemType = typer.Option(
        None,
        "--type",
        "-t",
        help="Only show items of this type",
    ),
    dead: bool = typer.Option(
        False,
        "--dead",
        help="Show dead-lettered items instead",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List queued actions in replay order."""
    client = open_client()
    try:
        source = client.dead_letters if dead else client.queue
        items = source.list_by_type(item_type) if item_type else source.items

        lines = [f"{len(items)} item(s)"]
        for item in items:
            lines.append(
                f"  {item.id}  {item.type.value:<16} retries={item.retries}  "
                f"created={_format_created(item.created_at)}"
            )
        output([item.to_dict() for item in items], output_json, lines)
    finally:
        asyncio.run(client.close())


@queue_app.command()
def sync(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Replay the queue once against the backend."""

    async def _run() -> dict:
        async with open_client() as client:
            if not await client.api.check_server():
                return {"status": "offline", "queue_total": len(client.queue)}
            report = await client.replayer.process_queue()
            return {"status": "ok", **report.as_dict(), "queue_total": len(client.queue)}

    result = asyncio.run(_run())
    if result["status"] == "offline":
        output(result, output_json, ["Backend unreachable, nothing replayed."])
        raise typer.Exit(1)

    output(
        result,
        output_json,
        [
            f"Sent: {result['sent']}",
            f"Failed: {result['failed']}",
            f"Dead-lettered: {result['dead_lettered']}",
            f"Remaining: {result['queue_total']}",
        ],
    )


@queue_app.command()
def clear(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
) -> None:
    """Drop every queued action."""
    if not yes:
        typer.confirm("Discard all queued actions?", abort=True)
    client = open_client()
    try:
        count = len(client.queue)
        client.queue.clear()
        typer.echo(f"Cleared {count} queued action(s).")
    finally:
        asyncio.run(client.close())
