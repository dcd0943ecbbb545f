"""Photo upload CLI commands."""

import asyncio
from pathlib import Path

import typer

from optitour.cli_commands.common import open_client, output
from optitour.photos import PhotoFile, PhotoStatus

photos_app = typer.Typer(
    name="photos",
    help="Photo uploads for tour points.",
    no_args_is_help=True,
)


@photos_app.command()
def upload(
    tour_id: str = typer.Argument(..., help="Tour identifier"),
    point_id: str = typer.Argument(..., help="Point identifier"),
    files: list[Path] = typer.Argument(..., help="Photo files to upload", exists=True, dir_okay=False),
    queue_on_failure: bool = typer.Option(
        True,
        "--queue/--no-queue",
        help="Queue photos that failed to upload for a later replay",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Compress and upload photos for a tour point."""

    async def _run() -> list[dict]:
        async with open_client() as client:
            session = client.photo_session(tour_id, point_id)
            photos = await session.add_photos([PhotoFile.from_path(p) for p in files])
            await session.wait()

            results = [photo.to_dict() for photo in session.photos]
            if queue_on_failure:
                failed = [
                    path
                    for path, photo in zip(files, photos)
                    if photo.status == PhotoStatus.ERROR
                ]
                if failed:
                    client.actions.queue_photo_upload(tour_id, point_id, failed)
            return results

    results = asyncio.run(_run())
    lines = [_format_result(r) for r in results]
    output(results, output_json, lines)

    if any(r["status"] == PhotoStatus.ERROR.value for r in results):
        raise typer.Exit(1)


def _format_result(result: dict) -> str:
    line = f"{result['filename']}: {result['status']}"
    server_path = result["serverPath"] or ""
    # Local previews are data URIs, only show real server paths
    if result["status"] == PhotoStatus.DONE.value and not server_path.startswith("data:"):
        line += f" -> {server_path}" if server_path else ""
    if result["error"]:
        line += f" ({result['error']})"
    return line
