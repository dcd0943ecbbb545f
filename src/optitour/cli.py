"""OptiTour CLI - Command-line interface for the field client."""

from pathlib import Path

import typer

from optitour import __version__
from optitour.cli_commands import notifications_app, photos_app, queue_app, status_command
from optitour.cli_commands.common import set_overrides

app = typer.Typer(
    name="optitour",
    help="OptiTour Booth field client - offline queue, photo uploads and notifications.",
    no_args_is_help=True,
)

app.add_typer(queue_app, name="queue")
app.add_typer(photos_app, name="photos")
app.add_typer(notifications_app, name="notifications")
app.command(name="status")(status_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"optitour-booth {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    api_url: str = typer.Option(
        None,
        "--api-url",
        help="Backend API base URL (overrides OPTITOUR_API_URL).",
    ),
    data_dir: Path = typer.Option(
        None,
        "--data-dir",
        help="Directory holding local state and logs (overrides OPTITOUR_DATA_DIR).",
        file_okay=False,
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """OptiTour Booth field client.

    Local state lives in the data directory, so queued actions and
    notifications survive between invocations.
    """
    set_overrides(api_url=api_url, data_dir=data_dir)


if __name__ == "__main__":
    app()
