"""CLI command modules for the OptiTour field client."""

from optitour.cli_commands.notifications import notifications_app
from optitour.cli_commands.photos import photos_app
from optitour.cli_commands.queue import queue_app
from optitour.cli_commands.status import status_command

__all__ = ["notifications_app", "photos_app", "queue_app", "status_command"]
