"""OptiTour Booth field client: offline queue, photo uploads and local state."""

__version__ = "0.1.0"
