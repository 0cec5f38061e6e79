"""Demo application for sending push messages from the command line."""

from __future__ import annotations

from gcm_queue.app.cli import cli

__all__ = ["cli"]
