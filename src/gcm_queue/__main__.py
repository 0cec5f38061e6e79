"""Entry point for ``python -m gcm_queue``."""

from gcm_queue.app.cli import cli


def main() -> None:
    """Run the gcm-queue command line."""
    cli()


if __name__ == "__main__":
    main()
