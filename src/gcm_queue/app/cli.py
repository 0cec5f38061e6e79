"""Command-line demo for composing and sending GCM push messages."""

from __future__ import annotations

import json
import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from gcm_queue.app.form import build_field_set
from gcm_queue.config import ConfigurationError, load_config
from gcm_queue.exceptions import GcmError
from gcm_queue.message import Message
from gcm_queue.sender import DEFAULT_GCM_URL, DEFAULT_TIMEOUT_SECONDS, send
from gcm_queue.utils.logging import configure_logging

logger = logging.getLogger(__name__)

try:
    __version__ = version("gcm-queue")
except PackageNotFoundError:
    __version__ = "unknown"


class GcmCommandError(click.ClickException):
    """Click error reporting a GCM error code and message."""

    def __init__(self, error: GcmError) -> None:
        super().__init__(str(error))


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()

    valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}
    if normalized_value not in valid_levels:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(sorted(valid_levels))}'
        )

    return normalized_value


@click.group()
@click.version_option(version=__version__, prog_name='gcm-queue')
def cli() -> None:
    """gcm-queue - compose, validate and send GCM push messages."""


@cli.command(name='send')
@click.option(
    '--config', '-c',
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help='YAML configuration file with sender settings.'
)
@click.option('--url', type=str, default=None, help=f'GCM endpoint URL (default: {DEFAULT_GCM_URL}).')
@click.option('--api-key', type=str, envvar='GCM_API_KEY', default=None, help='Server API key (or GCM_API_KEY).')
@click.option('--timeout', type=float, default=None, help='Request timeout in seconds.')
@click.option('--to', type=str, default=None, help='Single recipient: registration token, notification key or topic.')
@click.option(
    '--registration-ids',
    type=str,
    multiple=True,
    help='Recipient registration ids, newline-delimited; may be repeated.'
)
@click.option('--collapse-key', type=str, default=None, help='Collapse key.')
@click.option('--priority', type=str, default=None, help='high or normal.')
@click.option('--content-available', type=str, default=None, metavar='BOOL', help='1/0 or true/false.')
@click.option('--delay-while-idle', type=str, default=None, metavar='BOOL', help='1/0 or true/false.')
@click.option('--time-to-live', type=str, default=None, help='Seconds between 0 and 2419200.')
@click.option('--restricted-package-name', type=str, default=None, help='Restricted package name.')
@click.option('--dry-run', type=str, default=None, metavar='BOOL', help='1/0 or true/false.')
@click.option('--data', type=str, default=None, help='Data payload as a JSON object.')
@click.option('--notification', type=str, default=None, help='Notification payload as a JSON object.')
@click.option(
    '--log-level', '-l',
    type=str,
    default=None,
    callback=validate_log_level,
    help='Logging verbosity level (DEBUG, INFO, WARNING, ERROR).'
)
@click.option('--print-only', is_flag=True, help='Print the wire payload instead of sending it.')
def send_command(
    config: Path | None,
    url: str | None,
    api_key: str | None,
    timeout: float | None,
    to: str | None,
    registration_ids: tuple[str, ...],
    collapse_key: str | None,
    priority: str | None,
    content_available: str | None,
    delay_while_idle: str | None,
    time_to_live: str | None,
    restricted_package_name: str | None,
    dry_run: str | None,
    data: str | None,
    notification: str | None,
    log_level: str | None,
    print_only: bool,
) -> None:
    """Build a message from the given fields and send it.

    The endpoint reply is printed as JSON.

    Examples:

        gcm-queue send --api-key "$KEY" --to TOKEN --data '{"score": "3x1"}'

        gcm-queue send --print-only --registration-ids "$(cat ids.txt)" --dry-run 1
    """
    if config is not None:
        try:
            main_config = load_config(config)
        except ConfigurationError as exc:
            raise click.ClickException(str(exc)) from exc
        url = url or main_config.sender.url
        api_key = api_key or main_config.sender.api_key
        timeout = timeout if timeout is not None else main_config.sender.timeout
        log_level = log_level or main_config.application.log_level

    configure_logging(log_level=log_level or 'WARNING')

    form: dict[str, str | None] = {
        'to': to,
        'registration_ids': '\n'.join(registration_ids) if registration_ids else None,
        'collapse_key': collapse_key,
        'priority': priority,
        'content_available': content_available,
        'delay_while_idle': delay_while_idle,
        'time_to_live': time_to_live,
        'restricted_package_name': restricted_package_name,
        'dry_run': dry_run,
        'data': data,
        'notification': notification,
    }

    try:
        message = Message.from_dict(build_field_set(form))
    except GcmError as exc:
        raise GcmCommandError(exc) from exc

    if print_only:
        click.echo(message.to_json())
        return

    if not api_key:
        raise click.UsageError('A server API key is required (--api-key, GCM_API_KEY or --config).')

    try:
        response = send(
            message,
            api_key,
            url or DEFAULT_GCM_URL,
            timeout=timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS,
        )
    except GcmError as exc:
        logger.debug("Send failed", exc_info=True)
        raise GcmCommandError(exc) from exc

    click.echo(json.dumps(response.to_dict()))


if __name__ == '__main__':
    cli()
