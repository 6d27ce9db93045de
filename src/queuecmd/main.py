"""CLI entrypoint for queuecmd."""

from __future__ import annotations

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager

import rich_click as click

from queuecmd import __version__
from queuecmd.actions.dispatcher import ActionDispatcher
from queuecmd.actions.errors import QueueActionError
from queuecmd.actions.models import ActionRequest, QueueType
from queuecmd.actions.task import DEFAULT_PEEK_COUNT
from queuecmd.client.connect import connect
from queuecmd.client.sql import SqlQueue
from queuecmd.config import Settings

logger = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="queuecmd")
@click.option("--queue", "-q", "queue_name", required=True, help="Queue name.")
@click.option(
    "--type",
    "-t",
    "queue_type",
    required=True,
    type=click.Choice([queue_type.value for queue_type in QueueType], case_sensitive=False),
    help="Queue paradigm.",
)
@click.option("--pop", is_flag=True, default=False, help="Pop one message (simple queues).")
@click.option(
    "--peek",
    type=click.IntRange(min=1),
    is_flag=False,
    flag_value=DEFAULT_PEEK_COUNT,
    default=None,
    help=f"Show upcoming tasks (task queues, up to {DEFAULT_PEEK_COUNT}).",
)
@click.option("--size", is_flag=True, default=False, help="Show number of pending tasks.")
@click.option(
    "--exec",
    "exec_command",
    default=None,
    help="Command run for each task; receives '<queue>:<task>' as last argument.",
)
@click.option(
    "--count",
    type=click.IntRange(min=0),
    default=None,
    help="Tasks to process with --exec, or messages to receive with --listen.",
)
@click.option(
    "--listen",
    "-l",
    is_flag=True,
    default=False,
    help="Keep consuming tasks or receiving published messages until interrupted.",
)
@click.option(
    "--activates",
    "-a",
    default=None,
    help="Activation time: seconds from now, epoch seconds, or a date/time expression.",
)
@click.option("--dsn", default=None, help="Queue database URL. Defaults to QUEUECMD_DSN.")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv).")
@click.argument("message", nargs=-1)
@click.pass_context
def queuecmd(  # noqa: PLR0913
    ctx: click.Context,
    queue_name: str,
    queue_type: str,
    pop: bool,
    peek: int | None,
    size: bool,
    exec_command: str | None,
    count: int | None,
    listen: bool,
    activates: str | None,
    dsn: str | None,
    verbose: int,
    message: tuple[str, ...],
) -> None:
    """Push, pop, schedule, consume, publish and listen on queues.

    Trailing MESSAGE words form the message body; a single '-' reads it from stdin.
    """

    _configure_logging(verbose)
    try:
        settings = Settings.from_env(dsn=dsn)
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    request = ActionRequest(
        queue_name=queue_name,
        queue_type=QueueType(queue_type.lower()),
        message=_read_message(message),
        pop=pop,
        peek=peek,
        size=size,
        exec_command=exec_command,
        count=count,
        listen=listen,
        activates=activates,
    )

    try:
        with _sigterm_as_interrupt(), _queue(settings, request) as queue:
            ActionDispatcher.from_settings(settings).dispatch(queue, request)
    except QueueActionError as error:
        exception = click.ClickException(str(error))
        exception.exit_code = error.exit_code
        raise exception from error
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping %s", queue_name)
        ctx.exit(INTERRUPTED_EXIT_CODE)


def _read_message(words: tuple[str, ...]) -> str | None:
    if not words:
        return None
    if words == ("-",):
        return click.get_text_stream("stdin").read().rstrip("\n")
    return " ".join(words)


@contextmanager
def _queue(settings: Settings, request: ActionRequest) -> Iterator[SqlQueue]:
    queue = connect(
        settings.dsn,
        request.queue_name,
        request.queue_type,
        visibility_timeout_seconds=settings.visibility_timeout_seconds,
    )
    try:
        yield queue
    finally:
        queue.close()


@contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    """Turn SIGTERM into ``KeyboardInterrupt`` so loops unwind like on Ctrl-C."""

    if not hasattr(signal, "SIGTERM"):
        yield
        return

    def _handler(signum: int, _: object | None) -> None:
        raise KeyboardInterrupt(signal.Signals(signum).name)

    try:
        original_sigterm = signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, original_sigterm)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


if __name__ == "__main__":  # pragma: no cover
    queuecmd()
