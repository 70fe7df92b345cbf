import signal
from typing import Annotated

import anyio
import rich
import typer
from anyio import create_task_group, open_signal_receiver

from sqsbuffer.__about__ import __version__
from sqsbuffer.cli.utils import LogLevels, get_log_level, resolve_region
from sqsbuffer.clients.base import MAX_BATCH_SIZE
from sqsbuffer.datastructures import Message
from sqsbuffer.logger import logger
from sqsbuffer.receiver import Receiver
from sqsbuffer.sender import Sender
from sqsbuffer.types import Acknowledge, MessageReceiver

app = typer.Typer(
    name="sqsbuffer",
    help="A CLI to consume and send Amazon SQS messages in buffered batches.",
    pretty_exceptions_short=True,
    invoke_without_command=True,
    rich_markup_mode="markdown",
)

QueueUrlArgument = Annotated[str, typer.Argument(help="The URL of the SQS queue.")]
RegionOption = Annotated[
    str | None,
    typer.Option(
        "--region",
        envvar=["AWS_REGION", "AWS_DEFAULT_REGION"],
        help="The AWS region of the queue.",
    ),
]
EndpointUrlOption = Annotated[
    str | None,
    typer.Option(
        "--endpoint-url",
        envvar="SQSBUFFER_ENDPOINT_URL",
        help="A custom SQS endpoint, such as a local emulator.",
    ),
]
LogLevelOption = Annotated[
    LogLevels,
    typer.Option("--log-level", case_sensitive=False, help="The log level of SQSBuffer."),
]


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Show the SQSBuffer version and exit.")
    ] = False,
) -> None:
    """
    Display helpful tips when the main command is run without any subcommands.
    """
    if version:
        import platform

        typer.echo(
            f"Running SQSBuffer {__version__} with {platform.python_implementation()} "
            f"{platform.python_version()} on {platform.system()}",
        )

        raise typer.Exit

    if ctx.invoked_subcommand is None:
        rich.print("\n[bold]Welcome to the SQSBuffer CLI! ✨[/bold]")
        rich.print("\n[dim]A CLI to consume and send Amazon SQS messages.[/dim]")
        rich.print("\n[bold]Usage[/bold]: [cyan]sqsbuffer [COMMAND] [ARGS]...[/cyan]")
        rich.print("\n[bold]Common Commands:[/bold]")
        rich.print("  [green]consume[/green]  Consume the messages of a queue.")
        rich.print("  [green]send[/green]     Send messages to a queue.")
        rich.print("  [green]help[/green]     Get detailed help for a command.")
        rich.print(
            "\nRun '[cyan]sqsbuffer --help[/cyan]' for "
            "a list of all available commands and options."
        )


@app.command()
def consume(
    queue_url: QueueUrlArgument,
    batch_size: Annotated[
        int, typer.Option(min=1, max=MAX_BATCH_SIZE, help="Messages per receive call.")
    ] = MAX_BATCH_SIZE,
    buffer_size: Annotated[
        int | None, typer.Option(help="Deliver the messages in batches of this size.")
    ] = None,
    buffer_timeout: Annotated[
        int, typer.Option(help="Milliseconds to wait before delivering an incomplete batch.")
    ] = 10000,
    wait_time: Annotated[int, typer.Option(help="Long poll wait time, in seconds.")] = 20,
    visibility_timeout: Annotated[
        int | None, typer.Option(help="Visibility timeout of received messages, in seconds.")
    ] = None,
    delete: Annotated[
        bool, typer.Option("--delete/--no-delete", help="Delete the messages once logged.")
    ] = True,
    region: RegionOption = None,
    endpoint_url: EndpointUrlOption = None,
    log_level: LogLevelOption = LogLevels.INFO,
) -> None:
    """
    Log every message of the queue until interrupted.
    """
    logger.setLevel(get_log_level(log_level))
    receiver = Receiver(
        queue_url,
        build_message_receiver(delete=delete),
        batch_size=batch_size,
        wait_time_seconds=wait_time,
        visibility_timeout=visibility_timeout,
        attribute_names=["All"],
        message_attribute_names=["All"],
        buffer_size=buffer_size,
        buffer_timeout=buffer_timeout,
        region_name=resolve_region(region),
        endpoint_url=endpoint_url,
    )
    anyio.run(run_until_signaled, receiver)


@app.command()
def send(
    queue_url: QueueUrlArgument,
    messages: Annotated[list[str], typer.Argument(help="The message bodies to send.")],
    region: RegionOption = None,
    endpoint_url: EndpointUrlOption = None,
    log_level: LogLevelOption = LogLevels.INFO,
) -> None:
    """
    Send text messages to the queue.
    """
    logger.setLevel(get_log_level(log_level))
    sender = Sender(queue_url, region_name=resolve_region(region), endpoint_url=endpoint_url)

    successful, failed = 0, 0
    for start in range(0, len(messages), MAX_BATCH_SIZE):
        batch = messages[start : start + MAX_BATCH_SIZE]
        response = anyio.run(sender.send, batch)
        successful += len(response.get("Successful", []))
        failed += len(response.get("Failed", []))

    rich.print(f"[green]{successful}[/green] message(s) sent, [red]{failed}[/red] failed.")
    if failed:
        raise typer.Exit(code=1)


@app.command(name="help")
def show_help(ctx: typer.Context) -> None:
    """
    Show this message and exit.
    """
    if ctx.parent:
        rich.print(ctx.parent.get_help())


def build_message_receiver(delete: bool) -> MessageReceiver:
    async def log_messages(messages: list[Message], ack: Acknowledge) -> None:
        for message in messages:
            logger.info(f"Message {message.id} received: {message.body}")

        if delete:
            await ack(messages)

    return log_messages


async def run_until_signaled(receiver: Receiver) -> None:
    async with create_task_group() as tg:
        tg.start_soon(stop_on_signal, receiver)
        await receiver.start()
        tg.cancel_scope.cancel()


async def stop_on_signal(receiver: Receiver) -> None:
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            logger.info(f"Received {signal.Signals(signum).name}, waiting the in-flight work.")
            receiver.stop()
            return


def execute_app() -> None:
    app()


if __name__ == "__main__":
    execute_app()
