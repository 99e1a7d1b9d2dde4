import asyncio, logging
import click
import typer
from dotenv import load_dotenv
from rich.console import Console

from ..adapters.snowflake_warehouse import SnowflakeWarehouse
from ..adapters.sql_files import SqlFileSink
from ..adapters.sqs_boto3 import SqsQueue
from ..application.consume import consume_messages
from ..application.dispatch import DispatchConfig, dispatch_contracts
from ..config import Settings
from ..domain.errors import QueueError, WarehouseError
from ..domain.models import ConsumeOutcome, DispatchOutcome
from .logs import setup_rich_logging

app = typer.Typer(help="Generate Snowflake decode views from contract ABIs and ship them through SQS.")
console = Console()


def build_warehouse(settings: Settings) -> SnowflakeWarehouse:
    return SnowflakeWarehouse(
        settings.snowflake.conn_params(),
        contracts_table=settings.contracts_table,
        logs_table=settings.logs_table,
    )


def build_queue(settings: Settings, queue_url: str = "", region: str = "") -> SqsQueue:
    return SqsQueue(
        queue_url or settings.queue_url,
        region=region or settings.region,
        access_key_id=settings.access_key_id,
        secret_access_key=settings.secret_access_key,
    )


def _print_dispatch(outcome: DispatchOutcome) -> None:
    console.print(
        f"[bold]summary[/]: "
        f"contracts={outcome.contracts_seen}  "
        f"statements={outcome.statements_generated}  "
        f"[yellow]skipped[/]={outcome.skipped}  "
        f"[green]sent[/]={outcome.send_successes}/{outcome.send_attempts}  "
        f"[red]failed[/]={len(outcome.failures)}"
    )
    for f in outcome.failures:
        console.print(f"  [red]✗[/] {f.key}: {f.error.message}")


def _print_consume(outcome: ConsumeOutcome) -> None:
    console.print(
        f"[bold]summary[/]: "
        f"messages={outcome.messages_seen}  "
        f"[green]executed[/]={outcome.executed}  "
        f"acknowledged={outcome.acknowledged}  "
        f"empty={outcome.empty}  "
        f"[yellow]ack_failures[/]={outcome.ack_failures}  "
        f"[red]failed[/]={len(outcome.failures)}"
    )
    for f in outcome.failures:
        console.print(f"  [red]✗[/] {f.key}: {f.error.message}")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    load_dotenv()
    setup_rich_logging(logging.DEBUG if verbose else logging.INFO, console)


@app.command("create-views")
def create_views(
    dry_run: bool = typer.Option(False, "--dry-run", help="Generate statements without submitting them"),
    limit: int = typer.Option(0, help="Limit number of contracts returned for processing (0 = all)"),
    count: int = typer.Option(5, help="Minimum number of logs a contract should have"),
    queue_url: str = typer.Option("", help="SQS queue URL (default: $SQS_QUEUE_URL)"),
    region: str = typer.Option("", help="AWS region of the queue (default: $AWS_REGION)"),
    out_dir: str = typer.Option("", help="Also write one .sql file per view into this directory"),
):
    """Generate decode views for candidate contracts and enqueue them for execution."""
    settings = Settings.from_env()

    async def run() -> DispatchOutcome:
        warehouse = build_warehouse(settings)
        try:
            rows = await warehouse.candidate_contracts(min_log_count=count, limit=limit)
        finally:
            warehouse.close()
        queue = None if dry_run else build_queue(settings, queue_url, region)
        sink = SqlFileSink(out_dir) if out_dir else None
        cfg = DispatchConfig(
            namespace=settings.namespace,
            targets=settings.targets,
            dry_run=dry_run,
            max_identifier_length=settings.max_identifier_length,
            max_message_bytes=settings.max_message_bytes,
        )
        return await dispatch_contracts(rows, queue=queue, cfg=cfg, sql_sink=sink)

    try:
        outcome = asyncio.run(run())
    except (WarehouseError, ValueError) as e:
        raise click.ClickException(str(e))
    _print_dispatch(outcome)
    if not outcome.ok:
        raise typer.Exit(code=1)


@app.command()
def consume(
    dry_run: bool = typer.Option(False, "--dry-run", help="Decode messages without executing them"),
    max_messages: int = typer.Option(10, help="Messages per receive call (SQS max 10)"),
    wait_seconds: int = typer.Option(20, help="Long-poll wait time"),
    queue_url: str = typer.Option("", help="SQS queue URL (default: $SQS_QUEUE_URL)"),
    region: str = typer.Option("", help="AWS region of the queue (default: $AWS_REGION)"),
):
    """Receive one batch from the queue and execute it against the warehouse."""
    settings = Settings.from_env()

    async def run() -> ConsumeOutcome:
        queue = build_queue(settings, queue_url, region)
        warehouse = build_warehouse(settings)
        try:
            messages = await queue.receive(max_messages, wait_seconds)
            return await consume_messages(messages, queue=queue, warehouse=warehouse, dry_run=dry_run)
        finally:
            warehouse.close()

    try:
        outcome = asyncio.run(run())
    except (QueueError, ValueError) as e:
        raise click.ClickException(str(e))
    _print_consume(outcome)
    if not outcome.ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
