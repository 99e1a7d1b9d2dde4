from __future__ import annotations
import logging

from rich.console import Console
from rich.logging import RichHandler

PLAIN_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def setup_rich_logging(level: int = logging.INFO, console: Console | None = None) -> None:
    """Interactive runs: rich handler on the root logger."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # SDK wire chatter is not useful at INFO
    for noisy in ("botocore", "boto3", "urllib3", "snowflake.connector"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_plain_logging(level: int = logging.INFO) -> None:
    """Lambda: plain records, CloudWatch adds its own timestamps."""
    root = logging.getLogger()
    if root.handlers:
        for h in root.handlers:
            h.setFormatter(logging.Formatter(PLAIN_FORMAT))
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=PLAIN_FORMAT)
    for noisy in ("botocore", "boto3", "urllib3", "snowflake.connector"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
