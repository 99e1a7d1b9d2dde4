from __future__ import annotations
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field

from ..domain.errors import PipelineError
from ..domain.models import ItemFailure

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Tally:
    counts: Counter[str] = field(default_factory=Counter)
    failures: list[ItemFailure] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class _Count:
    name: str
    n: int


@dataclass(slots=True, frozen=True)
class _Fail:
    failure: ItemFailure


@dataclass(slots=True, frozen=True)
class _Snapshot:
    reply: asyncio.Future


_CLOSE = object()


class Accumulator:
    """Single owner of run totals and failures.

    Worker tasks never touch the tally; they post messages to the inbox and the
    owner task applies them in arrival order. Sums are commutative, so the final
    tally is the same for any task interleaving.
    """

    def __init__(self) -> None:
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task[Tally] | None = None

    def start(self) -> "Accumulator":
        self._task = asyncio.create_task(self._run())
        return self

    async def _run(self) -> Tally:
        tally = Tally()
        while True:
            msg = await self._inbox.get()
            if msg is _CLOSE:
                return tally
            if isinstance(msg, _Count):
                tally.counts[msg.name] += msg.n
            elif isinstance(msg, _Fail):
                tally.failures.append(msg.failure)
                log.warning("recorded failure %s", msg.failure.error)
            elif isinstance(msg, _Snapshot):
                msg.reply.set_result(Tally(Counter(tally.counts), list(tally.failures)))

    def count(self, name: str, n: int = 1) -> None:
        self._inbox.put_nowait(_Count(name, n))

    def fail(self, error: PipelineError) -> None:
        self._inbox.put_nowait(_Fail(ItemFailure(key=error.key, error=error)))

    async def snapshot(self) -> Tally:
        reply: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(_Snapshot(reply))
        return await reply

    async def close(self) -> Tally:
        if self._task is None:
            raise RuntimeError("accumulator was never started")
        self._inbox.put_nowait(_CLOSE)
        return await self._task
