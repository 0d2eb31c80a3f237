"""Worker-pool dispatch: N workers drawing hits from a shared constant pacer."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from pacebench._internal.logging import get_logger
from pacebench.engine.dispatcher import Dispatcher
from pacebench.engine.pacer import ConstantPacer

if TYPE_CHECKING:
    from pacebench.engine.targeter import WorkloadTargeter
    from pacebench.pace.spec import PaceSpec
    from pacebench.transport.base import Transport

logger = get_logger("engine.pool")


class WorkerPoolDispatcher(Dispatcher):
    """Fixed-size pool of workers paced by one shared :class:`ConstantPacer`.

    Used with request/response transports (HTTP). Each worker loops: wait
    for a hit, build the next workload message, perform one send, report
    the result. The pacer is shared, so the whole pool issues ``rate`` hits
    per second regardless of its size. The pool size only bounds how many
    requests can be in flight at once.

    A phase of ``R`` rps for ``D`` seconds schedules ``R * D`` hits, the
    first one immediately.

    Attributes:
        workers: Number of concurrent workers.
    """

    name = "pool"

    def __init__(
        self,
        transport: Transport,
        targeter: WorkloadTargeter,
        workers: int = 1,
    ) -> None:
        """Initialize the pool.

        Args:
            transport: Opened transport used for every send.
            targeter: Source of workload messages for the run.
            workers: Number of concurrent workers. Must be >= 1.

        Raises:
            ValueError: If workers < 1.
        """
        if workers < 1:
            msg = f"workers must be >= 1, got {workers}"
            raise ValueError(msg)
        super().__init__(transport, targeter)
        self.workers = workers

    async def _produce(self, phase: PaceSpec, began: float, deadline: float) -> None:
        pacer = ConstantPacer(phase.rate, began, deadline)
        tasks = [
            asyncio.create_task(self._work(pacer), name=f"pool-worker-{i}")
            for i in range(self.workers)
        ]
        await asyncio.gather(*tasks)
        logger.debug("Pool issued %d hits for %s", pacer.hits, phase.describe())

    async def _work(self, pacer: ConstantPacer) -> None:
        while True:
            hit = await pacer.next_hit()
            if hit is None:
                return
            await self._send(self._targeter.next_message())
