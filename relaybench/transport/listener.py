"""Push listener running in its own asyncio task.

The listener owns the relay subscription and nothing else. Every accepted
update is forwarded into an ``asyncio.Queue``, which is ordered and
lossless; the coordinator is the only consumer. Dedup, metrics and replica
state are never touched from the listener task.

Shutdown is cooperative first: ``close`` signals the listener, waits up to
a timeout for it to leave its subscription, then cancels the task.

Example::

    listener = PushListener(bridge)
    await listener.start()
    try:
        update = await listener.queue.get()
    finally:
        await listener.close(timeout=1.0)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from relaybench.core.update import DecodedUpdate
from relaybench.errors import TransportError
from relaybench.transport.bridge import TransportBridge

logger = logging.getLogger(__name__)


class PushListener:
    """Forwards a bridge's push stream into a queue from a separate task.

    Args:
        bridge: Bridge whose ``subscribe()`` stream is consumed.
        retry_delay: Seconds before re-subscribing after a transport error.
        queue_size: Queue bound; 0 means unbounded.
    """

    def __init__(self, bridge: TransportBridge, retry_delay: float = 1.0, queue_size: int = 0):
        self._bridge = bridge
        self._retry_delay = retry_delay
        self.queue: asyncio.Queue[DecodedUpdate] = asyncio.Queue(maxsize=queue_size)
        self._stop = asyncio.Event()
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.forwarded = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Launch the listener task and wait until it has subscribed."""
        if self._task is not None:
            raise RuntimeError("listener already started")
        self._task = asyncio.create_task(self._run(), name="relaybench-push-listener")
        ready = asyncio.create_task(self._ready.wait())
        done, _ = await asyncio.wait({ready, self._task}, return_when=asyncio.FIRST_COMPLETED)
        if self._task in done:
            ready.cancel()
            self._task.result()
        logger.debug("push listener ready")

    async def _run(self) -> None:
        while not self._stop.is_set():
            stream = self._bridge.subscribe()
            self._ready.set()
            try:
                async for update in self._until_stopped(stream):
                    await self.queue.put(update)
                    self.forwarded += 1
            except TransportError as e:
                if self._stop.is_set():
                    break
                logger.warning("push subscription failed (%s), re-subscribing in %.1fs",
                               e, self._retry_delay)
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), self._retry_delay)
            finally:
                await stream.aclose()
        logger.debug("push listener exiting after %d updates", self.forwarded)

    async def _until_stopped(self, stream):
        """Iterate ``stream`` but return as soon as the stop signal is set."""
        stop_wait = asyncio.ensure_future(self._stop.wait())
        try:
            while True:
                next_item = asyncio.ensure_future(stream.__anext__())
                done, _ = await asyncio.wait(
                    {next_item, stop_wait}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_item not in done:
                    next_item.cancel()
                    with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                        await next_item
                    return
                try:
                    item = next_item.result()
                except StopAsyncIteration:
                    return
                yield item
        finally:
            stop_wait.cancel()

    async def close(self, timeout: float = 1.0) -> None:
        """Signal the listener to stop and wait up to ``timeout`` before cancelling it."""
        if self._task is None:
            return
        self._stop.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except asyncio.TimeoutError:
            logger.warning("push listener did not exit within %.1fs, cancelling", timeout)
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        except TransportError as e:
            logger.warning("push listener ended with error: %s", e)
