"""Graceful Ctrl+C handling for the download loop."""
import asyncio
import logging
import signal
from typing import Optional

logger = logging.getLogger(__name__)


class InterruptHandler:
    """
    Turns SIGINT into a cooperative stop request for the download worker.

    The first interrupt sets ``stop_requested``; the worker checks it before
    starting each component, so the current one is finished and nothing new
    is started. A second interrupt cancels the worker task outright. In both
    cases the caller goes on to save the tree built so far.
    """

    def __init__(self, stop_requested: asyncio.Event, worker: Optional[asyncio.Task] = None):
        self.stop_requested = stop_requested
        self.worker = worker
        self.interrupts = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_handler = None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        try:
            loop.add_signal_handler(signal.SIGINT, self.trigger)
        except NotImplementedError:
            # Event loops without signal support (Windows) get a plain handler.
            self._previous_handler = signal.signal(
                signal.SIGINT, lambda signum, frame: loop.call_soon_threadsafe(self.trigger)
            )

    def uninstall(self) -> None:
        if self._loop is None:
            return
        if self._previous_handler is not None:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._previous_handler = None
        else:
            self._loop.remove_signal_handler(signal.SIGINT)
        self._loop = None

    def trigger(self) -> None:
        self.interrupts += 1
        if self.interrupts == 1:
            logger.warning("Interrupt received: finishing the current component, then saving. "
                           "Press Ctrl+C again to stop immediately.")
            self.stop_requested.set()
        elif self.worker is not None and not self.worker.done():
            logger.warning("Second interrupt received: abandoning the current component.")
            self.worker.cancel()


async def wait_for_worker(worker: asyncio.Task) -> bool:
    """
    Block until the worker finishes, is stopped, or is cancelled by an interrupt.

    Returns:
        True if the worker ran to completion, False if it was cancelled.
    """
    await asyncio.wait({worker})
    if worker.cancelled():
        return False
    # Re-raise anything unexpected from the worker.
    worker.result()
    return True
