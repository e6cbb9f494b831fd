import asyncio
import atexit
import signal
from typing import Optional

from sym_agents.driver import ReconciliationDriver
from sym_agents.tui.log import ConsoleLog

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TerminationHandler:
    """Runs the blocking teardown once when the process is asked to stop.

    The first SIGINT/SIGTERM tears down every link synchronously and then
    releases ``stopped``; later signals hit the guard and do nothing.
    ``atexit`` calls the driver's ``remove_sync`` again as a last resort,
    which is a no-op once the store is empty.
    """

    def __init__(
        self,
        driver: ReconciliationDriver,
        log: Optional[ConsoleLog] = None,
    ) -> None:
        self.driver = driver
        self.log = log or driver.log
        self.stopped = asyncio.Event()
        self.triggered = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous: dict[int, object] = {}

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        for sig in TERMINATION_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self)
            except (NotImplementedError, RuntimeError):
                self._previous[sig] = signal.signal(sig, self._from_signal_module)
        atexit.register(self.driver.remove_sync)

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in TERMINATION_SIGNALS:
            if sig in self._previous:
                signal.signal(sig, self._previous.pop(sig))
            else:
                self._loop.remove_signal_handler(sig)
        atexit.unregister(self.driver.remove_sync)
        self._loop = None

    def _from_signal_module(self, signum: int, frame: object) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self)

    def __call__(self) -> None:
        if self.triggered:
            return
        self.triggered = True

        self.log.info("Stopping and cleaning up...")
        try:
            self.driver.remove_sync()
            self.log.success("Done.")
        except Exception as exc:
            self.log.error("Error during cleanup:", exc)
        finally:
            self.stopped.set()
