"""Runs the vault watcher under a PID lock with graceful shutdown."""

import asyncio
import logging
import signal
from typing import Optional

from .config import Settings
from .engine import FileWatcher, Processor
from .engine.processor import Notifier
from .process import ProcessLock

logger = logging.getLogger(__name__)

LOCK_NAME = "watcher"


class WatchService:
    """Owns the watcher task, the PID lock and the signal handlers."""

    def __init__(self, settings: Settings, notifier: Optional[Notifier] = None):
        self.settings = settings
        self.processor = Processor(settings, notifier=notifier)
        self.watcher: Optional[FileWatcher] = None
        self._shutdown_event = asyncio.Event()
        self._watcher_task: Optional[asyncio.Task] = None

    async def run(self) -> bool:
        """Watch until SIGINT/SIGTERM. False if another watcher holds the lock."""
        lock = ProcessLock(LOCK_NAME, self.settings.pid_dir)
        if not lock.acquire():
            logger.error(
                f"[STARTUP] A watcher is already running for this vault (PID {lock.get_pid()}). "
                "Use 'cardnote stop' to stop it first."
            )
            return False

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._shutdown_event.set)

        try:
            if not self.settings.openai_api_key:
                logger.warning("[STARTUP] No OpenAI API key configured; images will be skipped")

            self.watcher = FileWatcher(self.settings, processor=self.processor)
            self._watcher_task = asyncio.create_task(self.watcher.start(), name="watcher")
            self._watcher_task.add_done_callback(lambda _: self._shutdown_event.set())
            logger.info("[STARTUP] Watching for new images. Press Ctrl+C to stop.")
            await self._shutdown_event.wait()
        finally:
            await self._stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            lock.release()

        return True

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def _stop(self) -> None:
        logger.info("[STARTUP] Shutting down...")
        if self._watcher_task and not self._watcher_task.done():
            self._watcher_task.cancel()
            try:
                await self._watcher_task
            except asyncio.CancelledError:
                pass
        elif self._watcher_task and not self._watcher_task.cancelled():
            error = self._watcher_task.exception()
            if error:
                logger.error(f"[WATCHER] Watcher stopped with an error: {error}")
