"""File system watcher that feeds new vault images into the pipeline."""

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import Settings
from ..utils import is_image_file
from .processor import Processor

logger = logging.getLogger(__name__)


class VaultImageHandler(FileSystemEventHandler):
    """Handles file creation events inside the vault."""

    def __init__(
        self,
        processor: Processor,
        loop: asyncio.AbstractEventLoop,
        vault_root: Path,
        delay: float = 1.0,
    ):
        self.processor = processor
        self.loop = loop
        self.vault_root = vault_root.resolve()
        self.delay = delay
        self._pending: set[str] = set()

    def should_process(self, path: Path) -> bool:
        try:
            rel = path.resolve().relative_to(self.vault_root)
        except ValueError:
            logger.debug(f"[WATCHER] Outside vault: {path}")
            return False

        # Hidden files and folders: .trash, .obsidian, .cardnote, temp files
        if any(part.startswith(".") for part in rel.parts):
            logger.debug(f"[WATCHER] Skipping hidden path: {rel}")
            return False

        if not is_image_file(path):
            return False

        if self.processor.consume_own_output(path):
            logger.debug(f"[WATCHER] Skipping image written by cardnote: {rel}")
            return False

        if str(path) in self._pending:
            logger.debug(f"[WATCHER] Skipping already pending file: {path.name}")
            return False

        return True

    def on_created(self, event: FileCreatedEvent):
        if event.is_directory:
            return

        path = Path(event.src_path)
        logger.debug(f"[WATCHER] File created event: {path.name}")

        if not self.should_process(path):
            return

        self._pending.add(str(path))
        logger.info(f"[WATCHER] Queued for processing: {path.name} (pending: {len(self._pending)})")

        # Let the file finish writing before reading it
        self.loop.call_soon_threadsafe(
            self.loop.call_later,
            self.delay,
            lambda p=path: asyncio.ensure_future(self._process_and_cleanup(p)),
        )

    async def _process_and_cleanup(self, path: Path):
        """Process file and remove from pending set."""
        try:
            if path.exists():
                await self.processor.process_new_image(path)
            else:
                logger.warning(f"[WATCHER] File no longer exists: {path.name}")
        except Exception as e:
            logger.error(f"[WATCHER] Processing failed for {path.name}: {e}")
        finally:
            self._pending.discard(str(path))
            logger.debug(f"[WATCHER] Finished processing: {path.name} (pending: {len(self._pending)})")


class FileWatcher:
    """Watches the vault for new images."""

    def __init__(self, settings: Settings, processor: Processor | None = None):
        self.settings = settings
        self.observer = Observer()
        self.processor = processor or Processor(settings)

    async def start(self):
        """Start watching until cancelled."""
        loop = asyncio.get_running_loop()
        handler = VaultImageHandler(
            self.processor,
            loop,
            self.settings.vault_root,
            delay=self.settings.watch_delay,
        )

        vault = self.settings.vault_root
        self.observer.schedule(handler, str(vault), recursive=True)
        self.observer.start()
        logger.info(f"[WATCHER] Watching vault: {vault}")

        try:
            while True:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            self.stop()
            raise

    def stop(self):
        """Stop watching."""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=5.0)
            if self.observer.is_alive():
                logger.warning("[WATCHER] Observer thread did not stop cleanly")
        logger.info("[WATCHER] File watcher stopped")
