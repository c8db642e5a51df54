"""PID-file lock so only one watcher runs per vault."""

import logging
import os
import signal
from pathlib import Path

logger = logging.getLogger(__name__)


class ProcessLock:
    """A named PID file under ``pid_dir``.

    A lock whose PID no longer belongs to a live process is stale and is
    taken over on ``acquire``.
    """

    def __init__(self, name: str, pid_dir: Path):
        self.name = name
        self.pid_file = pid_dir / f"{name}.pid"
        self._acquired = False

    def acquire(self) -> bool:
        """Write our PID. False if a live process already holds the lock."""
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)

        holder = self.get_pid()
        if holder is not None:
            if _is_alive(holder):
                logger.warning(f"[STARTUP] Lock '{self.name}' already held by PID {holder}")
                return False
            logger.info(f"[STARTUP] Removing stale lock left by PID {holder}")
            self.pid_file.unlink(missing_ok=True)

        try:
            self.pid_file.write_text(str(os.getpid()))
        except OSError as e:
            logger.error(f"[STARTUP] Failed to write PID file: {e}")
            return False

        self._acquired = True
        return True

    def release(self) -> None:
        if self._acquired:
            self.pid_file.unlink(missing_ok=True)
            self._acquired = False

    def get_pid(self) -> int | None:
        try:
            return int(self.pid_file.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None

    def is_locked(self) -> bool:
        pid = self.get_pid()
        return pid is not None and _is_alive(pid)

    def send_shutdown(self) -> bool:
        """SIGTERM the holder. False if nobody holds the lock."""
        pid = self.get_pid()
        if pid is None or not _is_alive(pid):
            self.pid_file.unlink(missing_ok=True)
            return False
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            logger.error(f"Failed to signal PID {pid}: {e}")
            return False
        return True


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True
