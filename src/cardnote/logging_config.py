"""Colored logging configuration for the cardnote CLI."""

import logging
import sys
from pathlib import Path

# ANSI color codes
COLORS = {
    # Log levels
    "DEBUG": "\033[36m",      # Cyan
    "INFO": "\033[32m",       # Green
    "WARNING": "\033[33m",    # Yellow
    "ERROR": "\033[31m",      # Red
    "CRITICAL": "\033[35m",   # Magenta
    # Service prefixes
    "WATCHER": "\033[96m",    # Bright Cyan
    "STARTUP": "\033[94m",    # Bright Blue
    "PROCESSOR": "\033[97m",  # Bright White
    "LLM": "\033[93m",        # Bright Yellow
    "ROTATION": "\033[95m",   # Bright Magenta
    "VAULT": "\033[92m",      # Bright Green
    "NOTICE": "\033[1;97m",   # Bold White
    # Formatting
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
}

SERVICE_PREFIXES = ["WATCHER", "STARTUP", "PROCESSOR", "LLM", "ROTATION", "VAULT", "NOTICE"]

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "watchdog", "PIL")


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for levels and service prefixes."""

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        original_msg = record.msg

        level_color = COLORS.get(record.levelname, "")
        reset = COLORS["RESET"]
        record.levelname = f"{level_color}{record.levelname:<7}{reset}"

        if isinstance(record.msg, str):
            msg = record.msg
            for prefix in SERVICE_PREFIXES:
                bracket_prefix = f"[{prefix}]"
                if bracket_prefix in msg:
                    colored_prefix = f"{COLORS.get(prefix, '')}{COLORS['BOLD']}[{prefix}]{reset}"
                    msg = msg.replace(bracket_prefix, colored_prefix)
            record.msg = msg

        result = super().format(record)

        # Records can be shared between handlers
        record.levelname = original_levelname
        record.msg = original_msg

        return result


def _quiet_noisy_loggers() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_colored_logging(verbose: bool = False) -> None:
    """Configure colored logging for the CLI.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)
    _quiet_noisy_loggers()


def setup_file_logging(log_dir: Path, verbose: bool = False) -> Path:
    """Log to ``daemon.log`` inside ``log_dir`` for background runs."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "daemon.log"

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
        force=True,
    )
    _quiet_noisy_loggers()
    return log_file
