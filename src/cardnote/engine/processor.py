"""Main processing pipeline."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Literal, Optional

from ..config import Settings, VisionConfig
from ..contact import ContactWriter
from ..errors import JsonParseFailure, MissingCredential, NoJsonFound
from ..llm import VisionClient
from ..utils import is_image_file
from ..vault import ImageAsset, Vault
from .codec import encode
from .rotation import select_best_rotation

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def log_notice(message: str) -> None:
    logger.info(f"[NOTICE] {message}")


@dataclass
class ProcessResult:
    """Outcome of one pipeline run."""

    status: Literal["created", "skipped", "failed"]
    source: Path
    note_path: Optional[Path] = None
    image_path: Optional[Path] = None
    angle: Optional[int] = None
    message: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == "created"


class Processor:
    """Orchestrates the pipeline: rotate -> extract -> note."""

    def __init__(
        self,
        settings: Settings,
        notifier: Optional[Notifier] = None,
        client_factory: Callable[[VisionConfig], VisionClient] = VisionClient,
    ):
        self.settings = settings
        self.vault = Vault(settings.vault_root, delete_mode=settings.delete_mode)
        self.writer = ContactWriter(self.vault)
        self.notify = notifier or log_notice
        self._client_factory = client_factory
        self._produced: set[Path] = set()

    def consume_own_output(self, path: Path) -> bool:
        """True (once) if ``path`` is an image this processor wrote itself."""
        try:
            resolved = self.vault.resolve(path)
        except ValueError:
            return False
        if resolved in self._produced:
            self._produced.discard(resolved)
            return True
        return False

    async def process_new_image(
        self,
        path: Path,
        config: Optional[VisionConfig] = None,
    ) -> ProcessResult:
        """Turn a newly added business-card image into a contact note.

        ``config`` defaults to the inference settings at call time.
        Failures are reported through the notifier and returned as a
        failed result rather than raised.
        """
        config = config or self.settings.vision_config()
        path = Path(path)

        if not is_image_file(path):
            logger.debug(f"[PROCESSOR] Not an image: {path.name}")
            return ProcessResult("skipped", path, message="not an image")

        if not config.api_key:
            error = MissingCredential("OpenAI API key is not configured")
            logger.warning(f"[PROCESSOR] Skipping {path.name}: no API key configured")
            self.notify("Please set your OpenAI API key (cardnote config --api-key).")
            return ProcessResult("skipped", path, message=str(error), error=error)

        self.notify(f"Processing {path.name}...")
        asset: Optional[ImageAsset] = None

        try:
            asset = ImageAsset.from_path(self.vault, path)
            logger.info(f"[PROCESSOR] Starting: {asset.path} (size: {asset.size} bytes)")
            data = self.vault.read_binary(asset.path)
            client = self._client_factory(config)

            angle = 0
            if self.settings.detect_rotation:
                logger.debug(f"[PROCESSOR] Scoring orientations for: {asset.name}")
                best = await select_best_rotation(data, asset.mime_type, client)
                angle, data = best.angle, best.data

            self.notify(f"Sending {asset.name} to OpenAI...")
            record = await client.extract_contact(encode(data), asset.mime_type)

            note = self.writer.materialize(record, asset)
            image_file = self.vault.resolve(note.image_path)
            if not note.in_place:
                self._produced.add(image_file)
            try:
                self.writer.write(note, asset, data)
            except Exception:
                self._produced.discard(image_file)
                raise

            logger.info(f"[PROCESSOR] Completed: {asset.name} -> {note.note_path}")
            self.notify(f"Contact saved: {note.name}")
            return ProcessResult(
                "created",
                path,
                note_path=note.note_path,
                image_path=note.image_path,
                angle=angle,
                message=note.name,
            )

        except (NoJsonFound, JsonParseFailure) as e:
            logger.error(f"[PROCESSOR] Could not parse contact JSON for {path.name}: {e}")
            if asset and self.settings.save_debug_notes:
                self._save_debug_note(asset, e)
            return self._handle_error(path, e)
        except Exception as e:
            logger.error(f"[PROCESSOR] Error processing {path.name}: {type(e).__name__}: {e}")
            return self._handle_error(path, e)

    def _save_debug_note(self, asset: ImageAsset, error: NoJsonFound | JsonParseFailure) -> None:
        candidate = getattr(error, "candidate", "")
        try:
            debug_path = self.writer.write_debug_note(asset, error.original, candidate, str(error))
        except OSError as e:
            logger.error(f"[PROCESSOR] Failed to write debug note: {e}")
            self.notify("Failed to parse JSON and couldn't save the debug note. See the log.")
            return
        logger.info(f"[PROCESSOR] Saved raw response to {self.vault.relative(debug_path)}")
        self.notify("Failed to parse JSON. Saved raw response to a debug note.")

    def _handle_error(self, path: Path, error: Exception) -> ProcessResult:
        self._log_error(path, error)
        self.notify(f"Error processing {path.name}: {error}")
        return ProcessResult("failed", path, message=str(error), error=error)

    def _log_error(self, path: Path, error: Exception):
        """Append error to log file."""
        try:
            self.settings.state_path.mkdir(parents=True, exist_ok=True)
            with open(self.settings.error_log_path, "a", encoding="utf-8") as f:
                timestamp = datetime.now().isoformat()
                f.write(f"[{timestamp}] {path.name}: {type(error).__name__}: {error}\n")
        except OSError as e:
            logger.error(f"[PROCESSOR] Failed to write error log: {e}")
