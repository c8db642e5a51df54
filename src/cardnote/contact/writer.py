"""Contact note rendering and writing."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..utils import sanitize_file_name
from ..vault import ImageAsset, Vault
from .schema import ContactRecord

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"


def _scalar(value: Optional[str]) -> str:
    return value.strip() if value and value.strip() else PLACEHOLDER


def _bullets(label: str, items: list[str]) -> str:
    if not items:
        return f"{label}: {PLACEHOLDER}"
    return "\n".join([f"{label}:"] + [f"- {item}" for item in items])


def render_note(record: ContactRecord, image_name: str) -> str:
    """Render a contact note. The field order is fixed."""
    lines = [
        f"Company: {_scalar(record.company)}",
        f"Position: {_scalar(record.position)}",
        _bullets("Phones", record.phones),
        _bullets("Emails", record.emails),
        f"Website: {_scalar(record.website)}",
        f"Address: {_scalar(record.address)}",
        "",
        "---",
        "",
        "Full card text:",
        (record.raw_text or "").strip(),
        f"![[{image_name}]]",
        "",
    ]
    return "\n".join(lines)


@dataclass(frozen=True)
class MaterializedNote:
    """Where a contact note and its image will be written, and the note body."""

    name: str
    note_path: Path
    image_path: Path
    body: str
    # The image keeps its current path and is rewritten in place
    in_place: bool = False

    @property
    def image_name(self) -> str:
        return self.image_path.name


class ContactWriter:
    """Plans and writes contact notes next to their source image."""

    def __init__(self, vault: Vault):
        self.vault = vault

    def materialize(self, record: ContactRecord, asset: ImageAsset) -> MaterializedNote:
        """Pick free note and image paths and render the note body.

        The image is stored as ``<name><ext>`` so the embed inside the note
        matches the stored file. Both names use the `` (n)`` probe, except
        when the image already has the target name: then it keeps its path.
        """
        name = record.display_name(fallback=asset.stem)
        safe_name = sanitize_file_name(name)

        note_path = self.vault.unique_path(asset.folder / f"{safe_name}.md")
        target = asset.folder / f"{safe_name}{asset.extension.lower()}"
        in_place = target.as_posix().lower() == asset.path.as_posix().lower()
        image_path = asset.path if in_place else self.vault.unique_path(target)

        return MaterializedNote(
            name=name,
            note_path=note_path,
            image_path=image_path,
            body=render_note(record, image_path.name),
            in_place=in_place,
        )

    def write(self, note: MaterializedNote, asset: ImageAsset, image_data: bytes) -> Path:
        """Store the image, create the note, then remove the original image.

        The original is only removed once the note exists. If the note
        cannot be created, the new image is deleted again. If removing the
        original fails, the note and the new image are kept and a warning
        is logged. An image that already has its final name is rewritten
        in place after the note is created.

        Returns the absolute path of the created note.
        """
        if note.in_place:
            return self._write_in_place(note, asset, image_data)

        image_file = self.vault.create_binary(note.image_path, image_data)
        try:
            note_file = self.vault.create(note.note_path, note.body)
        except Exception:
            image_file.unlink(missing_ok=True)
            raise
        logger.info(f"[VAULT] Created note: {note.note_path}")

        try:
            trashed = self.vault.remove(asset.path)
        except OSError as e:
            logger.warning(f"[VAULT] Could not remove original image {asset.name}: {e}")
        else:
            if trashed:
                logger.debug(f"[VAULT] Moved {asset.name} to {self.vault.relative(trashed)}")
            else:
                logger.debug(f"[VAULT] Deleted {asset.name}")

        return note_file

    def _write_in_place(self, note: MaterializedNote, asset: ImageAsset, image_data: bytes) -> Path:
        note_file = self.vault.create(note.note_path, note.body)
        logger.info(f"[VAULT] Created note: {note.note_path}")

        if self.vault.read_binary(asset.path) != image_data:
            try:
                self.vault.replace_binary(asset.path, image_data)
            except OSError as e:
                logger.warning(f"[VAULT] Could not update image {asset.name}: {e}")
        return note_file

    def write_debug_note(self, asset: ImageAsset, raw_output: str, candidate: str, error: str) -> Path:
        """Save the raw model output next to the image for diagnosis."""
        path = self.vault.unique_path(asset.folder / f"__debug_{asset.name}.txt")
        content = (
            "=== RAW MODEL RESPONSE ===\n\n"
            f"{raw_output}\n\n"
            "=== EXTRACT ATTEMPT ===\n\n"
            f"Candidate:\n{candidate or 'N/A'}\n\n"
            f"Error:\n{error}\n"
        )
        return self.vault.create(path, content)
