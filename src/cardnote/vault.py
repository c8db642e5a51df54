"""Vault storage: the file operations the pipeline needs, scoped to one folder."""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Union

from .utils import get_unique_path, mime_type_for

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Vault:
    """File storage rooted at a vault directory.

    Paths are vault-relative. Absolute paths are accepted as long as they
    resolve inside the vault.
    """

    def __init__(
        self,
        root: Path,
        trash_dir: str = ".trash",
        delete_mode: Literal["trash", "delete"] = "trash",
    ):
        self.root = Path(root).resolve()
        self.trash_dir = self.root / trash_dir
        self.delete_mode = delete_mode

    def resolve(self, path: PathLike) -> Path:
        """Absolute path for ``path``.

        Raises:
            ValueError: If the path points outside the vault
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path is outside the vault: {path}") from None
        return resolved

    def relative(self, path: PathLike) -> Path:
        return self.resolve(path).relative_to(self.root)

    def exists(self, path: PathLike) -> bool:
        return self.resolve(path).exists()

    def get_file(self, path: PathLike) -> Path | None:
        """Return the absolute path of an existing file, or None."""
        resolved = self.resolve(path)
        return resolved if resolved.is_file() else None

    def parent(self, path: PathLike) -> Path:
        return self.resolve(path).parent

    def read(self, path: PathLike) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def read_binary(self, path: PathLike) -> bytes:
        return self.resolve(path).read_bytes()

    def create(self, path: PathLike, content: str) -> Path:
        """Create a text file. Never overwrites.

        Raises:
            FileExistsError: If something already exists at ``path``
        """
        return self.create_binary(path, content.encode("utf-8"))

    def create_binary(self, path: PathLike, data: bytes) -> Path:
        """Create a binary file. Never overwrites."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # "x" mode fails if the file appeared since the caller probed the name
        with open(target, "xb") as f:
            f.write(data)
        logger.debug(f"[VAULT] Created {self.relative(target)} ({len(data)} bytes)")
        return target

    def replace_binary(self, path: PathLike, data: bytes) -> Path:
        """Overwrite an existing file with new content.

        The content is written to a hidden sibling and moved over the file.
        """
        target = self.resolve(path)
        temp = target.with_name(f".{target.name}.tmp")
        try:
            temp.write_bytes(data)
            os.replace(temp, target)
        except OSError:
            temp.unlink(missing_ok=True)
            raise
        logger.debug(f"[VAULT] Replaced {self.relative(target)} ({len(data)} bytes)")
        return target

    def rename(self, src: PathLike, dst: PathLike) -> Path:
        source = self.resolve(src)
        target = self.resolve(dst)
        if target.exists():
            raise FileExistsError(f"Destination already exists: {dst}")
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(source, target)
        logger.debug(f"[VAULT] Renamed {self.relative(source)} -> {self.relative(target)}")
        return target

    def delete(self, path: PathLike) -> None:
        self.resolve(path).unlink()
        logger.debug(f"[VAULT] Deleted {path}")

    def trash(self, path: PathLike) -> Path:
        """Move a file into the vault's trash folder."""
        source = self.resolve(path)
        self.trash_dir.mkdir(parents=True, exist_ok=True)
        dest = get_unique_path(self.trash_dir / source.name)
        return self.rename(source, dest)

    def remove(self, path: PathLike) -> Path | None:
        """Trash or delete a file, depending on ``delete_mode``.

        Returns the trash location, or None when the file was deleted.
        """
        if self.delete_mode == "trash":
            return self.trash(path)
        self.delete(path)
        return None

    def list_files(self, extension: str) -> list[Path]:
        """List vault-relative files with ``extension``, skipping hidden folders."""
        ext = extension.lower().lstrip(".")
        files = []
        for file in self.root.rglob(f"*.{ext}"):
            rel = file.relative_to(self.root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if file.is_file():
                files.append(rel)
        return sorted(files)

    def unique_path(self, path: PathLike) -> Path:
        """Vault-relative free path for ``path`` using the `` (n)`` probe."""
        return get_unique_path(self.resolve(path)).relative_to(self.root)


@dataclass(frozen=True)
class ImageAsset:
    """An image file in the vault, identified by its vault-relative path."""

    path: Path
    size: int

    @classmethod
    def from_path(cls, vault: Vault, path: PathLike) -> "ImageAsset":
        rel = vault.relative(path)
        return cls(path=rel, size=vault.resolve(rel).stat().st_size)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def extension(self) -> str:
        return self.path.suffix

    @property
    def folder(self) -> Path:
        return self.path.parent

    @property
    def mime_type(self) -> str:
        return mime_type_for(self.path)
