"""Flat on-disk cache of downloaded archives, keyed by content hash."""

from __future__ import annotations

from pathlib import Path


class ArchiveStore:
    def __init__(self, root: str | Path, extension: str = ".zip") -> None:
        self.root = Path(root)
        self.extension = extension

    def path_for(self, content_hash: str) -> Path:
        """Location of the archive for *content_hash*.

        Only the final component of the hash is used, so the result always
        lies directly inside the cache directory.
        """
        return self.root / f"{Path(content_hash).name}{self.extension}"

    def exists(self, content_hash: str) -> bool:
        return self.path_for(content_hash).is_file()

    def list_archives(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.glob(f"*{self.extension}") if p.is_file())
