"""Building and replacing a file's PathEntry snapshot."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from sqlalchemy import delete
from sqlmodel import Session

from modmirror.models.path_entry import PathEntry


def build_path_entry(file_id: int, path: str) -> PathEntry:
    """Split *path* into the searchable columns of a PathEntry.

    ``FSD/Content/Foo.uasset`` gives extension ``uasset``, stem ``Foo`` and
    ``FSD/Content/Foo`` without extension.  Names without a suffix (or with
    only a leading dot) get a NULL extension.
    """
    pure = PurePosixPath(path)
    suffix = pure.suffix
    return PathEntry(
        file_id=file_id,
        path=path,
        path_without_extension=path[: -len(suffix)] if suffix else path,
        extension=suffix[1:] if suffix else None,
        stem=pure.stem or None,
    )


def replace_path_entries(session: Session, file_id: int, paths: Iterable[str]) -> int:
    """Delete the file's existing rows and insert one row per unique path.

    Does not commit; the caller owns the transaction so the delete and the
    inserts become visible together.
    """
    session.exec(delete(PathEntry).where(PathEntry.file_id == file_id))  # type: ignore[call-overload]
    unique = list(dict.fromkeys(paths))
    session.add_all(build_path_entry(file_id, p) for p in unique)
    return len(unique)
