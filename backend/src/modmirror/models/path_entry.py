"""SQLModel table for the packed asset path index.

One row per normalized path found inside a file's embedded package.  The
rows for a file are always replaced as a whole snapshot.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class PathEntry(SQLModel, table=True):
    __tablename__ = "path_entries"

    file_id: int = Field(foreign_key="mod_files.id", primary_key=True)
    path: str = Field(primary_key=True)
    path_without_extension: str = Field(index=True)
    extension: str | None = Field(default=None, index=True)
    stem: str | None = Field(default=None, index=True)
