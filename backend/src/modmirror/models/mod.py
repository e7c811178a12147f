from datetime import datetime

from sqlmodel import Field, SQLModel


class Mod(SQLModel, table=True):
    __tablename__ = "mods"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    name: str = ""
    slug: str = Field(default="", index=True)
    summary: str = ""
    description: str | None = None
    # Must point at a ModFile whose mod_id is this mod; maintained by the sync engine.
    current_file_id: int | None = Field(default=None, index=True)


class ModFile(SQLModel, table=True):
    __tablename__ = "mod_files"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    mod_id: int = Field(foreign_key="mods.id", index=True)
    added_at: datetime
    content_hash: str = Field(index=True)
    filename: str = ""
    version: str | None = None
    changelog: str | None = None
    size: int = 0
