from datetime import datetime

from pydantic import BaseModel


class ModFileOut(BaseModel):
    id: int
    mod_id: int
    added_at: datetime
    content_hash: str
    filename: str
    version: str | None
    changelog: str | None
    size: int
    path_count: int = 0


class ModOut(BaseModel):
    id: int
    name: str
    slug: str
    summary: str
    current_file_id: int | None


class ModDetailOut(ModOut):
    description: str | None
    current_file: ModFileOut | None = None


class PathEntryOut(BaseModel):
    path: str
    path_without_extension: str
    extension: str | None
    stem: str | None


class PathSearchHit(PathEntryOut):
    file_id: int
    mod_id: int
