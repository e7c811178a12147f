"""Catalog records parsed from mod.io API payloads."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


class FileRecord(BaseModel):
    id: int
    mod_id: int
    added_at: datetime
    content_hash: str
    filename: str
    version: str | None = None
    changelog: str | None = None
    size: int = 0
    download_url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "FileRecord":
        return cls(
            id=data["id"],
            mod_id=data.get("mod_id", 0),
            added_at=datetime.fromtimestamp(data.get("date_added", 0), tz=UTC),
            content_hash=(data.get("filehash") or {}).get("md5", ""),
            filename=data.get("filename", ""),
            version=data.get("version"),
            changelog=data.get("changelog"),
            size=data.get("filesize") or 0,
            download_url=(data.get("download") or {}).get("binary_url", ""),
        )


class ModRecord(BaseModel):
    id: int
    name: str
    slug: str
    summary: str = ""
    description: str | None = None
    current_file: FileRecord | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ModRecord":
        modfile = data.get("modfile")
        current_file = None
        # mod.io reports "no file" as null or as an object with id 0.
        if modfile and modfile.get("id"):
            current_file = FileRecord.from_api({"mod_id": data["id"], **modfile})
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            slug=data.get("name_id", ""),
            summary=data.get("summary") or "",
            description=data.get("description"),
            current_file=current_file,
        )
