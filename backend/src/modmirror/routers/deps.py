"""Shared FastAPI dependencies used across routers."""

from fastapi import HTTPException
from sqlmodel import Session

from modmirror.config import settings
from modmirror.models.mod import Mod, ModFile
from modmirror.services.storage import ArchiveStore


def get_mod_or_404(mod_id: int, session: Session) -> Mod:
    mod = session.get(Mod, mod_id)
    if not mod:
        raise HTTPException(404, f"Mod {mod_id} not found")
    return mod


def get_file_or_404(file_id: int, session: Session) -> ModFile:
    mod_file = session.get(ModFile, file_id)
    if not mod_file:
        raise HTTPException(404, f"File {file_id} not found")
    return mod_file


def get_archive_store() -> ArchiveStore:
    return ArchiveStore(settings.mods_dir, settings.archive_extension)
