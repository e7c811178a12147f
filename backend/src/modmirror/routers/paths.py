from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, col, select

from modmirror.database import get_session
from modmirror.models.mod import ModFile
from modmirror.models.path_entry import PathEntry
from modmirror.routers.deps import get_file_or_404
from modmirror.schemas.mod import PathEntryOut, PathSearchHit

router = APIRouter(tags=["paths"])


@router.get("/files/{file_id}/paths", response_model=list[PathEntryOut])
def list_file_paths(file_id: int, session: Session = Depends(get_session)) -> list[PathEntryOut]:
    get_file_or_404(file_id, session)
    entries = session.exec(
        select(PathEntry).where(PathEntry.file_id == file_id).order_by(PathEntry.path)
    ).all()
    return [
        PathEntryOut(
            path=e.path,
            path_without_extension=e.path_without_extension,
            extension=e.extension,
            stem=e.stem,
        )
        for e in entries
    ]


@router.get("/paths", response_model=list[PathSearchHit])
def search_paths(
    q: str | None = Query(default=None),
    extension: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=5000),
    session: Session = Depends(get_session),
) -> list[PathSearchHit]:
    stmt = select(PathEntry, ModFile.mod_id).join(ModFile, PathEntry.file_id == ModFile.id)
    if q:
        stmt = stmt.where(col(PathEntry.path).ilike(f"%{q}%"))
    if extension:
        stmt = stmt.where(PathEntry.extension == extension.lstrip("."))
    rows = session.exec(stmt.order_by(PathEntry.path, PathEntry.file_id).limit(limit)).all()
    return [
        PathSearchHit(
            file_id=entry.file_id,
            mod_id=mod_id,
            path=entry.path,
            path_without_extension=entry.path_without_extension,
            extension=entry.extension,
            stem=entry.stem,
        )
        for entry, mod_id in rows
    ]
