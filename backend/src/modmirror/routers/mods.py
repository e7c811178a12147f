from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, col, or_, select

from modmirror.database import get_session
from modmirror.models.mod import Mod, ModFile
from modmirror.models.path_entry import PathEntry
from modmirror.routers.deps import get_mod_or_404
from modmirror.schemas.mod import ModDetailOut, ModFileOut, ModOut

router = APIRouter(prefix="/mods", tags=["mods"])


def _path_counts(session: Session, file_ids: list[int]) -> dict[int, int]:
    if not file_ids:
        return {}
    rows = session.exec(
        select(PathEntry.file_id, func.count())
        .where(col(PathEntry.file_id).in_(file_ids))
        .group_by(PathEntry.file_id)
    ).all()
    return {file_id: count for file_id, count in rows}


def _file_out(mod_file: ModFile, path_count: int) -> ModFileOut:
    return ModFileOut(
        id=mod_file.id,
        mod_id=mod_file.mod_id,
        added_at=mod_file.added_at,
        content_hash=mod_file.content_hash,
        filename=mod_file.filename,
        version=mod_file.version,
        changelog=mod_file.changelog,
        size=mod_file.size,
        path_count=path_count,
    )


@router.get("/", response_model=list[ModOut])
def list_mods(
    q: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    session: Session = Depends(get_session),
) -> list[ModOut]:
    stmt = select(Mod)
    if q:
        pattern = f"%{q}%"
        stmt = stmt.where(or_(col(Mod.name).ilike(pattern), col(Mod.slug).ilike(pattern)))
    mods = session.exec(stmt.order_by(Mod.id).offset(offset).limit(limit)).all()
    return [
        ModOut(
            id=m.id,
            name=m.name,
            slug=m.slug,
            summary=m.summary,
            current_file_id=m.current_file_id,
        )
        for m in mods
    ]


@router.get("/{mod_id}", response_model=ModDetailOut)
def get_mod(mod_id: int, session: Session = Depends(get_session)) -> ModDetailOut:
    mod = get_mod_or_404(mod_id, session)
    current = None
    if mod.current_file_id is not None:
        mod_file = session.get(ModFile, mod.current_file_id)
        if mod_file:
            counts = _path_counts(session, [mod_file.id])
            current = _file_out(mod_file, counts.get(mod_file.id, 0))
    return ModDetailOut(
        id=mod.id,
        name=mod.name,
        slug=mod.slug,
        summary=mod.summary,
        description=mod.description,
        current_file_id=mod.current_file_id,
        current_file=current,
    )


@router.get("/{mod_id}/files", response_model=list[ModFileOut])
def list_mod_files(mod_id: int, session: Session = Depends(get_session)) -> list[ModFileOut]:
    get_mod_or_404(mod_id, session)
    files = session.exec(
        select(ModFile).where(ModFile.mod_id == mod_id).order_by(col(ModFile.added_at).desc())
    ).all()
    counts = _path_counts(session, [f.id for f in files])
    return [_file_out(f, counts.get(f.id, 0)) for f in files]
