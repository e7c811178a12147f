import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from modmirror.config import settings
from modmirror.database import get_session
from modmirror.routers.deps import get_archive_store
from modmirror.schemas.sync import ModSyncResult, ReconcileResult
from modmirror.services.storage import ArchiveStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


@router.post("/sync", response_model=ModSyncResult)
async def sync_mods(
    session: Session = Depends(get_session),
    store: ArchiveStore = Depends(get_archive_store),
) -> ModSyncResult:
    if not settings.modio_access_token:
        raise HTTPException(400, "mod.io access token not configured")

    from modmirror.modio.client import ModioClient, ModioError
    from modmirror.services.mod_sync import ModSyncEngine

    try:
        async with ModioClient(
            settings.modio_access_token,
            game_id=settings.modio_game_id,
            base_url=settings.modio_api_url,
        ) as client:
            engine = ModSyncEngine(
                session,
                client,
                store,
                containment_prefix=settings.containment_prefix,
                package_extension=settings.package_extension,
            )
            return await engine.sync_all()
    except (httpx.HTTPError, ModioError) as exc:
        logger.warning("Could not fetch mod list: %s", exc)
        raise HTTPException(502, f"Catalog request failed: {exc}") from exc


@router.post("/reconcile", response_model=ReconcileResult)
async def reconcile_paths(
    session: Session = Depends(get_session),
    store: ArchiveStore = Depends(get_archive_store),
) -> ReconcileResult:
    from modmirror.services.reconcile import rebuild_all

    return await rebuild_all(
        session,
        store,
        containment_prefix=settings.containment_prefix,
        package_extension=settings.package_extension,
        max_workers=settings.index_workers or None,
    )
