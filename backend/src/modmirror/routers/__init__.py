from fastapi import APIRouter

from modmirror.routers.mods import router as mods_router
from modmirror.routers.paths import router as paths_router
from modmirror.routers.sync import router as sync_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(mods_router)
api_router.include_router(paths_router)
api_router.include_router(sync_router)
