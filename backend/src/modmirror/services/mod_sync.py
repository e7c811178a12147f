"""Remote catalog -> local mirror synchronisation.

Each mod is handled as one unit: metadata is upserted, its current file is
compared with the stored one, and only a changed file is downloaded and
re-indexed.  Mods are processed one at a time; a failing mod is recorded
and the batch moves on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from sqlmodel import Session, select

from modmirror.archive.errors import ArchiveIndexError
from modmirror.archive.indexer import DEFAULT_PACKAGE_EXTENSION, index_archive_file
from modmirror.archive.paths import DEFAULT_CONTAINMENT_PREFIX
from modmirror.models.mod import Mod, ModFile
from modmirror.schemas.modio import FileRecord, ModRecord
from modmirror.schemas.sync import ModSyncOutcome, ModSyncResult, SyncAction
from modmirror.services.failures import UNIT_ERRORS, unit_failure
from modmirror.services.path_index import replace_path_entries
from modmirror.services.progress import ProgressCallback, noop_progress
from modmirror.services.storage import ArchiveStore

logger = logging.getLogger(__name__)


class CatalogClient(Protocol):
    async def list_visible_mods(self) -> list[ModRecord]: ...

    async def download_file(
        self,
        file: FileRecord,
        dest: Path,
        *,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> None: ...


def _upsert_mod(session: Session, record: ModRecord) -> Mod:
    mod = session.get(Mod, record.id)
    if mod is None:
        mod = Mod(id=record.id)
    mod.name = record.name
    mod.slug = record.slug
    mod.summary = record.summary
    mod.description = record.description
    session.add(mod)
    return mod


def _upsert_file(session: Session, mod_id: int, record: FileRecord) -> ModFile:
    mod_file = session.get(ModFile, record.id)
    if mod_file is None:
        mod_file = ModFile(id=record.id, mod_id=mod_id, added_at=record.added_at, content_hash="")
    mod_file.mod_id = mod_id
    mod_file.added_at = record.added_at
    mod_file.content_hash = record.content_hash
    mod_file.filename = record.filename
    mod_file.version = record.version
    mod_file.changelog = record.changelog
    mod_file.size = record.size
    session.add(mod_file)
    return mod_file


class ModSyncEngine:
    def __init__(
        self,
        session: Session,
        client: CatalogClient,
        store: ArchiveStore,
        *,
        containment_prefix: str = DEFAULT_CONTAINMENT_PREFIX,
        package_extension: str = DEFAULT_PACKAGE_EXTENSION,
        on_progress: ProgressCallback = noop_progress,
    ) -> None:
        self.session = session
        self.client = client
        self.store = store
        self.containment_prefix = containment_prefix
        self.package_extension = package_extension
        self.on_progress = on_progress

    def _stored_file_id(self, mod_id: int) -> int | None:
        return self.session.exec(select(Mod.current_file_id).where(Mod.id == mod_id)).first()

    async def _download(self, record: ModRecord, file: FileRecord, dest: Path) -> None:
        logger.info("Downloading mod %d file %d to %s", record.id, file.id, dest)
        last_pct = -1

        def _progress(downloaded: int, total: int) -> None:
            nonlocal last_pct
            pct = int(downloaded * 100 / total) if total else 0
            if pct != last_pct:
                last_pct = pct
                self.on_progress("download", f"{record.name}: {downloaded}/{total} bytes", pct)

        await self.client.download_file(file, dest, progress_callback=_progress)

    async def sync_one(self, record: ModRecord) -> ModSyncOutcome:
        """Bring one mod's local rows in line with the catalog record.

        Indexing failures, including an unreadable archive, do not raise:
        metadata is still committed, the new file's path snapshot is left
        empty and the error is attached to the outcome.  Transport and
        storage errors propagate.
        """
        session = self.session
        stored_file_id = self._stored_file_id(record.id)
        remote_file = record.current_file
        remote_file_id = remote_file.id if remote_file else None

        if remote_file_id == stored_file_id:
            _upsert_mod(session, record)
            self._commit()
            return ModSyncOutcome(
                mod_id=record.id, action=SyncAction.UNCHANGED, file_id=stored_file_id
            )

        if remote_file is None:
            mod = _upsert_mod(session, record)
            mod.current_file_id = None
            self._commit()
            logger.info("Mod %d no longer has a current file", record.id)
            return ModSyncOutcome(mod_id=record.id, action=SyncAction.CLEARED)

        # Nothing is written until the archive is on disk and indexed.
        archive_path = self.store.path_for(remote_file.content_hash)
        downloaded = False
        if not self.store.exists(remote_file.content_hash):
            await self._download(record, remote_file, archive_path)
            downloaded = True

        paths: list[str] = []
        index_error = None
        try:
            paths = await asyncio.to_thread(
                index_archive_file,
                archive_path,
                containment_prefix=self.containment_prefix,
                package_extension=self.package_extension,
            )
        except (ArchiveIndexError, OSError) as exc:
            logger.warning("Error analyzing mod %d file %d: %s", record.id, remote_file.id, exc)
            index_error = unit_failure(record.id, exc)

        mod = _upsert_mod(session, record)
        _upsert_file(session, record.id, remote_file)
        mod.current_file_id = remote_file.id
        path_count = replace_path_entries(session, remote_file.id, paths)
        self._commit()

        logger.info(
            "Mod %d now at file %d (%d paths%s)",
            record.id,
            remote_file.id,
            path_count,
            ", downloaded" if downloaded else "",
        )
        return ModSyncOutcome(
            mod_id=record.id,
            action=SyncAction.UPDATED,
            file_id=remote_file.id,
            downloaded=downloaded,
            path_count=path_count,
            index_error=index_error,
        )

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    async def sync_all(self) -> ModSyncResult:
        """Sync every visible mod in the catalog, isolating per-mod failures."""
        self.on_progress("sync", "Grabbing mod list...", 0)
        mods = await self.client.list_visible_mods()
        total = len(mods)
        logger.info("Mod list obtained: %d mods", total)

        result = ModSyncResult()
        for i, record in enumerate(mods):
            try:
                outcome = await self.sync_one(record)
            except UNIT_ERRORS as exc:
                self.session.rollback()
                failure = unit_failure(record.id, exc)
                logger.warning("Failed to sync mod %d (%s): %s", record.id, failure.kind, exc)
                result.failures.append(failure)
            else:
                if outcome.action == SyncAction.UNCHANGED:
                    result.unchanged += 1
                elif outcome.action == SyncAction.CLEARED:
                    result.cleared += 1
                else:
                    result.updated += 1
                if outcome.downloaded:
                    result.downloaded += 1
                if outcome.index_error:
                    result.failures.append(outcome.index_error)
            result.processed += 1
            pct = int((i + 1) / total * 100)
            self.on_progress("sync", f"Processed {record.name} ({i + 1}/{total})", pct)

        logger.info(
            "Sync finished: %d processed, %d updated, %d downloaded, %d failed",
            result.processed,
            result.updated,
            result.downloaded,
            result.failed,
        )
        self.on_progress("sync", f"Synced {result.processed} mods", 100)
        return result
