"""Rebuild the path index of every locally known archive.

Indexing runs concurrently in worker threads, bounded by the CPU count;
persistence stays on the coordinating coroutine so each file's snapshot is
replaced in its own transaction with a single writer on the session.
"""

from __future__ import annotations

import asyncio
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from modmirror.archive.errors import ArchiveIndexError
from modmirror.archive.indexer import DEFAULT_PACKAGE_EXTENSION, index_archive_file
from modmirror.archive.paths import DEFAULT_CONTAINMENT_PREFIX
from modmirror.models.mod import ModFile
from modmirror.schemas.sync import ReconcileResult, UnitFailure
from modmirror.services.failures import unit_failure
from modmirror.services.path_index import replace_path_entries
from modmirror.services.progress import ProgressCallback, noop_progress
from modmirror.services.storage import ArchiveStore

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    return os.cpu_count() or 1


async def rebuild_all(
    session: Session,
    store: ArchiveStore,
    *,
    containment_prefix: str = DEFAULT_CONTAINMENT_PREFIX,
    package_extension: str = DEFAULT_PACKAGE_EXTENSION,
    max_workers: int | None = None,
    on_progress: ProgressCallback = noop_progress,
) -> ReconcileResult:
    """Re-index every ModFile's local archive and replace its PathEntry rows.

    Files whose archive is missing or fails to index are reported and
    keep their previous snapshot; they never stop the others.
    """
    files = session.exec(select(ModFile.id, ModFile.content_hash)).all()
    total = len(files)
    result = ReconcileResult(total=total)
    if total == 0:
        on_progress("reconcile", "No files to index", 100)
        return result

    workers = max_workers or default_worker_count()
    sem = asyncio.Semaphore(workers)
    logger.info("Re-indexing %d files with %d workers", total, workers)

    async def index_one(file_id: int, content_hash: str) -> tuple[int, list[str] | UnitFailure]:
        async with sem:
            try:
                archive_path = store.path_for(content_hash)
                paths = await asyncio.to_thread(
                    index_archive_file,
                    archive_path,
                    containment_prefix=containment_prefix,
                    package_extension=package_extension,
                )
            except (ArchiveIndexError, OSError) as exc:
                return file_id, unit_failure(file_id, exc)
        return file_id, paths

    tasks = [index_one(file_id, content_hash) for file_id, content_hash in files]
    for done, next_result in enumerate(asyncio.as_completed(tasks), start=1):
        file_id, outcome = await next_result
        pct = int(done / total * 100)

        if isinstance(outcome, UnitFailure):
            logger.warning("Error analyzing modfile_id %d: %s", file_id, outcome.message)
            result.failures.append(outcome)
            on_progress("reconcile", f"Failed: file {file_id}", pct)
            continue

        try:
            count = replace_path_entries(session, file_id, outcome)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Failed to store paths for modfile_id %d: %s", file_id, exc)
            result.failures.append(unit_failure(file_id, exc))
            on_progress("reconcile", f"Failed: file {file_id}", pct)
            continue

        result.succeeded += 1
        result.path_count += count
        on_progress("reconcile", f"Indexed: file {file_id} ({count} paths)", pct)

    logger.info(
        "Re-indexed %d/%d files (%d paths, %d failed)",
        result.succeeded,
        total,
        result.path_count,
        result.failed,
    )
    on_progress("reconcile", f"Indexed {result.succeeded} of {total} files", 100)
    return result
