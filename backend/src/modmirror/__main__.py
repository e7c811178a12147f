"""Command-line entry point.

``serve`` runs the HTTP API; ``get-mods`` mirrors the remote catalog;
``update-pack-files-local`` rebuilds the path index from archives already on
disk; ``list-files`` prints the packed paths of one archive or of every
cached archive.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx
from sqlmodel import Session

from modmirror.config import settings


def _print_progress(phase: str, msg: str, pct: int) -> None:
    print(f"[{phase} {pct:3d}%] {msg}", file=sys.stderr)


async def _get_mods() -> int:
    from modmirror.database import create_db_and_tables, engine
    from modmirror.modio.client import ModioClient, ModioError
    from modmirror.services.mod_sync import ModSyncEngine
    from modmirror.services.storage import ArchiveStore

    if not settings.modio_access_token:
        print("Error: MODMIRROR_MODIO_ACCESS_TOKEN is not set", file=sys.stderr)
        return 1

    create_db_and_tables()
    store = ArchiveStore(settings.mods_dir, settings.archive_extension)
    try:
        async with ModioClient(
            settings.modio_access_token,
            game_id=settings.modio_game_id,
            base_url=settings.modio_api_url,
        ) as client:
            with Session(engine) as session:
                result = await ModSyncEngine(
                    session,
                    client,
                    store,
                    containment_prefix=settings.containment_prefix,
                    package_extension=settings.package_extension,
                    on_progress=_print_progress,
                ).sync_all()
    except (httpx.HTTPError, ModioError) as exc:
        print(f"Error: could not fetch mod list: {exc}", file=sys.stderr)
        return 1

    for failure in result.failures:
        print(f"Error analyzing {failure.unit_id}: [{failure.kind}] {failure.message}")
    print(
        f"{result.processed} mods processed: {result.updated} updated, "
        f"{result.unchanged} unchanged, {result.cleared} cleared, "
        f"{result.downloaded} downloaded, {result.failed} failed"
    )
    return 0


async def _update_pack_files_local() -> int:
    from modmirror.database import create_db_and_tables, engine
    from modmirror.services.reconcile import rebuild_all
    from modmirror.services.storage import ArchiveStore

    create_db_and_tables()
    store = ArchiveStore(settings.mods_dir, settings.archive_extension)
    with Session(engine) as session:
        result = await rebuild_all(
            session,
            store,
            containment_prefix=settings.containment_prefix,
            package_extension=settings.package_extension,
            max_workers=settings.index_workers or None,
            on_progress=_print_progress,
        )
    for failure in result.failures:
        print(f"Error analyzing modfile_id {failure.unit_id}: {failure.message}")
    print(f"{result.succeeded}/{result.total} files indexed ({result.path_count} paths)")
    return 0


def _list_files(zip_path: Path | None) -> int:
    from modmirror.archive.errors import ArchiveIndexError
    from modmirror.archive.indexer import index_archive_file
    from modmirror.services.storage import ArchiveStore

    def _index(path: Path) -> list[str]:
        return index_archive_file(
            path,
            containment_prefix=settings.containment_prefix,
            package_extension=settings.package_extension,
        )

    if zip_path is not None:
        try:
            paths = _index(zip_path)
        except (ArchiveIndexError, OSError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        for path in paths:
            print(path)
        return 0

    store = ArchiveStore(settings.mods_dir, settings.archive_extension)
    for archive in store.list_archives():
        try:
            paths = _index(archive)
        except (ArchiveIndexError, OSError) as exc:
            print(f"{archive} {exc}")
            continue
        for path in paths:
            print(f"{archive} {path}")
    return 0


def _serve() -> int:
    import uvicorn

    from modmirror.main import app

    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modmirror",
        description="Mirror mod.io mods and index the asset paths inside their archives",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("serve", help="Run the HTTP API")
    subparsers.add_parser("get-mods", help="Sync mods and files from mod.io")
    subparsers.add_parser(
        "update-pack-files-local", help="Rebuild the path index from downloaded archives"
    )
    list_files = subparsers.add_parser("list-files", help="List paths packed in archives")
    list_files.add_argument("zip", nargs="?", type=Path, help="Archive to list (default: all)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from modmirror.main import configure_logging

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        return _serve()
    if args.command == "get-mods":
        return asyncio.run(_get_mods())
    if args.command == "update-pack-files-local":
        return asyncio.run(_update_pack_files_local())
    return _list_files(args.zip)


if __name__ == "__main__":
    sys.exit(main())
