"""Archive indexer: zip container -> embedded .pak -> normalised asset paths."""

from __future__ import annotations

import logging
import zipfile
import zlib
from pathlib import Path
from typing import IO

from modmirror.archive.errors import (
    ContainerCorruptError,
    MissingPackageEntryError,
    PackageFormatError,
)
from modmirror.archive.pak_parser import PakFormatError, parse_pak_index
from modmirror.archive.paths import DEFAULT_CONTAINMENT_PREFIX, normalize_record_path

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_EXTENSION = ".pak"

ArchiveSource = str | Path | IO[bytes]

_FLAG_ENCRYPTED = 0x1


def _find_package_entry(zf: zipfile.ZipFile, package_extension: str) -> zipfile.ZipInfo:
    suffix = package_extension.lower()
    for info in zf.infolist():
        if not info.is_dir() and info.filename.lower().endswith(suffix):
            return info
    raise MissingPackageEntryError(package_extension)


def index_archive(
    source: ArchiveSource,
    *,
    containment_prefix: str = DEFAULT_CONTAINMENT_PREFIX,
    package_extension: str = DEFAULT_PACKAGE_EXTENSION,
) -> list[str]:
    """Return the normalised paths packed in the archive's package entry.

    *source* may be a filesystem path, an open binary file or an in-memory
    buffer.  Order follows the package index.  Any bad record fails the
    whole archive.
    """
    try:
        with zipfile.ZipFile(source, "r") as zf:
            entry = _find_package_entry(zf, package_extension)
            if entry.flag_bits & _FLAG_ENCRYPTED:
                raise ContainerCorruptError(f"{entry.filename}: entry is password protected")
            package = zf.read(entry)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError) as exc:
        raise ContainerCorruptError(f"Corrupt zip container: {exc}") from exc
    except NotImplementedError as exc:
        raise ContainerCorruptError(f"Unsupported zip feature: {exc}") from exc

    try:
        pak = parse_pak_index(package)
    except PakFormatError as exc:
        raise PackageFormatError(f"{entry.filename}: {exc}") from exc

    return [
        normalize_record_path(pak.mount_point, record, containment_prefix)
        for record in pak.records
    ]


def index_archive_file(
    path: str | Path,
    *,
    containment_prefix: str = DEFAULT_CONTAINMENT_PREFIX,
    package_extension: str = DEFAULT_PACKAGE_EXTENSION,
) -> list[str]:
    """Index an archive on disk.  Raises ``OSError`` if it cannot be opened."""
    with Path(path).open("rb") as f:
        paths = index_archive(
            f,
            containment_prefix=containment_prefix,
            package_extension=package_extension,
        )
    logger.debug("Indexed %s: %d paths", path, len(paths))
    return paths
