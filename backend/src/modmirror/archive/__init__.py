from modmirror.archive.errors import (
    ArchiveIndexError,
    ContainerCorruptError,
    MissingPackageEntryError,
    NonRepresentablePathError,
    PackageFormatError,
    PathError,
    PrefixMismatchError,
)
from modmirror.archive.indexer import index_archive, index_archive_file
from modmirror.archive.pak_parser import PakIndex, parse_pak_index
from modmirror.archive.paths import normalize_record_path

__all__ = [
    "ArchiveIndexError",
    "ContainerCorruptError",
    "MissingPackageEntryError",
    "NonRepresentablePathError",
    "PackageFormatError",
    "PakIndex",
    "PathError",
    "PrefixMismatchError",
    "index_archive",
    "index_archive_file",
    "normalize_record_path",
    "parse_pak_index",
]
