"""Errors raised while indexing a mod archive.

Every failure aborts indexing of that one archive; callers leave the
file's path snapshot empty and report the error.
"""

from __future__ import annotations


class ArchiveIndexError(Exception):
    """Base class for archive-indexing failures."""


class MissingPackageEntryError(ArchiveIndexError):
    def __init__(self, package_extension: str) -> None:
        self.package_extension = package_extension
        super().__init__(f"No {package_extension} entry found in archive")


class ContainerCorruptError(ArchiveIndexError):
    pass


class PackageFormatError(ArchiveIndexError):
    pass


class PathError(ArchiveIndexError):
    def __init__(self, message: str, mount_point: str, record_path: str) -> None:
        self.mount_point = mount_point
        self.record_path = record_path
        super().__init__(f"{message}: mount point: {mount_point!r} asset path: {record_path!r}")


class PrefixMismatchError(PathError):
    def __init__(self, mount_point: str, record_path: str, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"Path is not contained in {prefix!r}", mount_point, record_path)


class NonRepresentablePathError(PathError):
    def __init__(self, mount_point: str, record_path: str) -> None:
        super().__init__("Path is not representable as text", mount_point, record_path)
