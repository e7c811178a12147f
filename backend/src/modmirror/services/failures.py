"""Mapping of per-unit exceptions onto reportable failures."""

from __future__ import annotations

import httpx
from sqlalchemy.exc import SQLAlchemyError

from modmirror.archive.errors import (
    ContainerCorruptError,
    MissingPackageEntryError,
    PackageFormatError,
    PathError,
)
from modmirror.modio.client import ModioError
from modmirror.schemas.sync import FailureKind, UnitFailure

# Exceptions a batch isolates to the failing unit; anything else propagates.
UNIT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.HTTPError,
    ModioError,
    SQLAlchemyError,
    ContainerCorruptError,
    MissingPackageEntryError,
    PackageFormatError,
    PathError,
    OSError,
)


def classify_failure(exc: BaseException) -> FailureKind:
    if isinstance(exc, httpx.HTTPError | ModioError):
        return FailureKind.TRANSPORT
    if isinstance(exc, SQLAlchemyError):
        return FailureKind.STORAGE
    if isinstance(exc, ContainerCorruptError):
        return FailureKind.CONTAINER_CORRUPT
    if isinstance(exc, MissingPackageEntryError):
        return FailureKind.MISSING_PACKAGE_ENTRY
    if isinstance(exc, PackageFormatError):
        return FailureKind.PACKAGE_FORMAT
    if isinstance(exc, PathError):
        return FailureKind.PATH
    if isinstance(exc, OSError):
        return FailureKind.IO
    raise TypeError(f"Not a unit failure: {exc!r}") from exc


def unit_failure(unit_id: int, exc: BaseException) -> UnitFailure:
    return UnitFailure(unit_id=unit_id, kind=classify_failure(exc), message=str(exc))
