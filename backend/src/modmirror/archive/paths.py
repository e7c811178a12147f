"""Normalisation of packed record paths against a package mount point."""

from __future__ import annotations

from pathlib import PurePosixPath

from modmirror.archive.errors import NonRepresentablePathError, PrefixMismatchError

DEFAULT_CONTAINMENT_PREFIX = "../../.."


def normalize_record_path(
    mount_point: str,
    record_path: str,
    containment_prefix: str = DEFAULT_CONTAINMENT_PREFIX,
) -> str:
    """Join *record_path* onto *mount_point* and strip *containment_prefix*.

    The prefix is removed segment by segment, so ``../../../FSD/x`` with the
    default prefix becomes ``FSD/x`` and the bare prefix becomes ``""``.
    Raises ``PrefixMismatchError`` if the joined path does not start with the
    prefix, and ``NonRepresentablePathError`` if the result is not valid text.
    """
    joined = PurePosixPath(mount_point) / record_path
    prefix = PurePosixPath(containment_prefix)
    try:
        relative = joined.relative_to(prefix)
    except ValueError:
        raise PrefixMismatchError(mount_point, record_path, containment_prefix) from None

    normalized = relative.as_posix() if relative.parts else ""
    try:
        normalized.encode("utf-8")
    except UnicodeEncodeError:
        raise NonRepresentablePathError(mount_point, record_path) from None
    return normalized
