from enum import StrEnum

from pydantic import BaseModel


class FailureKind(StrEnum):
    TRANSPORT = "transport"
    STORAGE = "storage"
    CONTAINER_CORRUPT = "container_corrupt"
    MISSING_PACKAGE_ENTRY = "missing_package_entry"
    PACKAGE_FORMAT = "package_format"
    PATH = "path"
    IO = "io"


class SyncAction(StrEnum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    CLEARED = "cleared"


class UnitFailure(BaseModel):
    unit_id: int
    kind: FailureKind
    message: str


class ModSyncOutcome(BaseModel):
    mod_id: int
    action: SyncAction
    file_id: int | None = None
    downloaded: bool = False
    path_count: int = 0
    index_error: UnitFailure | None = None


class ModSyncResult(BaseModel):
    processed: int = 0
    unchanged: int = 0
    updated: int = 0
    cleared: int = 0
    downloaded: int = 0
    failures: list[UnitFailure] = []

    @property
    def failed(self) -> int:
        return len(self.failures)


class ReconcileResult(BaseModel):
    total: int = 0
    succeeded: int = 0
    path_count: int = 0
    failures: list[UnitFailure] = []

    @property
    def failed(self) -> int:
        return len(self.failures)
