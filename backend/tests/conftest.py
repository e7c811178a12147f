import struct
import zipfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

import modmirror.models  # noqa: F401 — register all tables
from modmirror.archive.pak_parser import PAK_MAGIC
from modmirror.database import get_session
from modmirror.main import app
from modmirror.models.mod import Mod, ModFile
from modmirror.services.storage import ArchiveStore

DEFAULT_PAK_NAME = "FSD/Content/Paks/mod_P.pak"


def _fstring(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        raw = value + b"\x00"
        return struct.pack("<i", len(raw)) + raw
    if value == "":
        return struct.pack("<i", 0)
    try:
        raw = value.encode("ascii") + b"\x00"
        return struct.pack("<i", len(raw)) + raw
    except UnicodeEncodeError:
        raw = value.encode("utf-16-le") + b"\x00\x00"
        return struct.pack("<i", -(len(raw) // 2)) + raw


def _legacy_entry(version: int) -> bytes:
    entry = struct.pack("<qqq", 0, 0, 0)
    entry += struct.pack("<I", 0) if version >= 8 else struct.pack("<i", 0)
    if version == 1:
        entry += struct.pack("<Q", 0)
    entry += b"\x00" * 20
    if version >= 3:
        entry += struct.pack("<BI", 0, 0x10000)
    return entry


def _footer(version: int, index_offset: int, index_size: int, encrypted: bool) -> bytes:
    footer = b""
    if version >= 7:
        footer += b"\x00" * 16
    if version >= 4:
        footer += b"\x01" if encrypted else b"\x00"
    footer += struct.pack("<IIQQ", PAK_MAGIC, version, index_offset, index_size)
    footer += b"\x00" * 20
    if version == 9:
        footer += b"\x00"
    if version >= 8:
        footer += b"\x00" * 32 * 5
    return footer


def _directory_index(records: list[str | bytes]) -> bytes:
    dirs: dict[str | bytes, list[str | bytes]] = {}
    for record in records:
        sep = b"/" if isinstance(record, bytes) else "/"
        head, _, name = record.rpartition(sep)  # type: ignore[arg-type]
        dir_name = sep + head + sep if head else sep
        dirs.setdefault(dir_name, []).append(name)
    body = struct.pack("<I", len(dirs))
    for dir_name, names in dirs.items():
        body += _fstring(dir_name) + struct.pack("<I", len(names))
        for name in names:
            body += _fstring(name) + struct.pack("<i", 0)
    return body


def build_pak(
    records: list[str | bytes],
    *,
    mount_point: str = "../../../",
    version: int = 3,
    encrypted: bool = False,
    record_count: int | None = None,
    with_directory_index: bool = True,
) -> bytes:
    """Build a minimal .pak whose index lists *records* under *mount_point*."""
    payload = b"PAYLOAD-BYTES"
    count = len(records) if record_count is None else record_count
    if version < 10:
        index = _fstring(mount_point) + struct.pack("<I", count)
        for record in records:
            index += _fstring(record) + _legacy_entry(version)
        index_offset = len(payload)
        return payload + index + _footer(version, index_offset, len(index), encrypted)

    dir_index = _directory_index(records)
    dir_offset = len(payload)
    index = _fstring(mount_point) + struct.pack("<IQ", count, 0)
    index += struct.pack("<I", 0)  # no path hash index
    if with_directory_index:
        index += struct.pack("<Iqq", 1, dir_offset, len(dir_index)) + b"\x00" * 20
    else:
        index += struct.pack("<I", 0)
    index += struct.pack("<I", 0)  # encoded entries size
    index += struct.pack("<I", 0)  # unencoded entries
    index_offset = dir_offset + len(dir_index)
    return (
        payload
        + dir_index
        + index
        + _footer(version, index_offset, len(index), encrypted)
    )


def _set_encrypted_flag(path: Path) -> None:
    data = bytearray(path.read_bytes())
    eocd = data.rfind(b"PK\x05\x06")
    entries, cd_offset = struct.unpack_from("<H4xI", data, eocd + 10)
    pos = cd_offset
    for _ in range(entries):
        name_len, extra_len, comment_len = struct.unpack_from("<HHH", data, pos + 28)
        (local_offset,) = struct.unpack_from("<I", data, pos + 42)
        data[pos + 8] |= 0x1
        data[local_offset + 6] |= 0x1
        pos += 46 + name_len + extra_len + comment_len
    path.write_bytes(bytes(data))


def build_mod_zip(
    dest: Path,
    pak: bytes | None,
    *,
    pak_name: str = DEFAULT_PAK_NAME,
    extra: dict[str, bytes] | None = None,
    encrypted: bool = False,
) -> Path:
    """Write a zip archive holding *pak* (if given) plus any *extra* entries.

    With *encrypted* every entry is flagged as password protected; the data
    itself is left as is, which is enough for zipfile to refuse reading it.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in (extra or {}).items():
            zf.writestr(name, data)
        if pak is not None:
            zf.writestr(pak_name, pak)
    if encrypted:
        _set_encrypted_flag(dest)
    return dest


@pytest.fixture
def make_pak():
    return build_pak


@pytest.fixture
def make_mod_zip():
    return build_mod_zip


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


def _safe_monkeypatch_engine(monkeypatch, engine):
    """Point module-level engine references at the test engine."""
    monkeypatch.setattr("modmirror.database.engine", engine)


@pytest.fixture
def session(engine, monkeypatch):
    with Session(engine) as sess:
        _safe_monkeypatch_engine(monkeypatch, engine)
        yield sess


@pytest.fixture
def store(tmp_path) -> ArchiveStore:
    return ArchiveStore(tmp_path / "mods", ".zip")


@pytest.fixture
def client(engine, monkeypatch, tmp_path):
    _safe_monkeypatch_engine(monkeypatch, engine)
    monkeypatch.setattr("modmirror.config.settings.mods_dir", tmp_path / "mods")

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()


@pytest.fixture
def make_mod_file(session):
    def _make(
        file_id: int,
        *,
        mod_id: int = 1,
        content_hash: str | None = None,
        current: bool = True,
    ) -> ModFile:
        mod = session.get(Mod, mod_id)
        if mod is None:
            mod = Mod(id=mod_id, name=f"Mod {mod_id}", slug=f"mod-{mod_id}")
        mod_file = ModFile(
            id=file_id,
            mod_id=mod_id,
            added_at=datetime(2024, 1, 1, tzinfo=UTC),
            content_hash=content_hash or f"hash{file_id}",
            filename=f"file{file_id}.zip",
        )
        if current:
            mod.current_file_id = file_id
        session.add(mod)
        session.add(mod_file)
        session.commit()
        session.refresh(mod_file)
        return mod_file

    return _make
