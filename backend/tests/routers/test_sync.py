import httpx
import pytest
import respx

from modmirror.config import settings


@pytest.fixture
def token(monkeypatch):
    monkeypatch.setattr("modmirror.config.settings.modio_access_token", "test-token")


def _mods_url() -> str:
    return f"{settings.modio_api_url}/games/{settings.modio_game_id}/mods"


class TestRoot:
    def test_health(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


class TestSync:
    def test_requires_token(self, client, monkeypatch):
        monkeypatch.setattr("modmirror.config.settings.modio_access_token", "")
        r = client.post("/api/v1/sync")
        assert r.status_code == 400

    @respx.mock
    def test_sync_mods_without_files(self, client, token):
        respx.get(_mods_url()).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {"id": 1, "name": "A", "name_id": "a", "modfile": None},
                        {"id": 2, "name": "B", "name_id": "b", "modfile": None},
                    ],
                    "result_total": 2,
                },
            )
        )
        r = client.post("/api/v1/sync")
        assert r.status_code == 200
        data = r.json()
        assert data["processed"] == 2
        assert data["unchanged"] == 2
        assert data["failures"] == []

        mods = client.get("/api/v1/mods/").json()
        assert [m["slug"] for m in mods] == ["a", "b"]

    @respx.mock
    def test_catalog_failure(self, client, token):
        respx.get(_mods_url()).mock(return_value=httpx.Response(503))
        r = client.post("/api/v1/sync")
        assert r.status_code == 502


class TestReconcile:
    def test_empty(self, client):
        r = client.post("/api/v1/reconcile")
        assert r.status_code == 200
        assert r.json()["total"] == 0

    def test_indexes_cached_archives(self, client, engine, tmp_path, make_pak, make_mod_zip):
        from datetime import UTC, datetime

        from sqlmodel import Session

        from modmirror.models.mod import Mod, ModFile

        with Session(engine) as s:
            s.add(Mod(id=1, name="A", slug="a", current_file_id=10))
            s.add(ModFile(id=10, mod_id=1, added_at=datetime(2024, 1, 1, tzinfo=UTC),
                          content_hash="abc"))
            s.add(ModFile(id=11, mod_id=1, added_at=datetime(2024, 1, 2, tzinfo=UTC),
                          content_hash="missing"))
            s.commit()
        make_mod_zip(tmp_path / "mods" / "abc.zip", make_pak(["FSD/A.uasset"]))

        r = client.post("/api/v1/reconcile")
        assert r.status_code == 200
        data = r.json()
        assert data["total"] == 2
        assert data["succeeded"] == 1
        assert data["path_count"] == 1
        assert data["failures"][0]["unit_id"] == 11
        assert data["failures"][0]["kind"] == "io"

        paths = client.get("/api/v1/files/10/paths").json()
        assert [p["path"] for p in paths] == ["FSD/A.uasset"]
