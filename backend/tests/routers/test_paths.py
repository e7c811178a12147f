from datetime import UTC, datetime

import pytest
from sqlmodel import Session

from modmirror.models.mod import Mod, ModFile
from modmirror.services.path_index import replace_path_entries


@pytest.fixture
def seeded(engine):
    with Session(engine) as s:
        for mod_id, file_id in ((1, 10), (2, 20)):
            s.add(Mod(id=mod_id, name=f"Mod {mod_id}", slug=f"mod-{mod_id}",
                      current_file_id=file_id))
            s.add(ModFile(id=file_id, mod_id=mod_id, added_at=datetime(2024, 1, 1, tzinfo=UTC),
                          content_hash=f"h{file_id}"))
        s.commit()
        replace_path_entries(s, 10, ["FSD/Weapons/Rifle.uasset", "FSD/Weapons/Rifle.uexp"])
        replace_path_entries(s, 20, ["FSD/Weapons/Rifle.uasset", "FSD/Sounds/Drill.ubulk"])
        s.commit()


class TestListFilePaths:
    def test_not_found(self, client):
        r = client.get("/api/v1/files/99/paths")
        assert r.status_code == 404

    def test_sorted_paths(self, client, seeded):
        r = client.get("/api/v1/files/10/paths")
        assert r.status_code == 200
        data = r.json()
        assert [e["path"] for e in data] == [
            "FSD/Weapons/Rifle.uasset",
            "FSD/Weapons/Rifle.uexp",
        ]
        assert data[0]["path_without_extension"] == "FSD/Weapons/Rifle"
        assert data[0]["extension"] == "uasset"
        assert data[0]["stem"] == "Rifle"


class TestSearchPaths:
    def test_shared_path_found_in_every_mod(self, client, seeded):
        r = client.get("/api/v1/paths", params={"q": "Rifle.uasset"})
        assert r.status_code == 200
        hits = r.json()
        assert [(h["mod_id"], h["file_id"]) for h in hits] == [(1, 10), (2, 20)]

    def test_extension_filter(self, client, seeded):
        r = client.get("/api/v1/paths", params={"extension": ".ubulk"})
        assert [h["path"] for h in r.json()] == ["FSD/Sounds/Drill.ubulk"]

    def test_limit(self, client, seeded):
        r = client.get("/api/v1/paths", params={"limit": 2})
        assert len(r.json()) == 2

    def test_no_match(self, client, seeded):
        r = client.get("/api/v1/paths", params={"q": "nothing-here"})
        assert r.json() == []
