import io

import pytest
from PIL import Image

from dashboard import create_app
from tests.helpers import data_url


@pytest.fixture
def client(store, tmp_path, sleeps):
    app = create_app({"TESTING": True, "SHARE_SLEEP": sleeps, "EXPORT_DIR": tmp_path / "exports"})
    return app.test_client()


@pytest.fixture
def headers(user):
    return {"X-User-Id": user["id"]}


def _create_design(client, headers, **overrides):
    payload = {
        "image": data_url(size=(600, 800)),
        "fabric": "Silk",
        "wholesalePrice": 1200,
        "retailPrice": 1800,
        "description": "Zari border",
    }
    payload.update(overrides)
    resp = client.post("/api/designs", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_requests_need_a_known_user(client):
    assert client.get("/api/designs").status_code == 401
    assert client.get("/api/designs", headers={"X-User-Id": "ghost"}).status_code == 401


def test_me(client, headers):
    body = client.get("/api/me", headers=headers).get_json()
    assert body["firm_name"] == "Lakshmi Textiles"


def test_design_endpoints(client, headers):
    design = _create_design(client, headers)
    _create_design(client, headers, fabric="Cotton", retailPrice=400)

    listed = client.get("/api/designs?sortBy=price-low", headers=headers).get_json()
    assert [d["fabric"] for d in listed["designs"]] == ["Cotton", "Silk"]
    assert listed["pagination"]["total"] == 2

    fabrics = client.get("/api/designs/meta/fabrics", headers=headers).get_json()
    assert fabrics == {"fabrics": ["Cotton", "Silk"]}

    resp = client.put(f"/api/designs/{design['id']}", json={"retailPrice": 2100}, headers=headers)
    assert resp.get_json()["retail_price"] == 2100

    assert client.delete(f"/api/designs/{design['id']}", headers=headers).get_json() == {
        "message": "Design deleted successfully"
    }
    assert client.get(f"/api/designs/{design['id']}", headers=headers).status_code == 404


def test_design_validation_errors(client, headers):
    resp = client.post("/api/designs", json={"fabric": "Silk"}, headers=headers)
    assert resp.status_code == 400
    assert "image" in resp.get_json()["error"]

    assert client.get("/api/designs?page=abc", headers=headers).status_code == 400


def test_catalogue_endpoints(client, headers):
    resp = client.post("/api/catalogues", json={"name": "Festive"}, headers=headers)
    assert resp.status_code == 201
    cat_id = resp.get_json()["id"]

    _create_design(client, headers, catalogueId=cat_id)
    (listed,) = client.get("/api/catalogues", headers=headers).get_json()["catalogues"]
    assert listed["design_count"] == 1

    assert client.put(f"/api/catalogues/{cat_id}", json={"name": ""}, headers=headers).status_code == 400
    assert client.delete(f"/api/catalogues/{cat_id}", headers=headers).status_code == 200
    assert client.delete(f"/api/catalogues/{cat_id}", headers=headers).status_code == 404


def test_group_endpoints(client, headers):
    resp = client.post(
        "/api/groups",
        json={"name": "Retailers", "members": [{"name": "Asha", "phoneNumber": "+91 98765 43210"}]},
        headers=headers,
    )
    assert resp.status_code == 201
    group_id = resp.get_json()["id"]

    resp = client.post(
        f"/api/groups/{group_id}/members", json={"name": "Asha 2", "phoneNumber": "919876543210"}, headers=headers
    )
    assert resp.status_code == 409

    resp = client.post(f"/api/groups/{group_id}/members", json={"name": "Ravi", "phoneNumber": "91 99887 76655"}, headers=headers)
    member_id = resp.get_json()["id"]
    assert len(client.get(f"/api/groups/{group_id}", headers=headers).get_json()["members"]) == 2

    assert client.delete(f"/api/groups/{group_id}/members/{member_id}", headers=headers).status_code == 200
    assert client.post("/api/groups", json={"name": "X", "members": "nope"}, headers=headers).status_code == 400
    assert client.delete(f"/api/groups/{group_id}", headers=headers).status_code == 200
    assert client.get(f"/api/groups/{group_id}", headers=headers).status_code == 404


def test_share_preview_returns_jpeg(client, headers):
    design = _create_design(client, headers)
    resp = client.post(
        "/api/share/preview",
        json={"designIds": [design["id"]], "options": {"include_wholesale": True}},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.mimetype == "image/jpeg"
    assert Image.open(io.BytesIO(resp.data)).size == (600, 800)


def test_share_preview_rejects_oversized_image(client, headers, monkeypatch):
    design = _create_design(client, headers)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    resp = client.post("/api/share/preview", json={"designIds": [design["id"]]}, headers=headers)
    assert resp.status_code == 422


def test_share_export_saves_files_and_returns_link(client, headers, sleeps):
    first = _create_design(client, headers)
    second = _create_design(client, headers, fabric="Cotton")

    resp = client.post("/api/share/export", json={"designIds": [second["id"], first["id"]]}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ready_to_link"
    assert body["channel"] == "download_and_link"
    assert [f.rsplit("/", 1)[1] for f in body["files"]] == ["TextileHub_Design_1.jpg", "TextileHub_Design_2.jpg"]
    assert body["links"][0].startswith("https://wa.me/?text=")
    assert sleeps.calls == [0.3]

    download = client.get(body["files"][0])
    assert download.status_code == 200
    assert download.data[:2] == b"\xff\xd8"


def test_share_export_to_group(client, headers):
    design = _create_design(client, headers)
    group = client.post(
        "/api/groups",
        json={
            "name": "Retailers",
            "members": [{"name": "A", "phoneNumber": "919876543210"}, {"name": "B", "phoneNumber": "919988776655"}],
        },
        headers=headers,
    ).get_json()

    body = client.post(
        "/api/share/export", json={"designIds": [design["id"]], "groupId": group["id"]}, headers=headers
    ).get_json()
    assert [link.split("?")[0] for link in body["links"]] == [
        "https://wa.me/919876543210",
        "https://wa.me/919988776655",
    ]


def test_share_export_errors(client, headers, user, store):
    assert client.post("/api/share/export", json={"designIds": []}, headers=headers).status_code == 400
    assert client.post("/api/share/export", json={"designIds": ["missing"]}, headers=headers).status_code == 404

    broken = store.create_design(user["id"], image="not an image", wholesale_price=1, retail_price=2, fabric="Silk")
    resp = client.post("/api/share/export", json={"designIds": [broken["id"]]}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("Could not prepare images")
