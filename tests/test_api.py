"""HTTP API: admin CMS endpoints and the public site endpoints."""
import pytest

from practice_cms.routes import cms
from practice_cms.storage import OrderedRepository
from tests.conftest import ADMIN_HEADERS, make_testimonial, png_bytes


def create(client, path, payload):
    resp = client.post(f"/api/admin/{path}", json=payload, headers=ADMIN_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_admin_routes_require_password(client):
    assert client.get("/api/admin/testimonials").status_code == 401

    resp = client.get("/api/admin/testimonials", headers={"X-CMS-Password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid password"

    assert client.get("/api/admin/testimonials", headers=ADMIN_HEADERS).status_code == 200


def test_create_testimonials_are_appended(client):
    first = create(client, "testimonials", make_testimonial(name="Ana"))
    second = create(client, "testimonials", make_testimonial(name="Bruno", rating=4))

    assert (first["order"], second["order"]) == (0, 1)
    assert second["rating"] == 4
    assert second["is_active"] is True

    rows = client.get("/api/admin/testimonials", headers=ADMIN_HEADERS).json()
    assert [r["name"] for r in rows] == ["Ana", "Bruno"]


@pytest.mark.parametrize("rating", [0, 6])
def test_invalid_rating_is_rejected(client, rating):
    resp = client.post(
        "/api/admin/testimonials", json=make_testimonial(rating=rating), headers=ADMIN_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation error"
    assert client.get("/api/admin/testimonials", headers=ADMIN_HEADERS).json() == []


def test_short_testimonial_text_is_rejected(client):
    resp = client.post(
        "/api/admin/testimonials", json=make_testimonial(testimonial="Ótimo"), headers=ADMIN_HEADERS
    )
    assert resp.status_code == 400


def test_public_lists_only_active_items(client):
    create(client, "testimonials", make_testimonial(name="Ana"))
    hidden = create(client, "testimonials", make_testimonial(name="Bruno"))
    create(client, "testimonials", make_testimonial(name="Carla"))

    resp = client.put(
        f"/api/admin/testimonials/{hidden['id']}", json={"is_active": False}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert resp.json()["name"] == "Bruno"

    public = client.get("/api/testimonials").json()
    assert [r["name"] for r in public] == ["Ana", "Carla"]


def test_reorder_endpoint_accepts_array_body(client):
    ids = [create(client, "services", {"title": t, "description": f"Sobre {t}"})["id"] for t in "ABC"]

    resp = client.post(
        "/api/admin/services/reorder",
        json=[{"id": ids[2], "order": 0}, {"id": ids[0], "order": 1}, {"id": ids[1], "order": 2}],
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["count"] == 3

    rows = client.get("/api/services").json()
    assert [r["title"] for r in rows] == ["C", "A", "B"]
    assert [r["order"] for r in rows] == [0, 1, 2]


def test_reorder_with_unknown_id_is_404_and_changes_nothing(client):
    a = create(client, "faq", {"question": "Atende online?", "answer": "Sim."})
    b = create(client, "faq", {"question": "Qual a duração?", "answer": "50 minutos."})

    resp = client.post(
        "/api/admin/faq/reorder",
        json=[{"id": b["id"], "order": 0}, {"id": a["id"], "order": 1}, {"id": 999, "order": 2}],
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 404

    rows = client.get("/api/faq").json()
    assert [r["id"] for r in rows] == [a["id"], b["id"]]


@pytest.mark.parametrize("body", [[], [{"id": 1, "order": 0}, {"id": 1, "order": 1}], [{"id": 1, "order": -1}]])
def test_reorder_rejects_bad_bodies(client, body):
    resp = client.post("/api/admin/credentials/reorder", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 400


@pytest.mark.parametrize("field", ["name", "rating", "is_active"])
def test_update_rejects_null_for_required_fields(client, field):
    row = create(client, "testimonials", make_testimonial(name="Ana"))

    resp = client.put(f"/api/admin/testimonials/{row['id']}", json={field: None}, headers=ADMIN_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation error"

    (stored,) = client.get("/api/admin/testimonials", headers=ADMIN_HEADERS).json()
    assert stored[field] == row[field]


def test_update_accepts_null_for_optional_fields(client):
    row = create(client, "credentials", {"title": "Psicologia", "institution": "PUC", "year": "2015"})

    resp = client.put(f"/api/admin/credentials/{row['id']}", json={"year": None}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["year"] is None


def test_update_missing_item_is_404(client):
    resp = client.put("/api/admin/specialties/123", json={"title": "Ansiedade"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 404


def test_delete_is_idempotent(client):
    row = create(client, "credentials", {"title": "Psicologia", "institution": "Centro Universitário"})

    for _ in range(2):
        resp = client.delete(f"/api/admin/credentials/{row['id']}", headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        assert resp.json()["id"] == row["id"]

    assert client.get("/api/credentials").json() == []


def test_site_config_upsert_and_public_read(client):
    for value in ("(41) 99999-0000", "(41) 98888-1111"):
        resp = client.put("/api/admin/site-config/phone", json={"value": value}, headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        assert resp.json()["value"] == value

    client.put("/api/admin/site-config/email", json={"value": "contato@exemplo.com"}, headers=ADMIN_HEADERS)

    assert client.get("/api/site-config").json() == {
        "email": "contato@exemplo.com",
        "phone": "(41) 98888-1111",
    }
    assert len(client.get("/api/admin/site-config", headers=ADMIN_HEADERS).json()) == 2
    assert client.get("/api/site-config/phone").json()["value"] == "(41) 98888-1111"

    client.delete("/api/admin/site-config/phone", headers=ADMIN_HEADERS)
    assert client.get("/api/site-config/phone").status_code == 404


def test_gallery_photo_requires_http_url(client):
    resp = client.post(
        "/api/admin/gallery-photos",
        json={"title": "Sala de espera", "image_url": "not a url"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400


def test_public_gallery_pagination(client):
    for i in range(3):
        create(client, "gallery-photos", {"title": f"Foto {i}", "image_url": f"https://example.com/{i}.jpg"})
    create(
        client,
        "gallery-photos",
        {"title": "Oculta", "image_url": "https://example.com/x.jpg", "is_active": False},
    )

    page = client.get("/api/gallery-photos?limit=2").json()
    assert [p["title"] for p in page["photos"]] == ["Foto 0", "Foto 1"]
    assert page["photos"][0]["display_url"] == "https://example.com/0.jpg"
    assert page["pagination"] == {"next_cursor": 2, "has_more": True, "total_count": 3}

    page = client.get("/api/gallery-photos?limit=2&cursor=2").json()
    assert [p["title"] for p in page["photos"]] == ["Foto 2"]
    assert page["pagination"]["has_more"] is False
    assert page["pagination"]["next_cursor"] is None

    assert client.get("/api/gallery-photos?limit=0").status_code == 400


@pytest.fixture
def fake_cdn(monkeypatch):
    uploads = []
    deleted = []

    async def fake_upload(file, folder="gallery", **kwargs):
        uploads.append((folder, file))
        url = f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/img{len(uploads)}.webp"
        return {"url": url, "public_id": f"{folder}/img{len(uploads)}"}

    async def fake_delete(url):
        deleted.append(url)
        return True

    monkeypatch.setattr(cms, "upload_image", fake_upload)
    monkeypatch.setattr(cms, "delete_image_by_url", fake_delete)
    return uploads, deleted


def test_testimonial_image_upload_and_removal(client, fake_cdn):
    uploads, deleted = fake_cdn
    row = create(client, "testimonials", make_testimonial())

    resp = client.post(
        f"/api/admin/testimonials/{row['id']}/image",
        files={"image": ("rosto.png", png_bytes(), "image/png")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    image_url = resp.json()["image_url"]
    assert uploads[0][0] == "testimonials"

    rows = client.get("/api/admin/testimonials", headers=ADMIN_HEADERS).json()
    assert rows[0]["photo"] == image_url

    resp = client.delete(f"/api/admin/testimonials/{row['id']}/image", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert deleted == [image_url]
    assert client.get("/api/testimonials").json()[0]["photo"] is None


def test_testimonial_image_upload_validation(client, fake_cdn):
    uploads, _ = fake_cdn
    row = create(client, "testimonials", make_testimonial())

    resp = client.post(
        f"/api/admin/testimonials/{row['id']}/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/admin/testimonials/999/image",
        files={"image": ("rosto.png", png_bytes(), "image/png")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 404
    assert uploads == []


def test_testimonial_image_too_large(client, fake_cdn, monkeypatch):
    monkeypatch.setattr(cms.settings, "MAX_UPLOAD_BYTES", 10)
    row = create(client, "testimonials", make_testimonial())

    resp = client.post(
        f"/api/admin/testimonials/{row['id']}/image",
        files={"image": ("rosto.png", png_bytes(), "image/png")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 413


def test_gallery_bulk_upload(client, fake_cdn):
    uploads, _ = fake_cdn
    create(client, "gallery-photos", {"title": "Existente", "image_url": "https://example.com/a.jpg"})

    resp = client.post(
        "/api/admin/gallery-photos/upload",
        files=[
            ("files", ("consultorio.png", png_bytes(), "image/png")),
            ("files", ("sala-de-espera.png", png_bytes(color=(10, 10, 10)), "image/png")),
        ],
        data={"titles": ["Consultório principal"]},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["errors"] == []
    assert [p["title"] for p in body["photos"]] == ["Consultório principal", "Consultório principal"]
    assert [p["order"] for p in body["photos"]] == [1, 2]
    assert len(uploads) == 2


def test_deleting_gallery_photo_removes_cdn_asset(client, fake_cdn):
    _, deleted = fake_cdn
    row = create(
        client,
        "gallery-photos",
        {"title": "Sala", "image_url": "https://res.cloudinary.com/demo/image/upload/v1/gallery/sala.jpg"},
    )

    resp = client.delete(f"/api/admin/gallery-photos/{row['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert deleted == [row["image_url"]]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/health/db").json()["database"] == "connected"


def test_replacing_gallery_image_url_removes_old_asset(client, fake_cdn):
    _, deleted = fake_cdn
    old_url = "https://res.cloudinary.com/demo/image/upload/v1/gallery/old.jpg"
    new_url = "https://res.cloudinary.com/demo/image/upload/v1/gallery/new.jpg"
    row = create(client, "gallery-photos", {"title": "Sala", "image_url": old_url})

    resp = client.put(f"/api/admin/gallery-photos/{row['id']}", json={"title": "Sala 2"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert deleted == []

    resp = client.put(f"/api/admin/gallery-photos/{row['id']}", json={"image_url": old_url}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert deleted == []

    resp = client.put(f"/api/admin/gallery-photos/{row['id']}", json={"image_url": new_url}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["image_url"] == new_url
    assert deleted == [old_url]


def test_clearing_testimonial_photo_through_update_removes_asset(client, fake_cdn):
    _, deleted = fake_cdn
    photo = "https://res.cloudinary.com/demo/image/upload/v1/testimonials/ana.webp"
    row = create(client, "testimonials", make_testimonial(photo=photo))

    resp = client.put(f"/api/admin/testimonials/{row['id']}", json={"photo": None}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["photo"] is None
    assert deleted == [photo]


def test_failed_delete_keeps_cdn_asset(client, fake_cdn, monkeypatch):
    _, deleted = fake_cdn
    row = create(
        client,
        "gallery-photos",
        {"title": "Sala", "image_url": "https://res.cloudinary.com/demo/image/upload/v1/gallery/sala.jpg"},
    )

    async def broken_delete(self, entity_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(OrderedRepository, "delete", broken_delete)

    resp = client.delete(f"/api/admin/gallery-photos/{row['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 500
    assert deleted == []
    assert len(client.get("/api/gallery-photos").json()["photos"]) == 1
