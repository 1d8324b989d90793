"""HTTP-тесты маршрутов галерей.

- ``POST /api/galleries``: создание с составом.
- ``GET /api/galleries`` и ``GET /api/galleries/<id>``: видимость.
- ``PATCH /api/galleries/<id>``: частичное обновление и замена состава.
- ``DELETE /api/galleries/<id>``: удаление с участиями.
- ``POST /api/galleries/<id>/images``: добавление в конец.
- ``DELETE /api/galleries/<id>/images/<membership_id>``: удаление участия.
- ``PATCH /api/galleries/<id>/images/order``: перестановка.
"""

from __future__ import annotations

import pytest

from models import GalleryImage
from services import galleries as gallery_service


@pytest.fixture
def images(owner, create_image):
    return [create_image(owner, title=name) for name in ("first", "second", "third")]


@pytest.fixture
def owner_client(login, owner):
    return login(owner)


def _image_ids(body):
    return [item["imageId"] for item in body["gallery"]["images"]]


def _membership_ids(body):
    return [item["id"] for item in body["gallery"]["images"]]


# ---------------------------------------------------------------------------
# Создание
# ---------------------------------------------------------------------------


class TestCreateGallery:
    """Test POST /api/galleries."""

    def test_created_with_resolved_membership(self, owner_client, images):
        resp = owner_client.post(
            "/api/galleries",
            json={
                "title": "Поездка",
                "isPublic": True,
                "themeColor": "#000000",
                "images": [
                    {"id": images[0], "order": 2},
                    {"id": images[1], "order": 0, "description": "рассвет"},
                    {"id": images[2]},
                ],
            },
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["gallery"]["themeColor"] == "#000000"
        assert _image_ids(body) == [images[1], images[0], images[2]]
        assert [item["order"] for item in body["gallery"]["images"]] == [0, 1, 2]
        assert body["gallery"]["images"][0]["description"] == "рассвет"
        assert body["gallery"]["images"][0]["image"]["id"] == images[1]

    def test_unauthenticated(self, client):
        resp = client.post("/api/galleries", json={"title": "Поездка"})
        assert resp.status_code == 401
        assert resp.get_json()["kind"] == "Unauthorized"

    def test_validation_error_shape(self, owner_client):
        resp = owner_client.post("/api/galleries", json={"title": ""})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["kind"] == "ValidationError"
        assert body["issues"][0]["path"] == "title"

    def test_foreign_image_conflict(self, owner_client, other_user, create_image):
        foreign = create_image(other_user, title="foreign")
        resp = owner_client.post("/api/galleries", json={"title": "Поездка", "images": [{"id": foreign}]})
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "ConflictError"


# ---------------------------------------------------------------------------
# Просмотр
# ---------------------------------------------------------------------------


class TestReadGallery:
    """Test GET /api/galleries and GET /api/galleries/<id>."""

    def test_public_gallery_readable_by_anyone(self, client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images, is_public=True)
        resp = client.get(f"/api/galleries/{gallery_id}")
        assert resp.status_code == 200
        assert _image_ids(resp.get_json()) == images

    def test_private_gallery_unauthenticated(self, client, owner, create_gallery):
        gallery_id = create_gallery(owner, is_public=False)
        resp = client.get(f"/api/galleries/{gallery_id}")
        assert resp.status_code == 401
        assert "gallery" not in resp.get_json()

    def test_private_gallery_other_user(self, login, owner, other_user, create_gallery):
        gallery_id = create_gallery(owner, is_public=False)
        resp = login(other_user).get(f"/api/galleries/{gallery_id}")
        assert resp.status_code == 403
        assert "gallery" not in resp.get_json()

    def test_missing_gallery(self, client):
        resp = client.get("/api/galleries/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["kind"] == "NotFound"

    def test_list_newest_first(self, owner_client, owner, images, create_gallery):
        older = create_gallery(owner, images[:2], title="Старая")
        newer = create_gallery(owner, title="Новая")
        private = create_gallery(owner, title="Закрытая", is_public=False)

        public_only = owner_client.get("/api/galleries").get_json()["galleries"]
        with_private = owner_client.get("/api/galleries?includePrivate=true").get_json()["galleries"]

        listed = [g["id"] for g in public_only]
        assert listed.index(newer) < listed.index(older)
        assert private not in {g["id"] for g in public_only}
        assert private in {g["id"] for g in with_private}
        listed_older = next(g for g in with_private if g["id"] == older)
        assert [item["imageId"] for item in listed_older["images"]] == images[:2]
        assert [item["order"] for item in listed_older["images"]] == [0, 1]
        assert "tags" in listed_older["images"][0]["image"]


# ---------------------------------------------------------------------------
# Изменение и удаление
# ---------------------------------------------------------------------------


class TestUpdateGallery:
    """Test PATCH /api/galleries/<id>."""

    def test_replace_membership(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images[:2])
        before = owner_client.get(f"/api/galleries/{gallery_id}").get_json()

        resp = owner_client.patch(
            f"/api/galleries/{gallery_id}",
            json={"images": [{"id": images[2]}, {"id": images[0]}]},
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert _image_ids(body) == [images[2], images[0]]
        assert not set(_membership_ids(body)) & set(_membership_ids(before))

    def test_non_owner_forbidden(self, login, owner, other_user, images, create_gallery):
        gallery_id = create_gallery(owner, images)
        resp = login(other_user).patch(f"/api/galleries/{gallery_id}", json={"title": "Взлом"})
        assert resp.status_code == 403

    def test_cover_outside_membership(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images[:1])
        resp = owner_client.patch(f"/api/galleries/{gallery_id}", json={"coverImageId": images[2]})
        assert resp.status_code == 409

    def test_set_and_clear_cover(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images)
        resp = owner_client.patch(f"/api/galleries/{gallery_id}", json={"coverImageId": images[1]})
        assert resp.get_json()["gallery"]["coverImageId"] == images[1]

        resp = owner_client.patch(f"/api/galleries/{gallery_id}", json={"coverImageId": None})
        assert resp.get_json()["gallery"]["coverImageId"] is None

    def test_unexpected_failure_returns_500_without_partial_changes(
        self, owner_client, owner, images, create_gallery, monkeypatch
    ):
        gallery_id = create_gallery(owner, images[:2], cover_image_id=images[0])
        before = owner_client.get(f"/api/galleries/{gallery_id}").get_json()

        def broken_create(gallery, entries, start=0):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(gallery_service, "_create_memberships", broken_create)

        resp = owner_client.patch(
            f"/api/galleries/{gallery_id}",
            json={"title": "Не применится", "images": [{"id": images[2]}]},
        )

        assert resp.status_code == 500
        body = resp.get_json()
        assert body["success"] is False
        assert body["kind"] == "InternalError"

        after = owner_client.get(f"/api/galleries/{gallery_id}").get_json()
        assert after["gallery"]["title"] == before["gallery"]["title"]
        assert after["gallery"]["coverImageId"] == images[0]
        assert _membership_ids(after) == _membership_ids(before)
        assert [item["order"] for item in after["gallery"]["images"]] == [0, 1]


class TestDeleteGallery:
    """Test DELETE /api/galleries/<id>."""

    def test_delete_cascades_membership(self, app, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images)

        resp = owner_client.delete(f"/api/galleries/{gallery_id}")

        assert resp.status_code == 204
        assert owner_client.get(f"/api/galleries/{gallery_id}").status_code == 404
        with app.app_context():
            assert GalleryImage.query.filter_by(gallery_id=gallery_id).count() == 0

    def test_delete_by_non_owner(self, login, owner, other_user, create_gallery):
        gallery_id = create_gallery(owner)
        assert login(other_user).delete(f"/api/galleries/{gallery_id}").status_code == 403


# ---------------------------------------------------------------------------
# Состав галереи
# ---------------------------------------------------------------------------


class TestGalleryImages:
    """Test membership endpoints under /api/galleries/<id>/images."""

    def test_add_images(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images[:1])
        resp = owner_client.post(f"/api/galleries/{gallery_id}/images", json={"imageIds": images[1:]})
        assert resp.status_code == 200
        assert _image_ids(resp.get_json()) == images

    def test_remove_by_membership_id(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images, cover_image_id=images[0])
        body = owner_client.get(f"/api/galleries/{gallery_id}").get_json()
        first_membership = _membership_ids(body)[0]

        resp = owner_client.delete(f"/api/galleries/{gallery_id}/images/{first_membership}")

        assert resp.status_code == 200
        gallery = resp.get_json()["gallery"]
        assert gallery["coverImageId"] is None
        assert [item["imageId"] for item in gallery["images"]] == images[1:]
        assert [item["order"] for item in gallery["images"]] == [0, 1]

    def test_remove_with_image_id_is_not_found(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images)
        resp = owner_client.delete(f"/api/galleries/{gallery_id}/images/{images[0]}")
        assert resp.status_code == 404

    def test_remove_membership_of_other_gallery(self, owner_client, owner, images, create_gallery):
        first = create_gallery(owner, images[:1], title="Первая")
        second = create_gallery(owner, images[1:], title="Вторая")
        foreign = _membership_ids(owner_client.get(f"/api/galleries/{second}").get_json())[0]

        resp = owner_client.delete(f"/api/galleries/{first}/images/{foreign}")

        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "NotFound"

    def test_reorder(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images)
        ids = _membership_ids(owner_client.get(f"/api/galleries/{gallery_id}").get_json())

        payload = {"images": [{"id": ids[2], "order": 0}, {"id": ids[0], "order": 1}, {"id": ids[1], "order": 2}]}
        first = owner_client.patch(f"/api/galleries/{gallery_id}/images/order", json=payload)
        second = owner_client.patch(f"/api/galleries/{gallery_id}/images/order", json=payload)

        assert first.status_code == 200
        assert _image_ids(first.get_json()) == [images[2], images[0], images[1]]
        assert second.get_json()["gallery"]["images"] == first.get_json()["gallery"]["images"]

    def test_reorder_with_foreign_id(self, owner_client, owner, images, create_gallery):
        gallery_id = create_gallery(owner, images[:2])
        ids = _membership_ids(owner_client.get(f"/api/galleries/{gallery_id}").get_json())

        resp = owner_client.patch(
            f"/api/galleries/{gallery_id}/images/order",
            json={"images": [{"id": ids[0], "order": 0}, {"id": "foreign", "order": 1}]},
        )

        assert resp.status_code == 400
        after = owner_client.get(f"/api/galleries/{gallery_id}").get_json()
        assert _membership_ids(after) == ids
