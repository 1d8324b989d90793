"""HTTP-тесты служебных эндпоинтов для сквозных тестов и очистки загрузок."""

from __future__ import annotations

import os
import time

import pytest

from extensions import db
from models import Gallery, Image, User
from utils.cleanup import cleanup_orphaned_uploads


@pytest.fixture
def e2e_user(create_user):
    return create_user(email="e2e-test@example.com", name="E2E")


class TestE2eCleanup:
    """Test DELETE /api/e2e/cleanup."""

    def test_cleanup_keeps_account(self, app, login, e2e_user, create_image, create_gallery):
        image_id = create_image(e2e_user)
        create_gallery(e2e_user, [image_id])

        resp = login(e2e_user).delete("/api/e2e/cleanup")

        assert resp.status_code == 200
        assert resp.get_json()["deletedCount"] == {"galleries": 1, "galleryImages": 1, "images": 1, "user": 0}
        with app.app_context():
            assert db.session.get(User, e2e_user.id) is not None
            assert Image.query.count() == 0

    def test_cleanup_with_account(self, app, login, e2e_user):
        resp = login(e2e_user).delete("/api/e2e/cleanup?deleteUser=true")
        assert resp.get_json()["deletedCount"]["user"] == 1
        with app.app_context():
            assert db.session.get(User, e2e_user.id) is None

    def test_regular_user_rejected(self, app, login, owner, create_gallery):
        create_gallery(owner)
        resp = login(owner).delete("/api/e2e/cleanup")
        assert resp.status_code == 401
        with app.app_context():
            assert Gallery.query.count() == 1

    def test_anonymous_rejected(self, client):
        assert client.delete("/api/e2e/cleanup").status_code == 401


class TestE2eDeleteUser:
    """Test DELETE|POST /api/e2e/delete-user."""

    def test_deletes_test_account(self, app, client, create_user):
        user = create_user(email="run-42-e2e@example.com")
        resp = client.post("/api/e2e/delete-user", json={"email": user.email})
        assert resp.get_json()["deleted"] is True
        with app.app_context():
            assert db.session.get(User, user.id) is None

    def test_missing_account(self, client):
        resp = client.delete("/api/e2e/delete-user", json={"email": "gone-e2e@example.com"})
        assert resp.status_code == 200
        assert resp.get_json()["deleted"] is False

    def test_regular_account_protected(self, app, client, owner):
        resp = client.delete("/api/e2e/delete-user", json={"email": owner.email})
        assert resp.status_code == 403
        with app.app_context():
            assert db.session.get(User, owner.id) is not None

    def test_invalid_email(self, client):
        assert client.delete("/api/e2e/delete-user", json={"email": "nope"}).status_code == 400


class TestE2eDisabled:
    @pytest.fixture
    def config_overrides(self):
        return {"E2E_TEST_FEATURES": False}

    def test_endpoints_forbidden(self, client, create_user):
        create_user(email="e2e-test@example.com")
        assert client.delete("/api/e2e/delete-user", json={"email": "e2e-test@example.com"}).status_code == 403
        assert client.delete("/api/e2e/cleanup").status_code == 403


class TestCleanupOrphanedUploads:
    def _touch(self, folder, name, age_days):
        path = os.path.join(folder, name)
        with open(path, "wb") as handle:
            handle.write(b"x")
        stamp = time.time() - age_days * 86400
        os.utime(path, (stamp, stamp))
        return path

    def test_removes_only_old_unreferenced_files(self, app, owner, create_image):
        folder = app.config["UPLOAD_FOLDER"]
        referenced = self._touch(folder, "kept.png", 30)
        orphan_old = self._touch(folder, "orphan.png", 30)
        orphan_new = self._touch(folder, "fresh.png", 1)
        create_image(owner, url="/uploads/kept.png")

        with app.app_context():
            removed = cleanup_orphaned_uploads(days=7)

        assert removed == 1
        assert os.path.exists(referenced)
        assert not os.path.exists(orphan_old)
        assert os.path.exists(orphan_new)

    def test_cli_command(self, app):
        folder = app.config["UPLOAD_FOLDER"]
        orphan = self._touch(folder, "orphan.png", 10)

        result = app.test_cli_runner().invoke(args=["cleanup-uploads", "--days", "7"])

        assert result.exit_code == 0
        assert not os.path.exists(orphan)


class TestMakeAdminCommand:
    def test_promotes_user(self, app, owner):
        result = app.test_cli_runner().invoke(args=["make-admin", owner.email])
        assert result.exit_code == 0
        with app.app_context():
            assert db.session.get(User, owner.id).role == "ADMIN"

    def test_unknown_email(self, app):
        result = app.test_cli_runner().invoke(args=["make-admin", "ghost@example.com"])
        assert result.exit_code != 0
