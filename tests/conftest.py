"""Общие pytest-фикстуры для тестов Pinakoteka."""

import os
import shutil
import tempfile
from types import SimpleNamespace

# Окружение задаётся до импорта приложения: app.py создаёт экземпляр при импорте
_IMPORT_UPLOAD_DIR = tempfile.mkdtemp(prefix="pinakoteka-tests-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_FOLDER"] = _IMPORT_UPLOAD_DIR

import pytest  # noqa: E402
from werkzeug.security import generate_password_hash  # noqa: E402

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from extensions import db  # noqa: E402
from models import Gallery, GalleryImage, Image, User  # noqa: E402
from models.user import ROLE_ADMIN, ROLE_USER  # noqa: E402
from services.access import RequestContext  # noqa: E402

DEFAULT_PASSWORD = "password123"


class TestingConfig(Config):
    """Конфигурация тестов: БД в памяти, CSRF выключен, тестовые эндпоинты включены."""

    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CSRF_ENABLED = False
    RATE_LIMIT_ENABLED = True
    AUTH_RATE_LIMIT = 10
    AUTH_RATE_LIMIT_WINDOW = 60
    E2E_TEST_FEATURES = True
    E2E_TEST_USER_EMAIL = "e2e-test@example.com"
    LOG_LEVEL = "WARNING"


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_IMPORT_UPLOAD_DIR, ignore_errors=True)


@pytest.fixture
def config_overrides():
    """Переопределения конфигурации для отдельного теста (словарь атрибутов)."""
    return {}


@pytest.fixture
def app(tmp_path, config_overrides):
    """Новое приложение с пустой БД в памяти и собственной папкой загрузок."""
    attributes = {"UPLOAD_FOLDER": str(tmp_path / "uploads")}
    attributes.update(config_overrides)
    config_class = type("PerTestConfig", (TestingConfig,), attributes)

    application = create_app(config_class)
    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    """Контекст приложения для тестов сервисного слоя."""
    with app.app_context():
        yield app
        db.session.rollback()


@pytest.fixture
def create_user(app):
    """Фабрика пользователей; возвращает простые значения, а не ORM-объекты."""

    def _create(email="owner@example.com", name="Owner", password=DEFAULT_PASSWORD, role=ROLE_USER):
        with app.app_context():
            user = User(
                name=name,
                email=email,
                password_hash=generate_password_hash(password, method="scrypt"),
                role=role,
            )
            db.session.add(user)
            db.session.commit()
            return SimpleNamespace(id=user.id, email=email, password=password, role=role)

    return _create


@pytest.fixture
def create_image(app):
    def _create(owner, title="Закат", url=None, description=None):
        with app.app_context():
            image = Image(
                title=title,
                description=description,
                url=url or f"/uploads/{title}.png",
                user_id=owner.id,
            )
            db.session.add(image)
            db.session.commit()
            return image.id

    return _create


@pytest.fixture
def create_gallery(app):
    """Галерея с участиями в порядке переданного списка id изображений."""

    def _create(owner, image_ids=(), title="Галерея", is_public=True, cover_image_id=None):
        with app.app_context():
            gallery = Gallery(
                title=title,
                user_id=owner.id,
                is_public=is_public,
                cover_image_id=cover_image_id,
            )
            for position, image_id in enumerate(image_ids):
                gallery.memberships.append(GalleryImage(image_id=image_id, order=position))
            db.session.add(gallery)
            db.session.commit()
            return gallery.id

    return _create


@pytest.fixture
def owner(create_user):
    return create_user()


@pytest.fixture
def other_user(create_user):
    return create_user(email="other@example.com", name="Other")


@pytest.fixture
def admin(create_user):
    return create_user(email="admin@example.com", name="Admin", role=ROLE_ADMIN)


@pytest.fixture
def login(app):
    """Возвращает функцию, создающую отдельный клиент с сессией пользователя."""

    def _login(user):
        user_client = app.test_client()
        response = user_client.post(
            "/api/auth/login",
            json={"email": user.email, "password": user.password},
        )
        assert response.status_code == 200, response.get_json()
        return user_client

    return _login


@pytest.fixture
def ctx_for():
    def _ctx(user):
        return RequestContext(user_id=user.id, role=user.role)

    return _ctx


@pytest.fixture
def membership_orders(app):
    """Пары (image_id, order) участий галереи по возрастанию order."""

    def _orders(gallery_id):
        with app.app_context():
            rows = (
                GalleryImage.query.filter_by(gallery_id=gallery_id)
                .order_by(GalleryImage.order.asc())
                .all()
            )
            return [(row.image_id, row.order) for row in rows]

    return _orders
