"""
Название: «Pinakoteka»
Язык: Python (Flask)
Краткое описание: веб-сервис для загрузки изображений и публикации галерей
с упорядоченным составом, тегами и ролями пользователей
"""

import os

import click
from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from config import Config
from extensions import db, login_manager, cors, babel
import models  # noqa: F401 - регистрирует модели для db.create_all()
from models.user import ROLE_ADMIN, User
from routes.auth import register_routes as register_auth_routes
from routes.galleries import register_routes as register_gallery_routes
from routes.images import register_routes as register_image_routes
from routes.users import register_routes as register_user_routes
from routes.e2e import register_routes as register_e2e_routes
from services.errors import Unauthorized
from utils.api import api_error, error_response
from utils.cleanup import cleanup_orphaned_uploads
from utils.csrf import SAFE_METHODS, is_csrf_valid
from utils.i18n import resolve_request_language
from utils.rate_limit import InMemoryRateLimiter


def create_app(config_object=Config) -> Flask:
    """Фабрика приложения, собирающая все модули воедино."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Инициализация расширений
    db.init_app(app)
    login_manager.init_app(app)

    def select_locale() -> str:
        return getattr(g, "lang", app.config["DEFAULT_LANGUAGE"])

    babel.init_app(app, locale_selector=select_locale)

    if app.config["CORS_ENABLED"]:
        cors.init_app(
            app,
            resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
            supports_credentials=True,
        )

    app.extensions["rate_limiter"] = InMemoryRateLimiter()

    # Гарантируем наличие служебных директорий
    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # Регистрация роутов по модулям
    register_auth_routes(app)
    register_gallery_routes(app)
    register_image_routes(app)
    register_user_routes(app)
    register_e2e_routes(app)

    with app.app_context():
        # Создаем отсутствующие таблицы (без изменения существующих колонок)
        db.create_all()

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return error_response(Unauthorized())

    @app.before_request
    def resolve_request_language_middleware():
        g.lang = resolve_request_language(
            request=request,
            supported_languages=app.config["SUPPORTED_LANGUAGES"],
            cookie_name=app.config["LANG_COOKIE_NAME"],
            default_language=app.config["DEFAULT_LANGUAGE"],
        )

    @app.before_request
    def enforce_csrf():
        if not app.config["CSRF_ENABLED"]:
            return None

        if request.method in SAFE_METHODS:
            return None

        if not request.path.startswith("/api/"):
            return None

        if is_csrf_valid():
            return None

        return api_error(
            "Недействительный CSRF-токен. Обновите страницу и повторите попытку.",
            403,
            kind="Forbidden",
        )

    @app.after_request
    def apply_security_headers(response):
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """Ошибки HTTP на маршрутах /api отдаются в JSON, как и ошибки сервисов."""
        if error.code is None or error.code < 400 or not request.path.startswith("/api/"):
            return error
        messages = {
            404: "Ресурс не найден",
            405: "Метод не поддерживается",
            413: "Файл слишком большой",
        }
        kinds = {404: "NotFound", 413: "ValidationError"}
        return api_error(
            messages.get(error.code, error.name),
            error.code,
            kind=kinds.get(error.code, "HTTPError"),
        )

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Назначает пользователю роль ADMIN."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            raise click.ClickException(f"Пользователь {email} не найден")
        user.role = ROLE_ADMIN
        db.session.commit()
        app.logger.info("Пользователь %s назначен администратором из CLI", user.id)
        click.echo(f"{user.email}: {user.role}")

    @app.cli.command("cleanup-uploads")
    @click.option("--days", type=int, default=None, help="Возраст файлов в днях.")
    def cleanup_uploads(days):
        """Удаляет старые загрузки, не связанные ни с одним изображением."""
        if days is None:
            days = app.config["UPLOAD_RETENTION_DAYS"]
        removed = cleanup_orphaned_uploads(days)
        click.echo(f"Удалено файлов: {removed}")

    return app


app = create_app()


if __name__ == "__main__":
    is_production = os.environ.get("FLASK_ENV", "").lower() == "production"
    app.run(debug=not is_production)
