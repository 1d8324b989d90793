"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: routes/auth.py – маршруты аутентификации и управления сессиями.

Назначение модуля:
- Регистрация новых пользователей по email и паролю.
- Вход и выход из системы с использованием Flask-Login.
- Выдача CSRF-токена и сведений о текущей сессии.
- Загрузка пользователя по идентификатору для управления сессией.
"""

from flask import current_app, jsonify, session
from flask_login import current_user, login_required, login_user, logout_user

from extensions import db, login_manager
from models.user import User
from services import users as user_service
from services.errors import Forbidden, Unauthorized
from services.validation import parse_login, parse_register
from utils.api import api_handler, json_body, parse_or_raise
from utils.csrf import ensure_csrf_token
from utils.rate_limit import enforce_rate_limit


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, user_id)


def register_routes(app):
    @app.route("/api/auth/csrf", methods=["GET"])
    def csrf_token():
        return jsonify({"success": True, "csrfToken": ensure_csrf_token()})

    @app.route("/api/auth/register", methods=["POST"])
    @api_handler
    def register():
        enforce_rate_limit("register")
        if not current_app.config["ENABLE_REGISTRATION"]:
            raise Forbidden("Регистрация отключена")

        data = parse_or_raise(parse_register, json_body())
        user = user_service.register_user(data)
        return jsonify({"success": True, "user": user.to_dict()}), 201

    @app.route("/api/auth/login", methods=["POST"])
    @api_handler
    def login():
        enforce_rate_limit("login_ip")
        data = parse_or_raise(parse_login, json_body())
        enforce_rate_limit("login_user", identity=data.email)

        user = user_service.authenticate(data.email, data.password)
        if user is None:
            raise Unauthorized("Неверный email или пароль")

        login_user(user)
        # Новый токен после входа: старый мог быть получен до аутентификации
        session.pop("csrf_token", None)
        return jsonify({"success": True, "user": user.to_dict(), "csrfToken": ensure_csrf_token()})

    @app.route("/api/auth/logout", methods=["POST"])
    @login_required
    def logout():
        logout_user()
        session.pop("csrf_token", None)
        return jsonify({"success": True})

    @app.route("/api/auth/session", methods=["GET"])
    def current_session():
        if not current_user.is_authenticated:
            return jsonify({"success": True, "user": None})
        return jsonify({"success": True, "user": current_user.to_dict()})
