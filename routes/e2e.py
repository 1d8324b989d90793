"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: routes/e2e.py – служебные маршруты для сквозных тестов.

Назначение модуля:
- Очистка данных тестового пользователя после прогона.
- Удаление тестовых учётных записей по email без аутентификации.

Маршруты отвечают 403, пока не включён флаг E2E_TEST_FEATURES.
"""

from flask import current_app, jsonify, request
from flask_login import current_user, logout_user

from models.user import User
from services.errors import Forbidden, Unauthorized, ValidationError
from services.transaction import atomic
from services.validation import normalize_email
from utils.api import api_handler, json_body, query_flag
from utils.cleanup import purge_user_content
from utils.rate_limit import enforce_rate_limit


def _require_test_features():
    if not current_app.config["E2E_TEST_FEATURES"]:
        current_app.logger.warning("Вызов тестового эндпоинта %s при выключенных тестовых функциях", request.path)
        raise Forbidden("Недоступно в этом окружении")


def _is_test_email(email: str) -> bool:
    return "e2e" in email or email == current_app.config["E2E_TEST_USER_EMAIL"]


def register_routes(app):
    @app.route("/api/e2e/cleanup", methods=["DELETE"])
    @api_handler
    def e2e_cleanup():
        _require_test_features()
        enforce_rate_limit("e2e_cleanup")

        if not current_user.is_authenticated:
            current_app.logger.warning("Очистка тестовых данных без аутентификации")
            raise Unauthorized()
        if current_user.email != current_app.config["E2E_TEST_USER_EMAIL"]:
            current_app.logger.warning("Попытка очистки данных не тестовым пользователем %s", current_user.id)
            raise Unauthorized()

        delete_user = query_flag("deleteUser")
        user = current_user._get_current_object()
        with atomic():
            counts = purge_user_content(user, delete_user=delete_user)
        if delete_user:
            logout_user()

        current_app.logger.info("Очистка тестовых данных завершена: %s", counts)
        return jsonify({"success": True, "deletedCount": counts})

    @app.route("/api/e2e/delete-user", methods=["DELETE", "POST"])
    @api_handler
    def e2e_delete_user():
        _require_test_features()

        data = json_body()
        email = normalize_email(data.get("email") if isinstance(data, dict) else None)
        if not email:
            raise ValidationError(issues=[{"path": "email", "message": "Введите корректный email"}])
        if not _is_test_email(email):
            current_app.logger.warning("Попытка удалить не тестового пользователя %s", email)
            raise Forbidden("Можно удалять только тестовых пользователей")

        user = User.query.filter_by(email=email).first()
        if user is None:
            return jsonify({"success": True, "deleted": False, "message": "Пользователь не найден"})

        with atomic():
            purge_user_content(user, delete_user=True)

        current_app.logger.info("Тестовый пользователь %s удалён", email)
        return jsonify({"success": True, "deleted": True, "email": email})
