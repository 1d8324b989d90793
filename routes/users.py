"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: routes/users.py – API-маршруты пользователей.

Назначение модуля:
- Список пользователей и смена роли (только для администратора).
- Просмотр, изменение и удаление собственной учётной записи.
"""

from flask import current_app, jsonify, request
from flask_login import logout_user

from services import users as user_service
from services.access import context_from_current_user, require_authenticated
from services.validation import parse_role, parse_update_user, parse_user_query
from utils.api import api_handler, json_body, parse_or_raise


def register_routes(app):
    @app.route("/api/users", methods=["GET"])
    @api_handler
    def list_users():
        ctx = context_from_current_user()
        query = parse_or_raise(
            lambda args: parse_user_query(args, default_limit=current_app.config["USERS_PAGE_SIZE"]),
            request.args,
        )
        users, meta = user_service.list_users(ctx, query)
        return jsonify(
            {
                "success": True,
                "users": [user.to_dict(include_counts=True) for user in users],
                "meta": meta,
            }
        )

    @app.route("/api/users/<user_id>", methods=["GET"])
    @api_handler
    def get_user(user_id):
        user = user_service.get_user(context_from_current_user(), user_id)
        return jsonify({"success": True, "user": user.to_dict(include_counts=True)})

    @app.route("/api/users/<user_id>", methods=["PATCH"])
    @api_handler
    def update_user(user_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_update_user, json_body())
        user = user_service.update_user(ctx, user_id, data)
        return jsonify({"success": True, "user": user.to_dict()})

    @app.route("/api/users/<user_id>", methods=["DELETE"])
    @api_handler
    def delete_user(user_id):
        ctx = context_from_current_user()
        counts = user_service.delete_user(ctx, user_id)
        if ctx.user_id == user_id:
            logout_user()
        return jsonify({"success": True, "deletedCount": counts})

    @app.route("/api/users/<user_id>/admin", methods=["PUT"])
    @api_handler
    def set_user_role(user_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        # Пустое тело означает переключение роли
        data = parse_or_raise(parse_role, json_body())
        user = user_service.set_user_role(ctx, user_id, data.role)
        return jsonify({"success": True, "user": user.to_dict()})
