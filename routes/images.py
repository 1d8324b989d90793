"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: routes/images.py – API-маршруты изображений, тегов и загрузки файлов.

Назначение модуля:
- Загрузка файла изображения и выдача сохранённых файлов.
- CRUD изображений текущего пользователя, список с пагинацией.
- Сведения об использовании изображения в галереях перед удалением.
- Список и создание тегов.
"""

from flask import current_app, jsonify, request, send_from_directory
from flask_login import current_user, login_required

from services import images as image_service
from services.access import context_from_current_user, require_authenticated
from services.validation import (
    parse_create_image,
    parse_image_query,
    parse_tag_ids,
    parse_tag_name,
    parse_update_image,
)
from utils.api import api_handler, json_body, parse_or_raise, query_flag
from utils.rate_limit import enforce_rate_limit


def register_routes(app):
    @app.route("/api/upload", methods=["POST"])
    @login_required
    @api_handler
    def upload_image_file():
        """Сохраняет файл и возвращает его URL; запись Image создаётся отдельно."""
        enforce_rate_limit("upload", limit=40, window_seconds=10 * 60, identity=current_user.id)
        url = image_service.save_upload(request.files.get("file"))
        current_app.logger.info("Пользователь %s загрузил файл %s", current_user.id, url)
        return jsonify({"success": True, "url": url})

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)

    @app.route("/api/images", methods=["POST"])
    @api_handler
    def create_image():
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_create_image, json_body())
        image = image_service.create_image(ctx, data)
        return jsonify({"success": True, "image": image.to_dict()}), 201

    @app.route("/api/images", methods=["GET"])
    @api_handler
    def list_images():
        ctx = context_from_current_user()
        require_authenticated(ctx)
        query = parse_or_raise(
            lambda args: parse_image_query(
                args,
                default_limit=current_app.config["IMAGES_PAGE_SIZE"],
                max_limit=current_app.config["IMAGES_MAX_PAGE_SIZE"],
            ),
            request.args,
        )
        items, meta = image_service.list_images(ctx, query)
        return jsonify(
            {
                "success": True,
                "images": [image.to_dict() for image in items],
                "meta": meta,
            }
        )

    @app.route("/api/images/<image_id>", methods=["GET"])
    @api_handler
    def get_image(image_id):
        image = image_service.get_image(context_from_current_user(), image_id)
        return jsonify({"success": True, "image": image.to_dict()})

    @app.route("/api/images/<image_id>", methods=["PATCH"])
    @api_handler
    def update_image(image_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_update_image, json_body())
        image = image_service.update_image(ctx, image_id, data)
        return jsonify({"success": True, "image": image.to_dict()})

    @app.route("/api/images/<image_id>", methods=["DELETE"])
    @api_handler
    def delete_image(image_id):
        image_service.delete_image(context_from_current_user(), image_id, force=query_flag("force"))
        return jsonify({"success": True, "message": "Изображение удалено"})

    @app.route("/api/images/<image_id>/usage", methods=["GET"])
    @api_handler
    def image_usage(image_id):
        galleries = image_service.image_usage(context_from_current_user(), image_id)
        return jsonify({"success": True, "inUse": bool(galleries), "galleries": galleries})

    @app.route("/api/images/<image_id>/tags", methods=["PATCH"])
    @api_handler
    def set_image_tags(image_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        tag_ids = parse_or_raise(parse_tag_ids, json_body())
        image = image_service.set_image_tags(ctx, image_id, tag_ids)
        return jsonify({"success": True, "image": image.to_dict()})

    @app.route("/api/tags", methods=["GET"])
    @api_handler
    def list_tags():
        tags = image_service.list_tags(context_from_current_user())
        return jsonify({"success": True, "tags": tags})

    @app.route("/api/tags", methods=["POST"])
    @api_handler
    def create_tag():
        ctx = context_from_current_user()
        require_authenticated(ctx)
        name = parse_or_raise(parse_tag_name, json_body())
        tag, created = image_service.create_tag(ctx, name)
        return jsonify({"success": True, "tag": tag.to_dict()}), 201 if created else 200
