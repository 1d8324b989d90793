"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: routes/galleries.py – API-маршруты галерей.

Назначение модуля:
- Создание, просмотр, изменение и удаление галерей.
- Добавление изображений, удаление участия по его идентификатору
  и перестановка изображений внутри галереи.

Изменение чужой галереи отвечает 403 Forbidden: 401 остаётся за
запросами без входа в систему.
"""

from flask import jsonify

from services import galleries as gallery_service
from services.access import context_from_current_user, require_authenticated
from services.validation import (
    parse_add_images,
    parse_create_gallery,
    parse_reorder,
    parse_update_gallery,
)
from utils.api import api_handler, json_body, parse_or_raise, query_flag


def register_routes(app):
    @app.route("/api/galleries", methods=["POST"])
    @api_handler
    def create_gallery():
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_create_gallery, json_body())
        gallery = gallery_service.create_gallery(ctx, data)
        return jsonify({"success": True, "gallery": gallery.to_dict()}), 201

    @app.route("/api/galleries", methods=["GET"])
    @api_handler
    def list_galleries():
        ctx = context_from_current_user()
        galleries = gallery_service.list_galleries(ctx, include_private=query_flag("includePrivate"))
        return jsonify(
            {
                "success": True,
                "galleries": [gallery.to_dict() for gallery in galleries],
            }
        )

    @app.route("/api/galleries/<gallery_id>", methods=["GET"])
    @api_handler
    def get_gallery(gallery_id):
        gallery = gallery_service.get_gallery(context_from_current_user(), gallery_id)
        return jsonify({"success": True, "gallery": gallery.to_dict()})

    @app.route("/api/galleries/<gallery_id>", methods=["PATCH"])
    @api_handler
    def update_gallery(gallery_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_update_gallery, json_body())
        gallery = gallery_service.update_gallery(ctx, gallery_id, data)
        return jsonify({"success": True, "gallery": gallery.to_dict()})

    @app.route("/api/galleries/<gallery_id>", methods=["DELETE"])
    @api_handler
    def delete_gallery(gallery_id):
        gallery_service.delete_gallery(context_from_current_user(), gallery_id)
        return "", 204

    @app.route("/api/galleries/<gallery_id>/images", methods=["POST"])
    @api_handler
    def add_gallery_images(gallery_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_add_images, json_body())
        gallery = gallery_service.add_images_to_gallery(ctx, gallery_id, data)
        return jsonify({"success": True, "gallery": gallery.to_dict()})

    @app.route("/api/galleries/<gallery_id>/images/<membership_id>", methods=["DELETE"])
    @api_handler
    def remove_gallery_image(gallery_id, membership_id):
        gallery = gallery_service.remove_image_from_gallery(
            context_from_current_user(), gallery_id, membership_id
        )
        return jsonify({"success": True, "gallery": gallery.to_dict()})

    @app.route("/api/galleries/<gallery_id>/images/order", methods=["PATCH"])
    @api_handler
    def reorder_gallery_images(gallery_id):
        ctx = context_from_current_user()
        require_authenticated(ctx)
        data = parse_or_raise(parse_reorder, json_body())
        gallery = gallery_service.reorder_images(ctx, gallery_id, data.membership_ids)
        return jsonify({"success": True, "gallery": gallery.to_dict()})
