"""
Модуль: `utils/cleanup.py`.
Назначение: Удаление пользовательского содержимого и очистка папки загрузок
от файлов, на которые не ссылается ни одно изображение.
"""

import os
import time
from datetime import timedelta

from flask import current_app

from extensions import db
from models.gallery import Gallery
from models.image import Image


def purge_user_content(user, delete_user: bool = False) -> dict:
    """Удаляет галереи (с участиями), изображения и, по флагу, самого пользователя.

    Фиксацию выполняет вызывающий код. Возвращает счётчики удалённых записей.
    """
    counts = {"galleries": 0, "galleryImages": 0, "images": 0, "user": 0}

    image_ids = [image.id for image in user.images]
    if image_ids:
        # SQLite не применяет ON DELETE SET NULL, поэтому обложки очищаем явно
        Gallery.query.filter(Gallery.cover_image_id.in_(image_ids)).update(
            {Gallery.cover_image_id: None}, synchronize_session="fetch"
        )

    deleted_memberships = set()
    with db.session.no_autoflush:
        for gallery in list(user.galleries):
            for membership in list(gallery.memberships):
                db.session.delete(membership)
                deleted_memberships.add(membership.id)
                counts["galleryImages"] += 1
            db.session.delete(gallery)
            counts["galleries"] += 1

        for image in list(user.images):
            for membership in list(image.memberships):
                if membership.id not in deleted_memberships:
                    db.session.delete(membership)
                    deleted_memberships.add(membership.id)
            db.session.delete(image)
            counts["images"] += 1

        if delete_user:
            db.session.delete(user)
            counts["user"] = 1

    return counts


def cleanup_orphaned_uploads(days: int = 7) -> int:
    """Удаляет файлы старше `days` дней, не связанные ни с одним изображением."""
    upload_folder = current_app.config["UPLOAD_FOLDER"]
    if not os.path.isdir(upload_folder):
        return 0

    prefix = current_app.config["UPLOAD_URL_PREFIX"].rstrip("/") + "/"
    referenced = {
        url[len(prefix):]
        for (url,) in db.session.query(Image.url).filter(Image.url.startswith(prefix)).all()
    }
    cutoff = time.time() - timedelta(days=days).total_seconds()

    removed = 0
    for filename in os.listdir(upload_folder):
        file_path = os.path.join(upload_folder, filename)
        if not os.path.isfile(file_path) or filename in referenced:
            continue
        if os.path.getmtime(file_path) >= cutoff:
            continue
        try:
            os.remove(file_path)
            removed += 1
        except OSError:
            current_app.logger.exception("Не удалось удалить файл %s", file_path)

    current_app.logger.info("Очистка загрузок: удалено %d файлов", removed)
    return removed
