"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: services/images.py – изображения, теги и загрузка файлов.

Назначение модуля:
- CRUD изображений владельца с тегами (теги создаются при первом использовании).
- Постраничная выборка с фильтром по тегу, поиском и сортировкой.
- Удаление изображения без висячих ссылок из галерей (обложка и участия).
- Проверка загружаемого файла через Pillow и сохранение в папку загрузок.
"""

from __future__ import annotations

import os
import uuid

from PIL import Image as PILImage, UnidentifiedImageError
from flask import current_app

from extensions import db
from models.base import utcnow
from models.gallery import Gallery
from models.image import Image, Tag
from services.access import RequestContext, require_authenticated, require_owner
from services.errors import ConflictError, NotFoundError, ValidationError
from services.galleries import compact_order, delete_membership
from services.transaction import atomic
from services.validation import UNSET, CreateImageInput, ImageQuery, UpdateImageInput
from utils.api import pagination_meta

FORMAT_TO_EXTENSION = {"jpeg": "jpg", "png": "png", "webp": "webp", "gif": "gif"}


# ---------------------------------------------------------------------------
# Теги
# ---------------------------------------------------------------------------


def get_or_create_tags(names: list[str]) -> list[Tag]:
    """Находит существующие теги по имени и создаёт недостающие одним пакетом."""
    if not names:
        return []

    existing = {tag.name: tag for tag in Tag.query.filter(Tag.name.in_(names)).all()}
    tags = []
    for name in names:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            db.session.add(tag)
            existing[name] = tag
        tags.append(tag)

    # Новые теги получают идентификаторы до привязки к изображению
    db.session.flush()
    return tags


def list_tags(ctx: RequestContext) -> list[dict]:
    """Теги, которыми помечены изображения вызывающего, с числом изображений."""
    require_authenticated(ctx)
    rows = (
        db.session.query(Tag, db.func.count(Image.id))
        .join(Tag.images)
        .filter(Image.user_id == ctx.user_id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
        .all()
    )
    return [dict(tag.to_dict(), _count={"images": count}) for tag, count in rows]


def create_tag(ctx: RequestContext, name: str) -> tuple[Tag, bool]:
    """Возвращает `(тег, создан_ли)`; существующий тег с тем же именем переиспользуется."""
    require_authenticated(ctx)
    tag = Tag.query.filter_by(name=name).first()
    if tag is not None:
        return tag, False

    with atomic():
        tag = Tag(name=name)
        db.session.add(tag)
    current_app.logger.info("Создан тег %s пользователем %s", name, ctx.user_id)
    return tag, True


# ---------------------------------------------------------------------------
# Изображения
# ---------------------------------------------------------------------------


def _load_owned_image(ctx: RequestContext, image_id: str) -> Image:
    require_authenticated(ctx)
    image = db.session.get(Image, image_id)
    if image is None:
        raise NotFoundError("Изображение не найдено")
    require_owner(ctx, image, "Нет прав на это изображение")
    return image


def create_image(ctx: RequestContext, data: CreateImageInput) -> Image:
    require_authenticated(ctx)
    with atomic():
        image = Image(
            title=data.title,
            description=data.description,
            url=data.url,
            user_id=ctx.user_id,
        )
        image.tags = get_or_create_tags(data.tags)
        db.session.add(image)
    current_app.logger.info("Изображение %s создано пользователем %s", image.id, ctx.user_id)
    return image


def get_image(ctx: RequestContext, image_id: str) -> Image:
    return _load_owned_image(ctx, image_id)


def list_images(ctx: RequestContext, query: ImageQuery) -> tuple[list[Image], dict]:
    require_authenticated(ctx)

    filtered = Image.query.filter(Image.user_id == ctx.user_id)
    if query.tag:
        filtered = filtered.filter(Image.tags.any(Tag.name == query.tag))
    if query.search:
        pattern = f"%{query.search}%"
        filtered = filtered.filter(
            db.or_(Image.title.ilike(pattern), Image.description.ilike(pattern))
        )
    if query.ids:
        filtered = filtered.filter(Image.id.in_(query.ids))

    total = filtered.count()
    column = getattr(Image, query.sort_by)
    ordering = column.asc() if query.sort_dir == "asc" else column.desc()
    items = (
        filtered.order_by(ordering, Image.id.asc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    return items, pagination_meta(total, query.page, query.limit)


def update_image(ctx: RequestContext, image_id: str, data: UpdateImageInput) -> Image:
    image = _load_owned_image(ctx, image_id)
    with atomic():
        if data.title is not UNSET:
            image.title = data.title
        if data.description is not UNSET:
            image.description = data.description
        if data.tags is not None:
            image.tags = get_or_create_tags(data.tags)
    return image


def set_image_tags(ctx: RequestContext, image_id: str, tag_ids: list[str]) -> Image:
    """Заменяет набор тегов изображения существующими тегами по их id."""
    image = _load_owned_image(ctx, image_id)
    tags = Tag.query.filter(Tag.id.in_(tag_ids)).all() if tag_ids else []
    unknown = sorted(set(tag_ids) - {tag.id for tag in tags})
    if unknown:
        raise ValidationError(
            "Некоторые теги не найдены",
            issues=[{"path": "tagIds", "message": f"Неизвестный тег {tag_id}"} for tag_id in unknown],
        )
    with atomic():
        image.tags = tags
    return image


def _usage(image: Image) -> list[dict]:
    covers = Gallery.query.filter(Gallery.cover_image_id == image.id).all()
    cover_ids = {gallery.id for gallery in covers}

    galleries: dict[str, Gallery] = {}
    for membership in image.memberships:
        galleries[membership.gallery.id] = membership.gallery
    for gallery in covers:
        galleries.setdefault(gallery.id, gallery)

    return [
        {"id": gallery.id, "title": gallery.title, "isCover": gallery.id in cover_ids}
        for gallery in galleries.values()
    ]


def image_usage(ctx: RequestContext, image_id: str) -> list[dict]:
    """Галереи, в которые входит изображение или где оно служит обложкой."""
    return _usage(_load_owned_image(ctx, image_id))


def delete_image(ctx: RequestContext, image_id: str, force: bool = False) -> None:
    """Удаляет изображение.

    Если изображение используется в галереях и `force` не задан, возвращается
    ConflictError со списком галерей. Иначе в одной транзакции очищаются
    обложки, удаляются участия (с перенумерацией оставшихся) и сама запись.
    Файл удаляется из папки загрузок после фиксации транзакции.
    """
    image = _load_owned_image(ctx, image_id)
    usage = _usage(image)
    if usage and not force:
        raise ConflictError(
            "Изображение используется в галереях",
            details={"warning": "Image is used in galleries", "galleries": usage},
        )

    url = image.url
    with atomic():
        for gallery in Gallery.query.filter(Gallery.cover_image_id == image.id).all():
            gallery.cover_image_id = None

        affected: dict[str, Gallery] = {}
        for membership in list(image.memberships):
            gallery = membership.gallery
            delete_membership(gallery, membership)
            affected[gallery.id] = gallery
        for gallery in affected.values():
            compact_order(gallery)

        db.session.delete(image)

    current_app.logger.info("Изображение %s удалено пользователем %s", image_id, ctx.user_id)
    _remove_stored_file(url)


def _remove_stored_file(url: str) -> None:
    prefix = current_app.config["UPLOAD_URL_PREFIX"].rstrip("/") + "/"
    if not url.startswith(prefix):
        return

    file_path = os.path.join(current_app.config["UPLOAD_FOLDER"], os.path.basename(url))
    try:
        if os.path.exists(file_path):
            os.remove(file_path)
    except OSError:
        # Запись уже удалена; осиротевший файл подберёт cleanup-uploads
        current_app.logger.exception("Не удалось удалить файл %s", file_path)


# ---------------------------------------------------------------------------
# Загрузка файлов
# ---------------------------------------------------------------------------


def _allowed_file(filename: str) -> bool:
    return (
        "." in filename
        and filename.rsplit(".", 1)[1].lower() in current_app.config["ALLOWED_EXTENSIONS"]
    )


def _validate_uploaded_image(file_storage):
    """Возвращает `(расширение, None)` или `(None, ValidationError)`."""
    invalid = ValidationError("Файл не является корректным изображением")

    file_storage.stream.seek(0)
    try:
        with PILImage.open(file_storage.stream) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, PILImage.DecompressionBombError):
        return None, invalid
    finally:
        file_storage.stream.seek(0)

    try:
        with PILImage.open(file_storage.stream) as image:
            image_format = (image.format or "").lower()
            width, height = image.size
    except (UnidentifiedImageError, OSError, PILImage.DecompressionBombError):
        return None, invalid
    finally:
        file_storage.stream.seek(0)

    if image_format not in current_app.config["ALLOWED_IMAGE_FORMATS"]:
        return None, ValidationError("Недопустимый формат изображения")

    if width * height > current_app.config["MAX_IMAGE_PIXELS"]:
        return None, ValidationError("Изображение слишком большое по разрешению")

    return FORMAT_TO_EXTENSION[image_format], None


def save_upload(file_storage) -> str:
    """Сохраняет файл под уникальным именем и возвращает его публичный URL."""
    if file_storage is None:
        raise ValidationError("Файл не был загружен")
    if not file_storage.filename:
        raise ValidationError("Файл не выбран")
    if not _allowed_file(file_storage.filename):
        raise ValidationError("Недопустимый тип файла")

    extension, error = _validate_uploaded_image(file_storage)
    if error is not None:
        raise error

    timestamp = utcnow().strftime("%Y%m%d_%H%M%S")
    unique_filename = f"{timestamp}_{uuid.uuid4().hex[:12]}.{extension}"
    upload_folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_folder, exist_ok=True)
    file_storage.save(os.path.join(upload_folder, unique_filename))

    return f"{current_app.config['UPLOAD_URL_PREFIX'].rstrip('/')}/{unique_filename}"
