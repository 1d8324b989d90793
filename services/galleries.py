"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: services/galleries.py – состав галерей и порядок изображений.

Назначение модуля:
- Создание и изменение галереи вместе с её составом в одной транзакции.
- Удаление изображения из галереи по идентификатору участия (не изображения).
- Перестановка изображений и поддержание плотного порядка 0..n-1.
- Согласованность обложки с составом галереи.

После любой успешной операции значения `order` участий галереи образуют
последовательность {0, 1, ..., n-1} без повторов и пропусков.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import selectinload

from extensions import db
from models.gallery import THEME_FIELDS, Gallery, GalleryImage
from models.image import Image
from services.access import (
    RequestContext,
    require_authenticated,
    require_gallery_visible,
    require_owner,
)
from services.errors import ConflictError, ForeignMembershipError, NotFoundError, ValidationError
from services.transaction import atomic
from services.validation import (
    UNSET,
    AddImagesInput,
    CreateGalleryInput,
    GalleryImageInput,
    UpdateGalleryInput,
)


def normalize_order(entries: list[GalleryImageInput]) -> list[tuple[GalleryImageInput, int]]:
    """Возвращает элементы с итоговой позицией.

    Элементы сортируются по явному `order`; элементы без порядка идут в конце
    в исходной последовательности. Затем позиции перенумеровываются с нуля,
    поэтому в базу всегда попадает плотная целочисленная последовательность.
    """
    indexed = list(enumerate(entries))
    indexed.sort(
        key=lambda pair: (
            pair[1].order is None,
            pair[1].order if pair[1].order is not None else 0,
            pair[0],
        )
    )
    return [(entry, position) for position, (_, entry) in enumerate(indexed)]


def compact_order(gallery: Gallery) -> None:
    """Перенумеровывает оставшиеся участия галереи без пропусков."""
    ordered = sorted(gallery.memberships, key=lambda m: m.order)
    for position, membership in enumerate(ordered):
        if membership.order != position:
            membership.order = position


def _ensure_images_owned(owner_id: str, image_ids: list[str]) -> None:
    if not image_ids:
        return
    found = {
        image_id
        for (image_id,) in db.session.query(Image.id)
        .filter(Image.id.in_(image_ids), Image.user_id == owner_id)
        .all()
    }
    missing = [image_id for image_id in image_ids if image_id not in found]
    if missing:
        raise ConflictError(
            "Изображения не найдены или принадлежат другому пользователю",
            details={"imageIds": missing},
        )


def _create_memberships(gallery: Gallery, entries: list[GalleryImageInput], start: int = 0) -> None:
    for entry, position in normalize_order(entries):
        gallery.memberships.append(
            GalleryImage(
                image_id=entry.image_id,
                description=entry.description,
                order=start + position,
            )
        )


def delete_membership(gallery: Gallery, membership: GalleryImage) -> None:
    if membership in gallery.memberships:
        gallery.memberships.remove(membership)
    db.session.delete(membership)


def _replace_memberships(gallery: Gallery, entries: list[GalleryImageInput]) -> None:
    """Удаляет все участия и создаёт новые: совпадающие id не переживают замену."""
    for membership in list(gallery.memberships):
        delete_membership(gallery, membership)
    # Удаления должны попасть в БД раньше вставок из-за уникальной пары (image_id, gallery_id)
    db.session.flush()
    _create_memberships(gallery, entries)


def _apply_theme(gallery: Gallery, theme: dict[str, str | None]) -> None:
    for key, value in theme.items():
        setattr(gallery, THEME_FIELDS[key], value)


def _load_owned_gallery(ctx: RequestContext, gallery_id: str) -> Gallery:
    require_authenticated(ctx)
    gallery = db.session.get(Gallery, gallery_id)
    if gallery is None:
        raise NotFoundError("Галерея не найдена")
    require_owner(ctx, gallery, "Нет прав на изменение этой галереи")
    return gallery


def create_gallery(ctx: RequestContext, data: CreateGalleryInput) -> Gallery:
    require_authenticated(ctx)

    image_ids = [entry.image_id for entry in data.images]
    _ensure_images_owned(ctx.user_id, image_ids)
    if data.cover_image_id is not None and data.cover_image_id not in image_ids:
        raise ConflictError("Обложка должна входить в состав галереи")

    with atomic():
        gallery = Gallery(
            title=data.title,
            description=data.description,
            is_public=data.is_public,
            user_id=ctx.user_id,
            cover_image_id=data.cover_image_id,
        )
        _apply_theme(gallery, data.theme)
        db.session.add(gallery)
        _create_memberships(gallery, data.images)

    current_app.logger.info(
        "Галерея %s создана пользователем %s (%d изображений)",
        gallery.id,
        ctx.user_id,
        len(image_ids),
    )
    return gallery


def update_gallery(ctx: RequestContext, gallery_id: str, data: UpdateGalleryInput) -> Gallery:
    gallery = _load_owned_gallery(ctx, gallery_id)

    if data.images is not None:
        new_image_ids = [entry.image_id for entry in data.images]
        _ensure_images_owned(gallery.user_id, new_image_ids)
        resulting_ids = set(new_image_ids)
    else:
        resulting_ids = gallery.image_ids()

    if (
        data.cover_image_id is not UNSET
        and data.cover_image_id is not None
        and data.cover_image_id not in resulting_ids
    ):
        raise ConflictError("Обложка должна входить в состав галереи")

    with atomic():
        if data.title is not UNSET:
            gallery.title = data.title
        if data.description is not UNSET:
            gallery.description = data.description
        if data.is_public is not UNSET:
            gallery.is_public = data.is_public
        _apply_theme(gallery, data.theme)

        if data.images is not None:
            _replace_memberships(gallery, data.images)

        if data.cover_image_id is not UNSET:
            gallery.cover_image_id = data.cover_image_id
        elif gallery.cover_image_id is not None and gallery.cover_image_id not in resulting_ids:
            gallery.cover_image_id = None

    return gallery


def add_images_to_gallery(ctx: RequestContext, gallery_id: str, data: AddImagesInput) -> Gallery:
    """Добавляет изображения в конец галереи."""
    gallery = _load_owned_gallery(ctx, gallery_id)

    image_ids = [entry.image_id for entry in data.images]
    duplicates = [image_id for image_id in image_ids if image_id in gallery.image_ids()]
    if duplicates:
        raise ConflictError(
            "Изображения уже есть в этой галерее",
            details={"imageIds": duplicates},
        )
    _ensure_images_owned(gallery.user_id, image_ids)

    with atomic():
        compact_order(gallery)
        _create_memberships(gallery, data.images, start=len(gallery.memberships))

    return gallery


def remove_image_from_gallery(ctx: RequestContext, gallery_id: str, membership_id: str) -> Gallery:
    """Удаляет ровно одно участие по его собственному идентификатору."""
    gallery = _load_owned_gallery(ctx, gallery_id)

    membership = db.session.get(GalleryImage, membership_id)
    if membership is None:
        raise NotFoundError("Изображение не найдено в галерее")
    if membership.gallery_id != gallery.id:
        raise ForeignMembershipError("Изображение не принадлежит этой галерее")

    with atomic():
        removed_image_id = membership.image_id
        delete_membership(gallery, membership)
        if gallery.cover_image_id == removed_image_id:
            gallery.cover_image_id = None
        compact_order(gallery)

    return gallery


def reorder_images(ctx: RequestContext, gallery_id: str, membership_ids: list[str]) -> Gallery:
    """Назначает каждому участию позицию в переданной последовательности.

    Набор идентификаторов должен совпадать с текущим составом галереи:
    частичная перестановка или чужие идентификаторы отклоняются целиком.
    """
    gallery = _load_owned_gallery(ctx, gallery_id)
    current = {membership.id: membership for membership in gallery.memberships}

    if len(set(membership_ids)) != len(membership_ids):
        raise ValidationError(
            "Идентификаторы участий повторяются",
            issues=[{"path": "images", "message": "Идентификатор указан дважды"}],
        )

    foreign = [membership_id for membership_id in membership_ids if membership_id not in current]
    if foreign:
        raise ValidationError(
            "Некоторых изображений нет в этой галерее: " + ", ".join(foreign),
            issues=[{"path": "images", "message": f"Чужой идентификатор {membership_id}"} for membership_id in foreign],
        )

    missing = [membership_id for membership_id in current if membership_id not in membership_ids]
    if missing:
        raise ValidationError(
            "Перестановка должна включать все изображения галереи",
            issues=[{"path": "images", "message": f"Отсутствует {membership_id}"} for membership_id in missing],
        )

    with atomic():
        for position, membership_id in enumerate(membership_ids):
            current[membership_id].order = position

    return gallery


def list_galleries(ctx: RequestContext, include_private: bool = False) -> list[Gallery]:
    """Публичные галереи и, по запросу, собственные закрытые; новые первыми."""
    query = Gallery.query.options(
        selectinload(Gallery.memberships).selectinload(GalleryImage.image).selectinload(Image.tags)
    )
    if include_private and ctx.is_authenticated:
        query = query.filter(db.or_(Gallery.is_public.is_(True), Gallery.user_id == ctx.user_id))
    else:
        query = query.filter(Gallery.is_public.is_(True))
    return query.order_by(Gallery.created_at.desc()).all()


def get_gallery(ctx: RequestContext, gallery_id: str) -> Gallery:
    gallery = db.session.get(Gallery, gallery_id)
    require_gallery_visible(ctx, gallery)
    return gallery


def delete_gallery(ctx: RequestContext, gallery_id: str) -> None:
    gallery = _load_owned_gallery(ctx, gallery_id)
    with atomic():
        # Участия удаляются каскадом вместе с галереей
        db.session.delete(gallery)
    current_app.logger.info("Галерея %s удалена пользователем %s", gallery_id, ctx.user_id)
