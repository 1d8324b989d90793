"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: models/gallery.py – модели галереи и участия изображения в галерее.

Назначение модуля:
- ORM-модель Gallery: заголовок, видимость, обложка и параметры оформления.
- ORM-модель GalleryImage: упорядоченное участие изображения в галерее
  с собственным идентификатором, отличным от идентификатора изображения.
"""

from extensions import db
from models.base import isoformat, new_id, utcnow

THEME_FIELDS = {
    "themeColor": "theme_color",
    "backgroundColor": "background_color",
    "backgroundImageUrl": "background_image_url",
    "accentColor": "accent_color",
    "fontFamily": "font_family",
    "displayMode": "display_mode",
    "layoutType": "layout_type",
}


class Gallery(db.Model):
    """Именованная упорядоченная коллекция изображений одного пользователя."""
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    user_id = db.Column(
        db.String(32),
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Слабая ссылка: обложка не владеет изображением
    cover_image_id = db.Column(
        db.String(32),
        db.ForeignKey("image.id", ondelete="SET NULL"),
        nullable=True,
    )
    theme_color = db.Column(db.String(50), nullable=True)
    background_color = db.Column(db.String(50), nullable=True)
    background_image_url = db.Column(db.String(500), nullable=True)
    accent_color = db.Column(db.String(50), nullable=True)
    font_family = db.Column(db.String(100), nullable=True)
    display_mode = db.Column(db.String(50), nullable=True)
    layout_type = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = db.relationship("User", back_populates="galleries")
    cover_image = db.relationship("Image", foreign_keys=[cover_image_id])
    memberships = db.relationship(
        "GalleryImage",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="GalleryImage.order",
        lazy=True,
    )

    def image_ids(self) -> set[str]:
        return {membership.image_id for membership in self.memberships}

    def to_dict(self, include_images: bool = True) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "isPublic": self.is_public,
            "userId": self.user_id,
            "coverImageId": self.cover_image_id,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        for key, attribute in THEME_FIELDS.items():
            data[key] = getattr(self, attribute)
        if self.owner is not None:
            data["user"] = {
                "id": self.owner.id,
                "name": self.owner.name,
                "image": self.owner.image,
            }
        if include_images:
            data["images"] = [
                membership.to_dict()
                for membership in sorted(self.memberships, key=lambda m: m.order)
            ]
        return data


class GalleryImage(db.Model):
    """Участие изображения в галерее: позиция показа и собственное описание."""
    __tablename__ = "gallery_image"
    __table_args__ = (db.UniqueConstraint("image_id", "gallery_id"),)

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    image_id = db.Column(
        db.String(32),
        db.ForeignKey("image.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gallery_id = db.Column(
        db.String(32),
        db.ForeignKey("gallery.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description = db.Column(db.Text, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    image = db.relationship("Image", back_populates="memberships")
    gallery = db.relationship("Gallery", back_populates="memberships")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "imageId": self.image_id,
            "galleryId": self.gallery_id,
            "description": self.description,
            "order": self.order,
            "image": self.image.to_dict() if self.image is not None else None,
        }
