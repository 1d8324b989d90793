"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: models/image.py – модели изображения и тега.

Назначение модуля:
- ORM-модель Image: ссылка на сохранённый файл, заголовок, описание, владелец.
- ORM-модель Tag: глобально уникальное имя, общее для всех изображений.
- Таблица связи image_tags (многие-ко-многим).
"""

from extensions import db
from models.base import isoformat, new_id, utcnow

image_tags = db.Table(
    "image_tags",
    db.Column(
        "image_id",
        db.String(32),
        db.ForeignKey("image.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "tag_id",
        db.String(32),
        db.ForeignKey("tag.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Tag(db.Model):
    """Тег не имеет владельца и явно не удаляется (теги-сироты допустимы)."""
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(100), unique=True, nullable=False)

    images = db.relationship("Image", secondary=image_tags, back_populates="tags", lazy=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Image(db.Model):
    """Изображение, принадлежащее ровно одному пользователю."""
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    url = db.Column(db.String(500), nullable=False)
    user_id = db.Column(
        db.String(32),
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = db.relationship("User", back_populates="images")
    tags = db.relationship(
        "Tag",
        secondary=image_tags,
        back_populates="images",
        order_by="Tag.name",
        lazy="selectin",
    )
    # Участия в галереях удаляются вместе с изображением
    memberships = db.relationship(
        "GalleryImage",
        back_populates="image",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "userId": self.user_id,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "tags": [tag.to_dict() for tag in self.tags],
        }
