"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: models/user.py – модель пользователя системы.

Назначение модуля:
- Описание ORM-модели User (email, хеш пароля, роль USER/ADMIN).
- Связи с изображениями и галереями пользователя с каскадным удалением.
"""

from flask_login import UserMixin

from extensions import db
from models.base import isoformat, new_id, utcnow

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(UserMixin, db.Model):
    """Учётная запись пользователя."""
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(254), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    image = db.Column(db.String(500), nullable=True)
    role = db.Column(db.String(10), nullable=False, default=ROLE_USER)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    images = db.relationship(
        "Image",
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy=True,
    )
    galleries = db.relationship(
        "Gallery",
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self, include_counts: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "image": self.image,
            "role": self.role,
            "createdAt": isoformat(self.created_at),
        }
        if include_counts:
            data["_count"] = {
                "images": len(self.images),
                "galleries": len(self.galleries),
            }
        return data
