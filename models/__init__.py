"""
Модуль: `models/__init__.py`.
Назначение: Импорт моделей для корректной регистрации в SQLAlchemy metadata.
"""

from .user import User
from .image import Image, Tag
from .gallery import Gallery, GalleryImage

__all__ = ["User", "Image", "Tag", "Gallery", "GalleryImage"]
