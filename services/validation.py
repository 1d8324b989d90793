"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: services/validation.py – проверка входных данных эндпоинтов.

Назначение модуля:
- Явные записи входных данных (dataclass) для каждого изменяющего эндпоинта.
- Функции `parse_*`, возвращающие пару `(запись, None)` при успехе
  или `(None, ValidationError)` при ошибке.
- Сырые словари запроса дальше этого модуля не передаются.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

from models.gallery import THEME_FIELDS
from models.user import ROLES
from services.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

IMAGE_SORT_FIELDS = {
    "createdAt": "created_at",
    "title": "title",
    "updatedAt": "updated_at",
}
SORT_DIRECTIONS = ("asc", "desc")
MAX_PAGE = 1_000_000
TAG_NAME_MAX_LENGTH = 100


class _Unset:
    """Маркер поля, отсутствующего в частичном обновлении."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


# ---------------------------------------------------------------------------
# Записи входных данных
# ---------------------------------------------------------------------------


@dataclass
class GalleryImageInput:
    """Элемент состава галереи: `image_id` – идентификатор изображения, не участия."""

    image_id: str
    description: str | None = None
    order: float | None = None


@dataclass
class CreateGalleryInput:
    title: str
    description: str | None = None
    is_public: bool = False
    theme: dict[str, str | None] = field(default_factory=dict)
    images: list[GalleryImageInput] = field(default_factory=list)
    cover_image_id: str | None = None


@dataclass
class UpdateGalleryInput:
    title: object = UNSET
    description: object = UNSET
    is_public: object = UNSET
    theme: dict[str, str | None] = field(default_factory=dict)
    cover_image_id: object = UNSET
    # None – состав не меняется; список (в т.ч. пустой) – полная замена
    images: list[GalleryImageInput] | None = None


@dataclass
class AddImagesInput:
    images: list[GalleryImageInput]


@dataclass
class ReorderInput:
    """Идентификаторы участий в новом порядке показа."""

    membership_ids: list[str]


@dataclass
class CreateImageInput:
    title: str
    url: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class UpdateImageInput:
    title: object = UNSET
    description: object = UNSET
    tags: list[str] | None = None


@dataclass
class ImageQuery:
    page: int = 1
    limit: int = 20
    tag: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_dir: str = "desc"
    ids: list[str] | None = None


@dataclass
class RegisterInput:
    name: str
    email: str
    password: str


@dataclass
class LoginInput:
    email: str
    password: str


@dataclass
class UpdateUserInput:
    name: object = UNSET
    email: object = UNSET
    image: object = UNSET


@dataclass
class RoleInput:
    """`role is None` означает переключение USER <-> ADMIN."""

    role: str | None = None


@dataclass
class UserQuery:
    page: int = 1
    limit: int = 10
    search: str | None = None


# ---------------------------------------------------------------------------
# Вспомогательные проверки
# ---------------------------------------------------------------------------


def _issue(path: str, message: str) -> dict:
    return {"path": path, "message": message}


def _result(record, issues: list[dict]):
    if issues:
        return None, ValidationError("Ошибка валидации", issues=issues)
    return record, None


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_url(value: str) -> bool:
    """Абсолютный http(s)-адрес или путь от корня сайта (/uploads/...)."""
    if value.startswith("/") and not value.startswith("//"):
        return True
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def normalize_email(value) -> str:
    if not isinstance(value, str):
        return ""
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        return ""
    return email


def _check_object(data, issues: list[dict]) -> bool:
    if not isinstance(data, dict):
        issues.append(_issue("", "Ожидался JSON-объект"))
        return False
    return True


def _title(value, path: str, issues: list[dict]) -> str | None:
    if not isinstance(value, str) or not value.strip():
        issues.append(_issue(path, "Заголовок не может быть пустым"))
        return None
    title = value.strip()
    if len(title) > 200:
        issues.append(_issue(path, "Заголовок не должен превышать 200 символов"))
        return None
    return title


def _optional_text(value, path: str, issues: list[dict]) -> str | None:
    if value is None or isinstance(value, str):
        return value
    issues.append(_issue(path, "Ожидалась строка или null"))
    return None


def _theme(data: dict, issues: list[dict]) -> dict[str, str | None]:
    theme = {}
    for key in THEME_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if value is not None and not isinstance(value, str):
            issues.append(_issue(key, "Ожидалась строка или null"))
            continue
        if key == "backgroundImageUrl" and value and not _is_url(value):
            issues.append(_issue(key, "Некорректный URL"))
            continue
        theme[key] = value
    return theme


def _gallery_images(raw, path: str, issues: list[dict]) -> list[GalleryImageInput]:
    if not isinstance(raw, list):
        issues.append(_issue(path, "Ожидался массив"))
        return []

    entries: list[GalleryImageInput] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        item_path = f"{path}.{index}"
        if not isinstance(item, dict):
            issues.append(_issue(item_path, "Ожидался объект"))
            continue

        image_id = item.get("id")
        if not isinstance(image_id, str) or not image_id:
            issues.append(_issue(f"{item_path}.id", "Требуется идентификатор изображения"))
            continue
        if image_id in seen:
            issues.append(_issue(f"{item_path}.id", "Изображение указано дважды"))
            continue
        seen.add(image_id)

        description = _optional_text(item.get("description"), f"{item_path}.description", issues)

        order = item.get("order")
        if order is not None and not _is_number(order):
            issues.append(_issue(f"{item_path}.order", "Порядок должен быть числом"))
            continue

        entries.append(GalleryImageInput(image_id=image_id, description=description, order=order))
    return entries


def _cover(value, issues: list[dict]) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        issues.append(_issue("coverImageId", "Ожидался идентификатор изображения или null"))
        return None
    return value


def _positive_int(raw, path: str, default: int, issues: list[dict], maximum: int | None = None) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        issues.append(_issue(path, "Ожидалось целое число"))
        return default
    if value < 1:
        issues.append(_issue(path, "Значение должно быть не меньше 1"))
        return default
    if maximum is not None and value > maximum:
        issues.append(_issue(path, f"Значение не должно превышать {maximum}"))
        return default
    return value


def _tag_names(raw, path: str, issues: list[dict]) -> list[str]:
    if not isinstance(raw, list) or not all(isinstance(tag, str) for tag in raw):
        issues.append(_issue(path, "Ожидался массив строк"))
        return []
    names: list[str] = []
    for index, tag in enumerate(raw):
        name = tag.strip()
        if len(name) > TAG_NAME_MAX_LENGTH:
            issues.append(_issue(f"{path}.{index}", f"Название тега не должно превышать {TAG_NAME_MAX_LENGTH} символов"))
        elif name and name not in names:
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Галереи
# ---------------------------------------------------------------------------


def parse_create_gallery(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    title = _title(data.get("title"), "title", issues)
    description = _optional_text(data.get("description"), "description", issues)

    is_public = data.get("isPublic", False)
    if not isinstance(is_public, bool):
        issues.append(_issue("isPublic", "Ожидалось логическое значение"))

    images = []
    if data.get("images") is not None:
        images = _gallery_images(data["images"], "images", issues)

    record = CreateGalleryInput(
        title=title or "",
        description=description,
        is_public=is_public is True,
        theme=_theme(data, issues),
        images=images,
        cover_image_id=_cover(data.get("coverImageId"), issues),
    )
    return _result(record, issues)


def parse_update_gallery(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    record = UpdateGalleryInput(theme=_theme(data, issues))

    if "title" in data:
        record.title = _title(data["title"], "title", issues)
    if "description" in data:
        record.description = _optional_text(data["description"], "description", issues)
    if "isPublic" in data:
        if isinstance(data["isPublic"], bool):
            record.is_public = data["isPublic"]
        else:
            issues.append(_issue("isPublic", "Ожидалось логическое значение"))
    if "coverImageId" in data:
        record.cover_image_id = _cover(data["coverImageId"], issues)
    if data.get("images") is not None:
        record.images = _gallery_images(data["images"], "images", issues)

    return _result(record, issues)


def parse_add_images(data):
    """Принимает `{"imageIds": [...]}` или `{"images": [{id, description?}]}`."""
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    if "imageIds" in data:
        raw_ids = data["imageIds"]
        if not isinstance(raw_ids, list):
            issues.append(_issue("imageIds", "Ожидался массив"))
            return _result(None, issues)
        raw = [{"id": image_id} for image_id in raw_ids]
        images = _gallery_images(raw, "imageIds", issues)
    else:
        images = _gallery_images(data.get("images"), "images", issues)

    if not issues and not images:
        issues.append(_issue("images", "Не выбрано ни одного изображения"))
    return _result(AddImagesInput(images=images), issues)


def parse_reorder(data):
    """Тело `{"images": [{"id": <membership id>, "order": int >= 0}]}`."""
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    raw = data.get("images")
    if not isinstance(raw, list):
        issues.append(_issue("images", "Ожидался массив"))
        return _result(None, issues)

    positioned: list[tuple[int, int, str]] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        item_path = f"images.{index}"
        if not isinstance(item, dict):
            issues.append(_issue(item_path, "Ожидался объект"))
            continue
        membership_id = item.get("id")
        order = item.get("order")
        if not isinstance(membership_id, str) or not membership_id:
            issues.append(_issue(f"{item_path}.id", "Требуется идентификатор участия"))
            continue
        if membership_id in seen:
            issues.append(_issue(f"{item_path}.id", "Идентификатор указан дважды"))
            continue
        if not isinstance(order, int) or isinstance(order, bool) or order < 0:
            issues.append(_issue(f"{item_path}.order", "Порядок должен быть целым числом >= 0"))
            continue
        seen.add(membership_id)
        positioned.append((order, index, membership_id))

    positioned.sort()
    return _result(ReorderInput(membership_ids=[entry[2] for entry in positioned]), issues)


# ---------------------------------------------------------------------------
# Изображения и теги
# ---------------------------------------------------------------------------


def parse_create_image(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    title = _title(data.get("title"), "title", issues)
    description = _optional_text(data.get("description"), "description", issues)

    url = data.get("url")
    if not isinstance(url, str) or not _is_url(url):
        issues.append(_issue("url", "Некорректный URL"))

    tags = []
    if data.get("tags") is not None:
        tags = _tag_names(data["tags"], "tags", issues)

    record = CreateImageInput(
        title=title or "",
        url=url if isinstance(url, str) else "",
        description=description,
        tags=tags,
    )
    return _result(record, issues)


def parse_update_image(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    record = UpdateImageInput()
    if "title" in data:
        record.title = _title(data["title"], "title", issues)
    if "description" in data:
        record.description = _optional_text(data["description"], "description", issues)
    if data.get("tags") is not None:
        record.tags = _tag_names(data["tags"], "tags", issues)
    return _result(record, issues)


def parse_tag_ids(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)
    tag_ids = data.get("tagIds")
    if not isinstance(tag_ids, list) or not all(isinstance(tag_id, str) for tag_id in tag_ids):
        issues.append(_issue("tagIds", "Ожидался массив идентификаторов"))
        return _result(None, issues)
    return _result(list(dict.fromkeys(tag_ids)), issues)


def parse_tag_name(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        issues.append(_issue("name", "Название тега не может быть пустым"))
        return _result(None, issues)
    if len(name.strip()) > TAG_NAME_MAX_LENGTH:
        issues.append(_issue("name", f"Название тега не должно превышать {TAG_NAME_MAX_LENGTH} символов"))
    return _result(name.strip(), issues)


def parse_image_query(args, default_limit: int = 20, max_limit: int = 100):
    """Разбирает параметры `GET /api/images` (строки из query string)."""
    issues: list[dict] = []
    query = ImageQuery(
        page=_positive_int(args.get("page"), "page", 1, issues, maximum=MAX_PAGE),
        limit=_positive_int(args.get("limit"), "limit", default_limit, issues, maximum=max_limit),
        tag=(args.get("tag") or "").strip() or None,
        search=(args.get("searchQuery") or "").strip() or None,
    )

    sort_by = args.get("sortBy") or "createdAt"
    if sort_by not in IMAGE_SORT_FIELDS:
        issues.append(_issue("sortBy", "Недопустимое поле сортировки"))
    else:
        query.sort_by = IMAGE_SORT_FIELDS[sort_by]

    sort_dir = args.get("sortDir") or "desc"
    if sort_dir not in SORT_DIRECTIONS:
        issues.append(_issue("sortDir", "Недопустимое направление сортировки"))
    else:
        query.sort_dir = sort_dir

    raw_ids = args.get("ids")
    if raw_ids:
        ids = [image_id.strip() for image_id in raw_ids.split(",") if image_id.strip()]
        if len(ids) > max_limit:
            issues.append(_issue("ids", f"Можно запросить не более {max_limit} изображений"))
        elif ids:
            query.ids = ids
            # Выборка конкретных изображений возвращается одной страницей
            query.limit = len(ids)
            query.page = 1

    return _result(query, issues)


# ---------------------------------------------------------------------------
# Пользователи
# ---------------------------------------------------------------------------


def parse_register(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    name = data.get("name")
    if not isinstance(name, str) or len(name.strip()) < 2:
        issues.append(_issue("name", "Имя должно содержать минимум 2 символа"))
    elif len(name.strip()) > 120:
        issues.append(_issue("name", "Имя не должно превышать 120 символов"))

    email = normalize_email(data.get("email"))
    if not email:
        issues.append(_issue("email", "Введите корректный email"))

    password = data.get("password")
    if not isinstance(password, str) or len(password) < 8:
        issues.append(_issue("password", "Пароль должен содержать минимум 8 символов"))
    elif len(password) > 128:
        issues.append(_issue("password", "Пароль не должен превышать 128 символов"))

    if issues:
        return _result(None, issues)
    return _result(RegisterInput(name=name.strip(), email=email, password=password), issues)


def parse_login(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)
    email = data.get("email")
    password = data.get("password")
    if not isinstance(email, str) or not email.strip():
        issues.append(_issue("email", "Укажите email"))
    if not isinstance(password, str) or not password:
        issues.append(_issue("password", "Укажите пароль"))
    if issues:
        return _result(None, issues)
    return _result(LoginInput(email=email.strip().lower(), password=password), issues)


def parse_update_user(data):
    issues: list[dict] = []
    if not _check_object(data, issues):
        return _result(None, issues)

    record = UpdateUserInput()
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            issues.append(_issue("name", "Имя не может быть пустым"))
        else:
            record.name = name.strip()
    if "email" in data:
        email = normalize_email(data["email"])
        if not email:
            issues.append(_issue("email", "Введите корректный email"))
        else:
            record.email = email
    if "image" in data:
        image = data["image"]
        if image is not None and (not isinstance(image, str) or not _is_url(image)):
            issues.append(_issue("image", "Некорректный URL"))
        else:
            record.image = image
    return _result(record, issues)


def parse_role(data):
    issues: list[dict] = []
    if data is None:
        return _result(RoleInput(), issues)
    if not _check_object(data, issues):
        return _result(None, issues)
    role = data.get("role")
    if role is not None and role not in ROLES:
        issues.append(_issue("role", "Допустимые роли: USER, ADMIN"))
    return _result(RoleInput(role=role), issues)


def parse_user_query(args, default_limit: int = 10, max_limit: int = 100):
    issues: list[dict] = []
    query = UserQuery(
        page=_positive_int(args.get("page"), "page", 1, issues, maximum=MAX_PAGE),
        limit=_positive_int(args.get("limit"), "limit", default_limit, issues, maximum=max_limit),
        search=(args.get("search") or "").strip() or None,
    )
    return _result(query, issues)
