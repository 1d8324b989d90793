"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: services/users.py – учётные записи и роли пользователей.

Назначение модуля:
- Регистрация и проверка пароля (werkzeug.security, scrypt).
- Просмотр и изменение профиля владельцем или администратором.
- Назначение роли ADMIN/USER только администратором.
- Удаление пользователя вместе с его галереями и изображениями.
"""

from __future__ import annotations

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from models.user import ROLE_ADMIN, ROLE_USER, User
from services.access import RequestContext, require_admin, require_self_or_admin
from services.errors import ConflictError, Forbidden, NotFoundError
from services.transaction import atomic
from services.validation import UNSET, RegisterInput, UpdateUserInput, UserQuery
from utils.api import pagination_meta
from utils.cleanup import purge_user_content


def _email_taken(email: str, exclude_user_id: str | None = None) -> bool:
    query = User.query.filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return db.session.query(query.exists()).scalar()


def _load_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Пользователь не найден")
    return user


def register_user(data: RegisterInput) -> User:
    if _email_taken(data.email):
        raise ConflictError("Пользователь с таким email уже существует")

    with atomic():
        user = User(
            name=data.name,
            email=data.email,
            password_hash=generate_password_hash(data.password, method="scrypt"),
            role=ROLE_USER,
        )
        db.session.add(user)

    current_app.logger.info("Зарегистрирован пользователь %s", user.id)
    return user


def authenticate(email: str, password: str) -> User | None:
    """Пользователь при верной паре email/пароль, иначе None."""
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None or not user.password_hash:
        return None
    if not check_password_hash(user.password_hash, password):
        return None
    return user


def get_user(ctx: RequestContext, user_id: str) -> User:
    require_self_or_admin(ctx, user_id)
    return _load_user(user_id)


def list_users(ctx: RequestContext, query: UserQuery) -> tuple[list[User], dict]:
    require_admin(ctx)

    filtered = User.query
    if query.search:
        pattern = f"%{query.search}%"
        filtered = filtered.filter(db.or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = filtered.count()
    items = (
        filtered.order_by(User.created_at.desc(), User.id.asc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    return items, pagination_meta(total, query.page, query.limit)


def update_user(ctx: RequestContext, user_id: str, data: UpdateUserInput) -> User:
    require_self_or_admin(ctx, user_id)
    user = _load_user(user_id)

    if data.email is not UNSET and _email_taken(data.email, exclude_user_id=user.id):
        raise ConflictError("Пользователь с таким email уже существует")

    with atomic():
        if data.name is not UNSET:
            user.name = data.name
        if data.email is not UNSET:
            user.email = data.email
        if data.image is not UNSET:
            user.image = data.image
    return user


def set_user_role(ctx: RequestContext, user_id: str, role: str | None = None) -> User:
    """Назначает роль; без явной роли переключает USER <-> ADMIN."""
    require_admin(ctx)
    user = _load_user(user_id)

    if role is None:
        role = ROLE_USER if user.role == ROLE_ADMIN else ROLE_ADMIN
    if user.id == ctx.user_id and role != ROLE_ADMIN:
        raise Forbidden("Нельзя снять права администратора с самого себя")

    with atomic():
        user.role = role

    current_app.logger.info("Пользователь %s получил роль %s (изменил %s)", user.id, role, ctx.user_id)
    return user


def delete_user(ctx: RequestContext, user_id: str) -> dict:
    """Удаляет галереи, изображения и саму учётную запись в одной транзакции."""
    require_self_or_admin(ctx, user_id)
    user = _load_user(user_id)

    with atomic():
        counts = purge_user_content(user, delete_user=True)

    current_app.logger.info("Пользователь %s удалён (инициатор %s): %s", user_id, ctx.user_id, counts)
    return counts
