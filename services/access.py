"""
Модуль: `services/access.py`.
Назначение: Контекст запроса и проверки доступа (владение, видимость, роль).

Контекст строится один раз на запрос из текущей сессии Flask-Login и явно
передаётся в каждую операцию сервисного слоя. Решения не кешируются.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask_login import current_user

from models.user import ROLE_ADMIN
from services.errors import Forbidden, NotFoundError, Unauthorized


@dataclass(frozen=True)
class RequestContext:
    """Идентичность вызывающего: `user_id is None` для анонимного запроса."""

    user_id: str | None = None
    role: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == ROLE_ADMIN


ANONYMOUS = RequestContext()


def context_from_current_user() -> RequestContext:
    if not current_user.is_authenticated:
        return ANONYMOUS
    return RequestContext(user_id=current_user.id, role=current_user.role)


def can_view_gallery(ctx: RequestContext, gallery) -> bool:
    return bool(gallery.is_public) or (ctx.is_authenticated and gallery.user_id == ctx.user_id)


def require_authenticated(ctx: RequestContext) -> None:
    if not ctx.is_authenticated:
        raise Unauthorized()


def require_owner(ctx: RequestContext, resource, message: str = "Нет прав на изменение этого ресурса") -> None:
    """Изменять и удалять ресурс может только его владелец."""
    require_authenticated(ctx)
    if resource.user_id != ctx.user_id:
        raise Forbidden(message)


def require_admin(ctx: RequestContext) -> None:
    require_authenticated(ctx)
    if not ctx.is_admin:
        raise Forbidden("Требуются права администратора")


def require_self_or_admin(ctx: RequestContext, user_id: str) -> None:
    require_authenticated(ctx)
    if ctx.user_id != user_id and not ctx.is_admin:
        raise Forbidden()


def require_gallery_visible(ctx: RequestContext, gallery) -> None:
    """Закрытая галерея недоступна никому, кроме владельца."""
    if gallery is None:
        raise NotFoundError("Галерея не найдена")
    if can_view_gallery(ctx, gallery):
        return
    if not ctx.is_authenticated:
        raise Unauthorized()
    raise Forbidden("Галерея закрыта")
