"""
Модуль: `utils/csrf.py`.
Назначение: CSRF-токен, привязанный к сессии Flask.

Клиент получает токен через `GET /api/auth/csrf` и передаёт его в заголовке
`X-CSRF-Token` в каждом изменяющем запросе.
"""

import hmac
import secrets

from flask import request, session

SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


def ensure_csrf_token() -> str:
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def is_csrf_valid() -> bool:
    expected = session.get("csrf_token")
    provided = request.headers.get("X-CSRF-Token")
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected, provided)
