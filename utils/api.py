"""
Модуль: `utils/api.py`.
Назначение: Общие помощники JSON-API: ответы об ошибках, обработчик
исключений сервисного слоя, чтение тела запроса и метаданные пагинации.
"""

from __future__ import annotations

import math
from functools import wraps

from flask import current_app, jsonify, request
from flask_babel import gettext as _
from werkzeug.exceptions import HTTPException

from extensions import db
from services.errors import InternalError, ServiceError


def api_error(message: str, status: int = 400, kind: str | None = None, **extra):
    payload = {"success": False, "error": _(message)}
    if kind is not None:
        payload["kind"] = kind
    payload.update(extra)
    return jsonify(payload), status


def error_response(error: ServiceError):
    payload = error.to_dict()
    payload["error"] = _(error.message)
    return jsonify(payload), error.status_code


def api_handler(view):
    """Превращает исключения сервисного слоя в структурированные JSON-ответы.

    ServiceError отдаётся со своим статусом. Любое другое исключение
    откатывает сессию, пишется в лог и становится ответом 500 InternalError,
    поэтому частично применённых изменений не остаётся.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ServiceError as error:
            return error_response(error)
        except HTTPException:
            raise
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Необработанная ошибка в %s", request.endpoint)
            return error_response(InternalError())

    return wrapper


def json_body():
    """Тело запроса как JSON или None; проверку формы выполняют parse_*-функции."""
    return request.get_json(silent=True)


def query_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def pagination_meta(total: int, page: int, limit: int) -> dict:
    last_page = max(1, math.ceil(total / limit)) if limit else 1
    has_next = page * limit < total
    has_prev = page > 1
    return {
        "total": total,
        "currentPage": page,
        "lastPage": last_page,
        "perPage": limit,
        "hasNextPage": has_next,
        "hasPrevPage": has_prev,
        "nextPage": page + 1 if has_next else None,
        "prevPage": page - 1 if has_prev else None,
    }


def parse_or_raise(parser, data):
    """Запускает `parse_*`-функцию и бросает её ValidationError при ошибке."""
    record, error = parser(data)
    if error is not None:
        raise error
    return record
