"""
Модуль: `models/base.py`.
Назначение: Общие генераторы значений по умолчанию для ORM-моделей.
"""

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Строковый идентификатор записи (32 hex-символа)."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo, как его хранит SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z"
