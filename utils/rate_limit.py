"""
Модуль: `utils/rate_limit.py`.
Назначение: Ограничение частоты запросов к чувствительным эндпоинтам.

Счётчики хранятся в памяти процесса (скользящее окно) и не разделяются между
воркерами. Для запросов тестового прогона (`X-E2E-Test: true` при включённом
E2E_TEST_FEATURES) лимит увеличивается в E2E_LIMIT_MULTIPLIER раз.
"""

import time
from collections import defaultdict, deque
from threading import Lock

from flask import current_app, request

from services.errors import RateLimited

E2E_LIMIT_MULTIPLIER = 5


class InMemoryRateLimiter:
    """Простой in-memory rate limiter (sliding window)."""

    def __init__(self):
        self._events = defaultdict(deque)
        self._lock = Lock()

    def is_allowed(self, key: str, limit: int, window_seconds: int) -> bool:
        if limit <= 0 or window_seconds <= 0:
            return False

        now = time.monotonic()
        cutoff = now - window_seconds

        with self._lock:
            events = self._events[key]
            while events and events[0] <= cutoff:
                events.popleft()

            if len(events) >= limit:
                return False

            events.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


def get_client_identifier() -> str:
    """Возвращает IP клиента с учетом X-Forwarded-For."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        first_ip = forwarded_for.split(",", 1)[0].strip()
        if first_ip:
            return first_ip
    return request.remote_addr or "unknown"


def is_e2e_request() -> bool:
    if not current_app.config.get("E2E_TEST_FEATURES"):
        return False
    return request.headers.get("X-E2E-Test", "").strip().lower() == "true"


def effective_limit(limit: int) -> int:
    if is_e2e_request():
        return limit * E2E_LIMIT_MULTIPLIER
    return limit


def enforce_rate_limit(
    bucket: str,
    limit: int | None = None,
    window_seconds: int | None = None,
    identity: str | None = None,
) -> None:
    """Бросает RateLimited, если ключ `bucket:identity` исчерпал лимит окна.

    Без явных параметров используются AUTH_RATE_LIMIT и AUTH_RATE_LIMIT_WINDOW.
    """
    if not current_app.config.get("RATE_LIMIT_ENABLED", True):
        return

    limiter = current_app.extensions.get("rate_limiter")
    if limiter is None:
        return

    if limit is None:
        limit = current_app.config["AUTH_RATE_LIMIT"]
    if window_seconds is None:
        window_seconds = current_app.config["AUTH_RATE_LIMIT_WINDOW"]

    rate_key = f"{bucket}:{identity or get_client_identifier()}"
    if not limiter.is_allowed(rate_key, effective_limit(limit), window_seconds):
        current_app.logger.warning("Превышен лимит запросов для %s", rate_key)
        raise RateLimited()
