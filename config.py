"""
Программа: «Pinakoteka» – веб-сервис для загрузки изображений и публикации галерей.
Модуль: config.py – конфигурация приложения.

Назначение модуля:
- Определение базовых параметров приложения Flask (секретный ключ, строка подключения к БД).
- Настройка загрузки файлов (папка, максимальный размер, допустимые форматы).
- Параметры пагинации, ограничения частоты запросов и тестового режима.
"""

import os
import warnings


def _get_env_bool(name: str, default: bool = False) -> bool:
    """Преобразует переменную окружения в bool."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(name: str, default: int) -> int:
    """Преобразует переменную окружения в int."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str] | None = None) -> list[str]:
    """Преобразует переменную окружения вида 'a,b,c' в список."""
    value = os.environ.get(name)
    if value is None:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]


def _is_production() -> bool:
    """Определяет production-режим по FLASK_ENV."""
    return os.environ.get("FLASK_ENV", "").strip().lower() == "production"


class Config:
    """Базовая конфигурация приложения."""

    _PRODUCTION = _is_production()

    SECRET_KEY = os.environ.get("SECRET_KEY")
    if not SECRET_KEY:
        if _PRODUCTION:
            raise RuntimeError(
                "SECRET_KEY environment variable is required in production. "
                "Set a strong random value before starting the app."
            )
        SECRET_KEY = "dev-insecure-secret-key"
        warnings.warn(
            "SECRET_KEY is not set. Using insecure development fallback key.",
            RuntimeWarning,
            stacklevel=1,
        )

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:////app/instance/pinakoteka.db" if _PRODUCTION else "sqlite:///pinakoteka.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = _get_env_bool("SESSION_COOKIE_SECURE", default=_PRODUCTION)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    REMEMBER_COOKIE_SECURE = SESSION_COOKIE_SECURE
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = SESSION_COOKIE_SAMESITE

    CSRF_ENABLED = _get_env_bool("CSRF_ENABLED", default=True)

    CORS_ENABLED = _get_env_bool("CORS_ENABLED", default=False)
    CORS_ORIGINS = _get_env_list(
        "CORS_ORIGINS",
        default=[
            "http://127.0.0.1:3000",
            "http://localhost:3000",
        ],
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "static/uploads")
    UPLOAD_URL_PREFIX = "/uploads"
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024
    ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "gif"}
    ALLOWED_IMAGE_FORMATS = {"png", "jpeg", "webp", "gif"}
    MAX_IMAGE_PIXELS = _get_env_int("MAX_IMAGE_PIXELS", 40_000_000)
    UPLOAD_RETENTION_DAYS = _get_env_int("UPLOAD_RETENTION_DAYS", 7)

    IMAGES_PAGE_SIZE = 20
    IMAGES_MAX_PAGE_SIZE = 100
    USERS_PAGE_SIZE = 10

    RATE_LIMIT_ENABLED = _get_env_bool("RATE_LIMIT_ENABLED", default=True)
    AUTH_RATE_LIMIT = _get_env_int("AUTH_RATE_LIMIT", 20)
    AUTH_RATE_LIMIT_WINDOW = _get_env_int("AUTH_RATE_LIMIT_WINDOW", 60)

    ENABLE_REGISTRATION = _get_env_bool("ENABLE_REGISTRATION", default=True)

    # Разрушающие тестовые эндпоинты недоступны без явного флага
    E2E_TEST_FEATURES = _get_env_bool("E2E_TEST_FEATURES", default=False)
    E2E_TEST_USER_EMAIL = (
        os.environ.get("E2E_TEST_USER_EMAIL", "e2e-test@example.com").strip().lower()
        or "e2e-test@example.com"
    )

    SUPPORTED_LANGUAGES = ("ru", "en")
    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "en").strip().lower() or "en"
    LANG_COOKIE_NAME = os.environ.get("LANG_COOKIE_NAME", "site_lang").strip() or "site_lang"
