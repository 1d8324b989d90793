"""
Модуль: `utils/i18n.py`.
Назначение: Выбор языка сообщений API для Flask-Babel.

Порядок: параметр `?lang=`, cookie языка, заголовок Accept-Language,
язык по умолчанию.
"""

from __future__ import annotations

from flask import Request


def is_supported_language(lang: str | None, supported_languages: tuple[str, ...]) -> bool:
    if not lang:
        return False
    return lang.strip().lower() in supported_languages


def resolve_request_language(
    request: Request,
    supported_languages: tuple[str, ...],
    cookie_name: str,
    default_language: str,
) -> str:
    query_lang = request.args.get("lang")
    if is_supported_language(query_lang, supported_languages):
        return query_lang.strip().lower()

    cookie_lang = request.cookies.get(cookie_name)
    if is_supported_language(cookie_lang, supported_languages):
        return cookie_lang.strip().lower()

    preferred = request.accept_languages.best_match(supported_languages)
    if preferred:
        return preferred

    if is_supported_language(default_language, supported_languages):
        return default_language.strip().lower()
    return supported_languages[0]
