"""
Модуль: `services/transaction.py`.
Назначение: Явная транзакционная граница для многострочных изменений.
"""

from contextlib import contextmanager

from extensions import db


@contextmanager
def atomic():
    """Фиксирует сессию при успехе и откатывает её при любом исключении.

    Замена состава галереи, очистка обложки и каскадные удаления выполняются
    внутри одного блока `with atomic():` – либо всё, либо ничего.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
