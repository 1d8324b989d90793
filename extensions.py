"""
Модуль: `extensions.py`.
Назначение: Инициализация и экспорт экземпляров Flask-расширений галереи.
"""

from flask_babel import Babel
from flask_cors import CORS
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Единые имена ограничений: уникальная пара (image_id, gallery_id) и внешние
# ключи получают предсказуемые имена в любой СУБД
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Все расширения создаём здесь и инициализируем в фабрике приложения
db = SQLAlchemy(metadata=MetaData(naming_convention=NAMING_CONVENTION))
login_manager = LoginManager()
cors = CORS()
babel = Babel()
