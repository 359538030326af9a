import logging
from contextlib import contextmanager
from flask import current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from models import Base
from errors import IntegrityViolation, UniqueViolation, ForeignKeyViolation

logger = logging.getLogger(__name__)

# 各資料庫驅動的錯誤代碼
_UNIQUE_CODES = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY", "23505", 1062}
_FOREIGN_KEY_CODES = {"SQLITE_CONSTRAINT_FOREIGNKEY", "23503", 1451, 1452}


def create_db_engine(database_url):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        # SQLite 預設不檢查外鍵
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def init_db(app):
    engine = create_db_engine(app.config["DATABASE_URL"])
    Base.metadata.create_all(bind=engine)
    app.extensions["db_engine"] = engine
    app.extensions["db_session"] = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    app.teardown_appcontext(close_db)
    logger.info(f"資料庫已連線: {engine.url.render_as_string(hide_password=True)}")


# 每個請求共用一個 session
def get_db():
    if "db" not in g:
        g.db = current_app.extensions["db_session"]()
    return g.db


def close_db(exc=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def _error_code(orig):
    code = getattr(orig, "sqlite_errorname", None) or getattr(orig, "pgcode", None)
    if code is None and getattr(orig, "args", None):
        code = orig.args[0]
    return code


def classify_integrity_error(exc):
    """把驅動程式的 IntegrityError 轉成 UniqueViolation / ForeignKeyViolation"""
    orig = getattr(exc, "orig", exc)
    code = _error_code(orig)
    if code in _UNIQUE_CODES:
        return UniqueViolation(str(orig))
    if code in _FOREIGN_KEY_CODES:
        return ForeignKeyViolation(str(orig))

    # 舊版 sqlite3 沒有 sqlite_errorname
    text = str(orig)
    if "UNIQUE constraint failed" in text:
        return UniqueViolation(text)
    if "FOREIGN KEY constraint failed" in text:
        return ForeignKeyViolation(text)
    return IntegrityViolation(text)


@contextmanager
def transaction(db):
    """在同一個 session 內執行多個語句，全部成功才 commit"""
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise classify_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise
