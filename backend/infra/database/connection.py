from typing import Any, Dict
from sqlmodel import SQLModel, Session, create_engine, text
from sqlalchemy import event
from sqlalchemy.engine import Engine, URL, make_url
from config import settings
from utils.logger import get_logger

logger = get_logger(__name__)

def build_database_url() -> URL:
    """
    DATABASE_URL があればそれを使用し、なければ PostgreSQL の接続情報から組み立てる
    """
    if settings.DATABASE_URL:
        return make_url(settings.DATABASE_URL)
    return URL.create(
        "postgresql+psycopg2",
        username=settings.DB_USER,
        password=settings.DB_PASSWORD or None,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )

def engine_options(url: URL) -> Dict[str, Any]:
    options: Dict[str, Any] = {"pool_pre_ping": True}
    if url.get_backend_name() == "postgresql":
        timeout_ms = int(settings.DB_TIMEOUT * 1000)
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            # コネクション取得待ちも DB_TIMEOUT で打ち切る
            pool_timeout=settings.DB_TIMEOUT,
            connect_args={
                "connect_timeout": max(1, int(settings.DB_TIMEOUT)),
                "options": f"-c statement_timeout={timeout_ms}",
            },
        )
    return options

def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite は接続ごとに外部キー制約を有効化する必要がある"""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

DATABASE_URL = build_database_url()

engine = create_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))
enable_sqlite_foreign_keys(engine)

def init_db():
    """
    アプリケーション起動時のDB初期化。
    接続できない場合はここで例外を送出し、起動を中止する。
    """
    # テーブル定義を metadata に登録する
    from domain.models.song import Group, SongRecord  # noqa: F401

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        SQLModel.metadata.create_all(engine)
    except Exception as e:
        logger.critical(f"Database initialization failed ({DATABASE_URL.render_as_string(hide_password=True)}): {e}")
        raise
    logger.info("Database ready")

def close_db():
    """
    データベース接続を終了する。
    main.py の lifespan イベントから呼び出されます。
    """
    engine.dispose()

def get_session():
    with Session(engine) as session:
        yield session
