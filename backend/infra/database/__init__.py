# Database module
from .connection import engine, get_session, init_db, close_db, enable_sqlite_foreign_keys, DATABASE_URL
