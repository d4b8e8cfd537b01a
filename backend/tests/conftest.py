import os
import pytest
import sys
from typing import Generator, List, Optional
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

# 1. パス解決: backendディレクトリをsys.pathに追加
CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.dirname(CURRENT_DIR)
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

# アプリケーションのモジュールを読み込む前に、PostgreSQL ではなく SQLite を使うよう設定する
os.environ["DATABASE_URL"] = "sqlite://"

from infra.database.connection import enable_sqlite_foreign_keys
# テーブル定義を metadata に登録する
from domain.models.song import Group, Song, SongDetailed, SongRecord  # noqa: F401

class StubMetadataClient:
    """
    MetadataClient の代替。呼び出しを記録し、指定された結果または例外を返す
    """

    def __init__(self, details: Optional[dict] = None, error: Optional[Exception] = None):
        self.details = details or {"release_date": "16.07.2006", "text": "line 1\nline 2", "link": "https://example.com/song"}
        self.error = error
        self.calls: List[Song] = []

    async def fetch(self, song: Song) -> SongDetailed:
        self.calls.append(song)
        if self.error is not None:
            raise self.error
        return SongDetailed(group=song.group, name=song.name, **self.details)

@pytest.fixture(name="engine")
def engine_fixture():
    """テストごとに独立したインメモリDBを構築する"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()

@pytest.fixture(name="session")
def session_fixture(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session

@pytest.fixture(name="metadata_client")
def metadata_client_fixture() -> StubMetadataClient:
    return StubMetadataClient()

@pytest.fixture(name="client")
def client_fixture(session: Session, metadata_client: StubMetadataClient, mocker) -> Generator:
    """FastAPIのTestClientを提供し、DBセッションと外部サービスをDIで差し替える"""
    from fastapi.testclient import TestClient
    from main import app
    from infra.database.connection import get_session
    from utils.external_metadata import get_metadata_client

    # アプリ起動時の init_db はテスト用DBに対して不要
    mocker.patch("main.init_db")

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_metadata_client] = lambda: metadata_client
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
