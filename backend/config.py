import os
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field
import platformdirs

APP_NAME = "SongsCatalog"
APP_AUTHOR = "SongsCatalogDev"

class Settings(BaseSettings):
    # App Info
    APP_NAME: str = APP_NAME
    APP_AUTHOR: str = APP_AUTHOR
    ENV: str = "prod"
    API_VERSION: str = "1"

    # Network
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8080
    CORS_ORIGINS: List[str] = Field(default_factory=list)
    CORS_ORIGIN_REGEX: str = r"http://(127\.0\.0\.1|localhost)(:\d+)?"

    # Database
    # DATABASE_URL があればそれを優先し、なければ個別の接続情報から組み立てる
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "songslib"
    DATABASE_URL: str | None = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_TIMEOUT: float = 15.0

    # Remote metadata service
    METADATA_URL: str = "http://musicinfo/info"
    METADATA_TIMEOUT: float = 30.0

    # Logging
    LOG_DIR: str | None = None
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def model_post_init(self, __context):
        if not self.LOG_DIR:
            self.LOG_DIR = platformdirs.user_log_dir(APP_NAME, APP_AUTHOR)

    @property
    def api_prefix(self) -> str:
        return f"/api/v{self.API_VERSION}"

    def setup_environment(self):
        """子プロセスやライブラリが参照する環境変数を設定する"""
        if self.LOG_DIR:
            os.environ["SONGS_CATALOG_LOG_DIR"] = self.LOG_DIR

settings = Settings()
