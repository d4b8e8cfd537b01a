import asyncio
from typing import Dict, List, Optional
from sqlmodel import Session

from domain.models.lyrics import Lyrics, PageParams
from domain.models.song import Song, SongDetailed
from domain.services.lyrics_paginator import paginate_couplets
from infra.repositories.song_repository import SongRepository
from utils.external_metadata import MetadataClient
from utils.logger import get_logger

logger = get_logger(__name__)

class CatalogAppService:
    """
    楽曲カタログのユースケース。
    リポジトリ・外部サービスの例外は分類を保ったまま呼び出し元へ伝播させる。
    """

    def __init__(self, session: Session, metadata_client: MetadataClient):
        self.session = session
        self.repository = SongRepository(session)
        self.metadata_client = metadata_client

    async def add_song(self, song: Song) -> SongDetailed:
        # 外部情報の取得に失敗した場合は何も保存しない
        detailed = await self.metadata_client.fetch(song)
        logger.debug(f"Got song details: {detailed.model_dump()}")
        # 同期の DB 書き込みはワーカースレッドで実行する
        return await asyncio.to_thread(self.repository.create, detailed)

    def get_song(self, song: Song) -> SongDetailed:
        return self.repository.get(song)

    def delete_song(self, song: Song) -> None:
        self.repository.delete(song)

    def update_song(self, song: SongDetailed) -> SongDetailed:
        return self.repository.update(song)

    def list_page(self, params: PageParams, filters: Optional[Dict[str, str]] = None) -> List[SongDetailed]:
        return self.repository.list_page(params.page, params.limit, filters)

    def get_lyrics_page(self, song: Song, params: PageParams) -> Lyrics:
        detailed = self.repository.get(song)
        return paginate_couplets(detailed.text, params)
