import asyncio
from typing import Optional
import aiohttp

from config import settings
from domain.errors import (
    MalformedResponseError,
    RemoteBadRequestError,
    RemoteInternalError,
    RemoteTimeoutError,
    TransportError,
    UnexpectedStatusError,
)
from domain.models.song import RemoteSongDetails, Song, SongDetailed
from utils.logger import get_logger

logger = get_logger(__name__)

# エラー詳細に含めるレスポンス本文の最大長
MAX_ERROR_BODY = 512

class MetadataClient:
    """
    外部の楽曲情報サービスから release_date / text / link を取得する。
    ステータスごとに例外を分類し、リトライは行わない。
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url or settings.METADATA_URL
        self.timeout = timeout if timeout is not None else settings.METADATA_TIMEOUT

    async def fetch(self, song: Song) -> SongDetailed:
        params = {"song": song.name, "group": song.group}
        details = {"group": song.group, "name": song.name, "url": self.base_url}

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                logger.debug(f"Requesting song details: {song.group} - {song.name}")
                async with session.get(self.base_url, params=params) as response:
                    if response.status == 200:
                        # content_type=None: サービスが text/plain で返しても JSON として解釈する
                        try:
                            payload = await response.json(content_type=None)
                            remote = RemoteSongDetails.model_validate(payload)
                        except ValueError as e:
                            raise MalformedResponseError(
                                f"cannot decode song details: {e}",
                                {**details, "original_error": repr(e)},
                            ) from e
                        return SongDetailed(group=song.group, name=song.name, **remote.model_dump())

                    # 本文が UTF-8 でなくても分類は続ける
                    body = (await response.text(errors="replace"))[:MAX_ERROR_BODY]
                    status = response.status
        except asyncio.TimeoutError as e:
            logger.error(f"Metadata request timed out after {self.timeout}s: {song.group} - {song.name}")
            raise RemoteTimeoutError(f"metadata request timed out after {self.timeout}s", details) from e
        except aiohttp.ClientError as e:
            logger.error(f"Metadata request failed: {e}")
            raise TransportError(f"metadata request failed: {e}", {**details, "original_error": repr(e)}) from e

        details.update(status=status, body=body)
        if status == 400:
            logger.warning(f"Metadata service rejected lookup: {song.group} - {song.name}")
            raise RemoteBadRequestError("bad request to metadata service", details)
        if status == 500:
            logger.error(f"Metadata service internal error: {body}")
            raise RemoteInternalError("metadata service internal error", details)
        logger.error(f"Metadata service answered with unexpected status {status}")
        raise UnexpectedStatusError(status, details)

def get_metadata_client() -> MetadataClient:
    return MetadataClient()
