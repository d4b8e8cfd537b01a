from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from typing import Dict, List, Optional

from infra.database.connection import get_session
from app.services.catalog_app_service import CatalogAppService
from domain.errors import (
    BackendTimeoutError,
    CatalogError,
    MalformedFilterError,
    MetadataError,
    NoMatchError,
    RemoteBadRequestError,
    SongConflictError,
    StoreError,
)
from domain.models.lyrics import Lyrics, PageParams
from domain.models.song import Song, SongDetailed
from utils.external_metadata import MetadataClient, get_metadata_client
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# 上から順に評価する (サブクラスを先に置く)
ERROR_STATUS = [
    (NoMatchError, 404),
    (MalformedFilterError, 400),
    (SongConflictError, 409),
    (BackendTimeoutError, 504),
    (StoreError, 500),
    (RemoteBadRequestError, 400),
    (MetadataError, 502),
]

def to_http_exception(error: CatalogError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            break
    else:
        status_code = 500
    if status_code >= 500:
        logger.error(f"{type(error).__name__}: {error.message} {error.details}")
    else:
        logger.warning(f"{type(error).__name__}: {error.message}")
    return HTTPException(status_code=status_code, detail=error.message)

def get_catalog_service(
    session: Session = Depends(get_session),
    metadata_client: MetadataClient = Depends(get_metadata_client),
) -> CatalogAppService:
    return CatalogAppService(session, metadata_client)

def get_page_params(
    page: int = Query(0, ge=0),
    limit: int = Query(..., gt=0),
) -> PageParams:
    return PageParams(page=page, limit=limit)

@router.put("/lib/add", response_model=SongDetailed)
async def add_song(song: Song, service: CatalogAppService = Depends(get_catalog_service)):
    """外部サービスで楽曲情報を補完してからライブラリに追加する"""
    try:
        return await service.add_song(song)
    except CatalogError as e:
        raise to_http_exception(e)

@router.delete("/lib/remove")
def delete_song(
    name: str = Query(..., min_length=1),
    group: str = Query(..., min_length=1),
    service: CatalogAppService = Depends(get_catalog_service),
):
    try:
        service.delete_song(Song(group=group, name=name))
    except CatalogError as e:
        raise to_http_exception(e)
    return {"ok": True}

@router.get("/lib", response_model=List[SongDetailed])
def read_library_page(
    params: PageParams = Depends(get_page_params),
    name: Optional[str] = None,
    group: Optional[str] = None,
    release_date: Optional[str] = None,
    text: Optional[str] = None,
    service: CatalogAppService = Depends(get_catalog_service),
):
    """
    ライブラリの1ページを返す。指定されたフィールドのみ AND 条件で絞り込む
    """
    candidates = {"name": name, "group": group, "release_date": release_date, "text": text}
    filters: Dict[str, str] = {k: v for k, v in candidates.items() if v}
    try:
        return service.list_page(params, filters)
    except CatalogError as e:
        raise to_http_exception(e)

@router.get("/lib/{group_name}/{song_name}", response_model=Lyrics)
def read_song_lyrics_page(
    group_name: str,
    song_name: str,
    params: PageParams = Depends(get_page_params),
    service: CatalogAppService = Depends(get_catalog_service),
):
    try:
        return service.get_lyrics_page(Song(group=group_name, name=song_name), params)
    except CatalogError as e:
        raise to_http_exception(e)

@router.post("/lib/edit", response_model=SongDetailed)
def edit_song(song: SongDetailed, service: CatalogAppService = Depends(get_catalog_service)):
    try:
        return service.update_song(song)
    except CatalogError as e:
        raise to_http_exception(e)
