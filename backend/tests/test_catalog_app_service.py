import threading
import pytest
from sqlmodel import Session, select

from app.services.catalog_app_service import CatalogAppService
from domain.errors import (
    MalformedFilterError,
    NoMatchError,
    RemoteBadRequestError,
    RemoteInternalError,
    SongConflictError,
    TransportError,
)
from domain.models.lyrics import PageParams
from domain.models.song import Song, SongDetailed, SongRecord

SONG = Song(group="Muse", name="Supermassive Black Hole")

@pytest.mark.asyncio
async def test_add_song_enriches_then_persists(session: Session, metadata_client):
    service = CatalogAppService(session, metadata_client)

    added = await service.add_song(SONG)

    assert metadata_client.calls == [SONG]
    assert added.release_date == "16.07.2006"
    assert service.get_song(SONG) == added

@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    RemoteBadRequestError("bad request to metadata service"),
    TransportError("metadata request failed: connection refused"),
    RemoteInternalError("metadata service internal error"),
])
async def test_add_song_does_not_persist_when_enrichment_fails(session: Session, metadata_client, mocker, error):
    metadata_client.error = error
    service = CatalogAppService(session, metadata_client)
    create = mocker.patch.object(service.repository, "create")

    with pytest.raises(type(error)):
        await service.add_song(SONG)

    create.assert_not_called()

@pytest.mark.asyncio
async def test_add_song_twice_is_a_conflict(session: Session, metadata_client):
    service = CatalogAppService(session, metadata_client)
    await service.add_song(SONG)

    with pytest.raises(SongConflictError):
        await service.add_song(SONG)
    assert len(session.exec(select(SongRecord)).all()) == 1

@pytest.mark.asyncio
async def test_add_song_persists_off_the_event_loop_thread(session: Session, metadata_client, mocker):
    service = CatalogAppService(session, metadata_client)
    threads = []
    create = mocker.patch.object(
        service.repository, "create",
        side_effect=lambda song: threads.append(threading.get_ident()) or song,
    )

    added = await service.add_song(SONG)

    create.assert_called_once()
    assert added.name == SONG.name
    assert threads and threads[0] != threading.get_ident()

def test_pass_through_operations_keep_error_kind(session: Session, metadata_client):
    service = CatalogAppService(session, metadata_client)

    with pytest.raises(NoMatchError):
        service.get_song(SONG)
    with pytest.raises(NoMatchError):
        service.delete_song(SONG)
    with pytest.raises(NoMatchError):
        service.update_song(SongDetailed(group=SONG.group, name=SONG.name, text="x"))
    with pytest.raises(MalformedFilterError):
        service.list_page(PageParams(page=0, limit=5), {"name": "a;b"})

def test_list_page_uses_page_params(session: Session, metadata_client):
    service = CatalogAppService(session, metadata_client)
    for i in range(5):
        service.repository.create(SongDetailed(group="Muse", name=f"Song {i}"))

    page = service.list_page(PageParams(page=1, limit=2))
    assert [s.name for s in page] == ["Song 2", "Song 3"]

@pytest.mark.parametrize("page,expected", [
    (0, ["a", "b"]),
    (1, ["c", "d"]),
    (2, []),
])
def test_get_lyrics_page(session: Session, metadata_client, page, expected):
    service = CatalogAppService(session, metadata_client)
    service.repository.create(SongDetailed(group=SONG.group, name=SONG.name, text="a\nb\nc\nd"))

    lyrics = service.get_lyrics_page(SONG, PageParams(page=page, limit=2))

    assert lyrics.page == page
    assert lyrics.text == expected

def test_get_lyrics_page_for_missing_song(session: Session, metadata_client):
    service = CatalogAppService(session, metadata_client)

    with pytest.raises(NoMatchError):
        service.get_lyrics_page(SONG, PageParams(page=0, limit=2))
