from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
from sqlmodel import Session, select, and_
from sqlalchemy import delete, insert, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.dialects import postgresql, sqlite

from domain.errors import (
    BackendError,
    BackendTimeoutError,
    MalformedFilterError,
    NoMatchError,
    SongConflictError,
)
from domain.models.song import Group, Song, SongDetailed, SongRecord
from utils.logger import get_logger

logger = get_logger(__name__)

# PostgreSQL: query_canceled (statement_timeout 超過)
QUERY_CANCELED_PGCODE = "57014"
STATEMENT_SEPARATOR = ";"

# フィルタ可能なフィールドと対応するカラム
FILTER_COLUMNS = {
    "name": SongRecord.name,
    "group": Group.name,
    "release_date": SongRecord.release_date,
    "text": SongRecord.lyrics,
}

# INSERT ... ON CONFLICT DO NOTHING をサポートする方言
_CONFLICT_AWARE_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

def _is_timeout(error: sa_exc.SQLAlchemyError) -> bool:
    if isinstance(error, sa_exc.TimeoutError):
        return True
    return getattr(getattr(error, "orig", None), "pgcode", None) == QUERY_CANCELED_PGCODE

def _wrap_backend_error(operation: str, error: sa_exc.SQLAlchemyError) -> BackendError:
    details = {"operation": operation, "original_error": repr(error)}
    if _is_timeout(error):
        return BackendTimeoutError(f"{operation}: backend timed out", details)
    return BackendError(f"{operation}: {error}", details)

def _to_detailed(record: SongRecord, group_name: str) -> SongDetailed:
    return SongDetailed(
        group=group_name,
        name=record.name,
        release_date=record.release_date,
        text=record.lyrics,
        link=record.link,
    )

def validate_filter(filters: Dict[str, str]) -> None:
    """未知のフィールドや ';' を含む値は DB に渡す前に拒否する"""
    for field, value in filters.items():
        if field not in FILTER_COLUMNS:
            raise MalformedFilterError(
                f"unsupported filter field: {field}",
                {"field": field, "supported": sorted(FILTER_COLUMNS)},
            )
        if STATEMENT_SEPARATOR in value:
            raise MalformedFilterError(
                f"filter value for '{field}' contains a statement separator",
                {"field": field},
            )

class SongRepository:
    """
    楽曲の永続化を担当する。
    各操作は独立したトランザクションとして実行し、失敗時は必ずロールバックする。
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except Exception as e:
            self._rollback(operation, e)
            if isinstance(e, sa_exc.SQLAlchemyError):
                logger.error(f"{operation} failed: {e}")
                raise _wrap_backend_error(operation, e) from e
            raise

    def _rollback(self, operation: str, error: Exception) -> None:
        try:
            self.session.rollback()
        except sa_exc.SQLAlchemyError as rollback_error:
            logger.error(f"{operation}: rollback failed: {rollback_error} (after: {error})")
            raise BackendError(
                f"{operation}: tx error: {error}; rollback error: {rollback_error}",
                {"operation": operation, "original_error": repr(error), "rollback_error": repr(rollback_error)},
            ) from error

    def _group_id_subquery(self, group_name: str):
        return select(Group.id).where(Group.name == group_name).scalar_subquery()

    def _ensure_group(self, group_name: str) -> int:
        dialect = self.session.get_bind().dialect.name
        conflict_aware_insert = _CONFLICT_AWARE_INSERTS.get(dialect)
        if conflict_aware_insert is not None:
            stmt = conflict_aware_insert(Group).values(name=group_name)
            self.session.exec(stmt.on_conflict_do_nothing(index_elements=["name"]))
        elif self.session.exec(select(Group.id).where(Group.name == group_name)).first() is None:
            self.session.exec(insert(Group).values(name=group_name))
        return self.session.exec(select(Group.id).where(Group.name == group_name)).one()

    def create(self, song: SongDetailed) -> SongDetailed:
        """グループを upsert し、楽曲を同一トランザクションで登録する"""
        with self._unit_of_work("create song"):
            group_id = self._ensure_group(song.group)
            try:
                self.session.exec(
                    insert(SongRecord).values(
                        name=song.name,
                        group_id=group_id,
                        release_date=song.release_date,
                        lyrics=song.text,
                        link=song.link,
                    )
                )
            except sa_exc.IntegrityError as e:
                raise SongConflictError(
                    f"song '{song.name}' by '{song.group}' already exists",
                    {"group": song.group, "name": song.name},
                ) from e
        logger.info(f"Created song: {song.group} - {song.name}")
        return song

    def get(self, song: Song) -> SongDetailed:
        with self._unit_of_work("get song"):
            row = self.session.exec(
                select(SongRecord, Group.name)
                .join(Group, SongRecord.group_id == Group.id)
                .where(SongRecord.name == song.name, Group.name == song.group)
            ).first()
        if row is None:
            raise NoMatchError(
                f"no song '{song.name}' by '{song.group}'",
                {"group": song.group, "name": song.name},
            )
        record, group_name = row
        return _to_detailed(record, group_name)

    def delete(self, song: Song) -> None:
        with self._unit_of_work("delete song"):
            result = self.session.exec(
                delete(SongRecord)
                .where(SongRecord.name == song.name, SongRecord.group_id == self._group_id_subquery(song.group))
                .execution_options(synchronize_session=False)
            )
            # 0件削除はエラーにならないため、件数で判定する
            if result.rowcount == 0:
                raise NoMatchError(
                    f"no song '{song.name}' by '{song.group}' to delete",
                    {"group": song.group, "name": song.name},
                )
        logger.info(f"Deleted song: {song.group} - {song.name}")

    def list_page(self, page: int, page_size: int, filters: Optional[Dict[str, str]] = None) -> List[SongDetailed]:
        """
        フィルタ (AND 結合, 完全一致) を適用した楽曲一覧の1ページを返す。
        並び順は (group, name) で固定し、ページ間で安定させる。
        """
        filters = filters or {}
        validate_filter(filters)

        query = select(SongRecord, Group.name).join(Group, SongRecord.group_id == Group.id)
        conditions = [FILTER_COLUMNS[field] == value for field, value in filters.items()]
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(Group.name, SongRecord.name).offset(page * page_size).limit(page_size)

        with self._unit_of_work("list songs"):
            rows = self.session.exec(query).all()
        return [_to_detailed(record, group_name) for record, group_name in rows]

    def update(self, song: SongDetailed) -> SongDetailed:
        """release_date / text / link のみ更新する。(group, name) は変更不可"""
        with self._unit_of_work("update song"):
            result = self.session.exec(
                update(SongRecord)
                .where(SongRecord.name == song.name, SongRecord.group_id == self._group_id_subquery(song.group))
                .values(release_date=song.release_date, lyrics=song.text, link=song.link)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NoMatchError(
                    f"no song '{song.name}' by '{song.group}' to update",
                    {"group": song.group, "name": song.name},
                )
        logger.info(f"Updated song: {song.group} - {song.name}")
        return song
