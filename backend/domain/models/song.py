from typing import Optional
from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from pydantic import BaseModel, ConfigDict, Field as ModelField

class Group(SQLModel, table=True):
    """
    演奏グループ。最初の楽曲登録時に自動作成され、削除はされない
    """
    __tablename__ = "groups"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, nullable=False)

class SongRecord(SQLModel, table=True):
    __tablename__ = "songs"
    # (group, name) でカタログ内の楽曲を一意に特定する
    __table_args__ = (UniqueConstraint("group_id", "name", name="uq_songs_group_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False)
    group_id: int = Field(foreign_key="groups.id", nullable=False, index=True)
    release_date: str = Field(default="")
    lyrics: str = Field(default="")
    link: str = Field(default="")

class Song(BaseModel):
    """Identity of a catalog entry."""
    group: str = ModelField(min_length=1)
    name: str = ModelField(min_length=1)

class SongDetailed(Song):
    # release_date is kept verbatim, no date parsing
    release_date: str = ""
    text: str = ""
    link: str = ""

class RemoteSongDetails(BaseModel):
    """
    Body returned by the metadata service. Identity fields it may carry are
    ignored; the caller's Song always wins.
    """
    model_config = ConfigDict(extra="ignore")

    release_date: str = ""
    text: str = ""
    link: str = ""
