from typing import List
from pydantic import BaseModel, Field

class PageParams(BaseModel):
    """
    ページング指定 (page は 0 始まり)
    """
    page: int = Field(default=0, ge=0)
    limit: int = Field(gt=0)

    @property
    def offset(self) -> int:
        return self.page * self.limit

class Lyrics(BaseModel):
    """歌詞のページ表示用。DBには保存しない"""
    page: int
    text: List[str] = Field(default_factory=list)
