from typing import List

from domain.models.lyrics import Lyrics, PageParams

COUPLET_DELIMITER = "\n"

def split_couplets(text: str) -> List[str]:
    """歌詞本文を改行ごとの Couplet に分割する (空の歌詞は 0 件)"""
    if not text:
        return []
    return text.split(COUPLET_DELIMITER)

def paginate_couplets(text: str, params: PageParams) -> Lyrics:
    """
    [page*limit, page*limit+limit) の範囲を返す。範囲外のページは空リスト
    """
    couplets = split_couplets(text)
    start = params.offset
    return Lyrics(page=params.page, text=couplets[start:start + params.limit])
