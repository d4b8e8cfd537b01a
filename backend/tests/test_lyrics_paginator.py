import pytest
from pydantic import ValidationError

from domain.models.lyrics import PageParams
from domain.services.lyrics_paginator import paginate_couplets, split_couplets

def test_split_couplets():
    assert split_couplets("a\nb\n\nc") == ["a", "b", "", "c"]
    assert split_couplets("") == []

def test_paginate_couplets_pages():
    text = "a\nb\nc\nd"
    assert paginate_couplets(text, PageParams(page=0, limit=2)).text == ["a", "b"]
    assert paginate_couplets(text, PageParams(page=1, limit=2)).text == ["c", "d"]
    assert paginate_couplets(text, PageParams(page=2, limit=2)).text == []

def test_paginate_couplets_last_partial_page():
    lyrics = paginate_couplets("a\nb\nc", PageParams(page=1, limit=2))
    assert lyrics.page == 1
    assert lyrics.text == ["c"]

def test_page_params_validation():
    assert PageParams(limit=3).page == 0
    assert PageParams(page=4, limit=3).offset == 12
    with pytest.raises(ValidationError):
        PageParams(page=-1, limit=3)
    with pytest.raises(ValidationError):
        PageParams(page=0, limit=0)
