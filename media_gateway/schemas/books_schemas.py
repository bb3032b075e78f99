from typing import Optional
from pydantic import BaseModel

BOOK_SEARCH_DEFAULT_COUNT = 2
BOOK_SEARCH_MAX_COUNT = 20


class BookSearchParams(BaseModel):
    q: str = ''
    count: Optional[int] = None
