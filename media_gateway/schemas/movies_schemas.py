from dataclasses import dataclass
from typing import Optional
from pydantic import BaseModel

FULL_SEARCH_TYPE = 'full'


class MovieSearchParams(BaseModel):
    q: str = ''
    type: Optional[str] = None
    count: Optional[int] = None

    @property
    def is_full(self) -> bool:
        return self.type == FULL_SEARCH_TYPE


class ProxyParams(BaseModel):
    url: str


class ErrorResponse(BaseModel):
    code: int
    message: str


@dataclass(frozen=True)
class ImageRelay:
    """Upstream image response, relayed to the caller unchanged."""
    status_code: int
    content_type: Optional[str]
    content: bytes
