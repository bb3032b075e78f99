from typing import Any, Dict, List, Optional
import httpx
from loguru import logger
from ..config import Settings
from ..utils.cache import CatalogCache
from ..utils.utils_catalog_client import expect_object, fetch_json


class DoubanBookClient:
    """Book catalog client for the Douban v2 book API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        cache: CatalogCache
    ):
        self._client = http_client
        self._cache = cache
        self.base_url = settings.BOOK_API_BASE_URL.rstrip('/')
        self.api_key = settings.BOOK_API_KEY

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: CatalogCache
    ) -> "DoubanBookClient":
        client = httpx.AsyncClient(
            timeout=settings.UPSTREAM_TIMEOUT, follow_redirects=True
        )
        return cls(client, settings, cache)

    def _params(self, **params: Any) -> Optional[Dict[str, Any]]:
        if self.api_key:
            params['apikey'] = self.api_key
        return params or None

    async def search(self, term: str, limit: int) -> List[Dict[str, Any]]:
        """
        Search books by title, author or keyword.

        :param term: Search term.
        :param limit: Number of books requested from the upstream.
        :return: List of book records.
        """
        url = f"{self.base_url}/book/search"
        data = expect_object(
            await fetch_json(self._client, url, self._params(q=term, count=limit)),
            url,
        )
        books = data.get('books') or []
        logger.debug(f"Book search {term!r} -> {len(books)} hits")
        return books

    async def get_book_info(self, sid: str) -> Dict[str, Any]:
        url = f"{self.base_url}/book/{sid}"
        return await self._cache.get_or_fetch(
            f"book:{sid}",
            lambda: fetch_json(self._client, url, self._params()),
        )

    async def get_book_info_by_isbn(self, isbn: str) -> Dict[str, Any]:
        url = f"{self.base_url}/book/isbn/{isbn}"
        return await self._cache.get_or_fetch(
            f"book:isbn:{isbn}",
            lambda: fetch_json(self._client, url, self._params()),
        )

    async def close(self) -> None:
        await self._client.aclose()
