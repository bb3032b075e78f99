import asyncio
from typing import Any, Dict, List
import httpx
from loguru import logger
from ..config import Settings
from ..errors import UpstreamFailure
from ..schemas.movies_schemas import ImageRelay
from ..utils.cache import CatalogCache
from ..utils.utils_catalog_client import (
    expect_object,
    fetch_json,
    resolve_limit,
    rewrite_image_url,
)

DEFAULT_HEADERS = {
    'User-Agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0 Safari/537.36'
    ),
    'Referer': 'https://movie.douban.com/',
}
MOVIE_ITEM_TYPE = 'movie'


class DoubanMovieClient:
    """
    Movie catalog client backed by Douban's JSON endpoints.

    Records are returned as the upstream sends them; only brief search hits
    have their image rewritten to go through the gateway's image proxy.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        cache: CatalogCache
    ):
        self._client = http_client
        self._cache = cache
        self.limit = settings.LIMIT_SIZE
        self.base_url = settings.MOVIE_API_BASE_URL.rstrip('/')
        self.suggest_url = settings.MOVIE_SUGGEST_URL

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: CatalogCache
    ) -> "DoubanMovieClient":
        client = httpx.AsyncClient(
            timeout=settings.UPSTREAM_TIMEOUT,
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        )
        return cls(client, settings, cache)

    async def _suggest(self, term: str, limit: int) -> List[Dict[str, Any]]:
        data = await fetch_json(self._client, self.suggest_url, {'q': term})
        if not isinstance(data, list):
            raise UpstreamFailure(
                f"{self.suggest_url} returned {type(data).__name__}, expected list"
            )
        hits = [
            item for item in data
            if isinstance(item, dict) and item.get('type') == MOVIE_ITEM_TYPE
        ]
        return hits[:resolve_limit(limit, self.limit)]

    async def search(
        self,
        term: str,
        limit: int,
        img_proxy: str
    ) -> List[Dict[str, Any]]:
        """
        Brief search: suggestion hits, optionally with proxied images.

        :param term: Search term.
        :param limit: Maximum number of hits; 0 or less uses the client default.
        :param img_proxy: Gateway base URL used to rewrite image links.
        :return: List of brief movie records.
        """
        hits = await self._suggest(term, limit)
        logger.debug(f"Movie search {term!r} -> {len(hits)} hits")
        return [rewrite_image_url(item, img_proxy) for item in hits]

    async def search_full(self, term: str, limit: int) -> List[Dict[str, Any]]:
        """
        Full search: resolve every suggestion hit to its complete record.

        :param term: Search term.
        :param limit: Maximum number of hits; 0 or less uses the client default.
        :return: List of full movie records, in suggestion order.
        """
        hits = await self._suggest(term, limit)
        return list(await asyncio.gather(*[
            self.get_movie_info(str(item['id']))
            for item in hits if item.get('id')
        ]))

    async def get_movie_info(self, sid: str) -> Dict[str, Any]:
        url = f"{self.base_url}/movie/{sid}"
        return await self._cache.get_or_fetch(
            f"movie:{sid}", lambda: fetch_json(self._client, url)
        )

    async def get_celebrities(self, sid: str) -> List[Dict[str, Any]]:
        """
        Cast and crew of a movie, directors first.

        :param sid: Movie identifier.
        :return: List of celebrity records.
        """
        url = f"{self.base_url}/movie/{sid}/celebrities"

        async def fetch() -> List[Dict[str, Any]]:
            data = expect_object(await fetch_json(self._client, url), url)
            return (data.get('directors') or []) + (data.get('actors') or [])

        return await self._cache.get_or_fetch(f"celebrities:{sid}", fetch)

    async def get_celebrity(self, cid: str) -> Dict[str, Any]:
        url = f"{self.base_url}/celebrity/{cid}"
        return await self._cache.get_or_fetch(
            f"celebrity:{cid}", lambda: fetch_json(self._client, url)
        )

    async def get_wallpaper(self, sid: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/movie/{sid}/photos"
        data = expect_object(await fetch_json(self._client, url), url)
        return data.get('photos') or []

    async def proxy_img(self, url: str) -> ImageRelay:
        """
        Fetch an upstream image with the catalog's Referer so hotlink
        protection lets it through. Non-2xx answers are relayed, not raised.

        :param url: Absolute image URL.
        :return: ImageRelay carrying status, content type and raw bytes.
        :raises UpstreamFailure: The image host could not be reached.
        """
        try:
            resp = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise UpstreamFailure(f"{url} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"{url} request failed: {e}") from e
        return ImageRelay(
            status_code=resp.status_code,
            content_type=resp.headers.get('content-type'),
            content=resp.content,
        )

    async def close(self) -> None:
        await self._client.aclose()
