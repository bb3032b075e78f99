from typing import Any, Dict, Optional
from urllib.parse import quote
import httpx
from ..errors import NotFound, UpstreamFailure

IMG_FIELD = 'img'


def _describe_status_error(resp: httpx.Response) -> str:
    """
    Build a readable description of a failed upstream response, preferring
    the catalog's own ``msg`` field when the body carries one.
    """
    detail = None
    try:
        body = resp.json()
        if isinstance(body, dict):
            detail = body.get('msg') or body.get('message')
    except ValueError:
        pass
    text = f"{resp.status_code} {resp.reason_phrase}".strip()
    return f"{text}: {detail}" if detail else text


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None
) -> Any:
    """
    GET ``url`` and decode its JSON body, translating transport and status
    failures into catalog errors.

    :param client: HTTP client for making API requests.
    :param url: Absolute upstream URL.
    :param params: Optional query parameters.
    :return: Decoded JSON payload.
    :raises NotFound: The upstream answered 404.
    :raises UpstreamFailure: Any other transport, status or decoding failure.
    """
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        description = _describe_status_error(e.response)
        if e.response.status_code == 404:
            raise NotFound(f"{url} not found ({description})") from e
        raise UpstreamFailure(f"{url} failed ({description})") from e
    except httpx.TimeoutException as e:
        raise UpstreamFailure(f"{url} timed out") from e
    except httpx.HTTPError as e:
        raise UpstreamFailure(f"{url} request failed: {e}") from e

    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamFailure(f"{url} returned invalid JSON") from e


def rewrite_image_url(item: Dict[str, Any], img_proxy: str) -> Dict[str, Any]:
    """
    Point an item's image at the gateway's /proxy route.

    :param item: Search hit as returned by the catalog.
    :param img_proxy: Public base URL of this gateway; empty disables rewriting.
    :return: The item itself when nothing changes, else a rewritten copy.
    """
    img = item.get(IMG_FIELD)
    if not img_proxy or not img:
        return item
    proxied = f"{img_proxy.rstrip('/')}/proxy?url={quote(img, safe='')}"
    return {**item, IMG_FIELD: proxied}


def resolve_limit(count: int, default_limit: int) -> int:
    """Non-positive counts fall back to the configured default limit."""
    return count if count > 0 else default_limit


def expect_object(data: Any, url: str) -> Dict[str, Any]:
    """Reject payloads that are not JSON objects."""
    if not isinstance(data, dict):
        raise UpstreamFailure(
            f"{url} returned {type(data).__name__}, expected object"
        )
    return data
