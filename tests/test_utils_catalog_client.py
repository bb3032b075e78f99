import httpx
import pytest
from respx import MockRouter

from media_gateway.errors import NotFound, UpstreamFailure
from media_gateway.utils.utils_catalog_client import (
    expect_object,
    fetch_json,
    resolve_limit,
    rewrite_image_url,
)

URL = "https://catalog.test/movie/1"


# --- fetch_json error mapping ---

@pytest.mark.asyncio
async def test_fetch_json_decodes_body(respx_mock: MockRouter):
    respx_mock.get(URL).mock(return_value=httpx.Response(200, json={"id": "1"}))
    async with httpx.AsyncClient() as client:
        assert await fetch_json(client, URL) == {"id": "1"}


@pytest.mark.asyncio
async def test_fetch_json_404_is_not_found(respx_mock: MockRouter):
    respx_mock.get(URL).mock(return_value=httpx.Response(404))
    async with httpx.AsyncClient() as client:
        with pytest.raises(NotFound):
            await fetch_json(client, URL)


@pytest.mark.asyncio
async def test_fetch_json_5xx_is_upstream_failure(respx_mock: MockRouter):
    respx_mock.get(URL).mock(
        return_value=httpx.Response(500, json={"message": "internal"}))
    async with httpx.AsyncClient() as client:
        with pytest.raises(UpstreamFailure) as exc:
            await fetch_json(client, URL)
    assert not isinstance(exc.value, NotFound)
    assert "500 Internal Server Error: internal" in str(exc.value)


@pytest.mark.asyncio
async def test_fetch_json_transport_error(respx_mock: MockRouter):
    respx_mock.get(URL).mock(side_effect=httpx.ConnectError("refused"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(UpstreamFailure) as exc:
            await fetch_json(client, URL)
    assert "request failed" in str(exc.value)


@pytest.mark.asyncio
async def test_fetch_json_invalid_json(respx_mock: MockRouter):
    respx_mock.get(URL).mock(return_value=httpx.Response(200, text="<html>captcha</html>"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(UpstreamFailure) as exc:
            await fetch_json(client, URL)
    assert "invalid JSON" in str(exc.value)


# --- image rewriting ---

def test_rewrite_image_url_quotes_original():
    item = {"id": "1", "img": "https://img.test/p 1.jpg?s=m"}
    out = rewrite_image_url(item, "https://gateway.test")
    assert out["img"] == (
        "https://gateway.test/proxy?url=https%3A%2F%2Fimg.test%2Fp%201.jpg%3Fs%3Dm")
    assert item["img"] == "https://img.test/p 1.jpg?s=m"


def test_rewrite_image_url_is_noop_without_proxy_or_image():
    item = {"id": "1", "img": "https://img.test/1.jpg"}
    assert rewrite_image_url(item, "") is item
    bare = {"id": "2"}
    assert rewrite_image_url(bare, "https://gateway.test") is bare


@pytest.mark.parametrize("count, expected", [(0, 3), (-1, 3), (1, 1), (10, 10)])
def test_resolve_limit(count, expected):
    assert resolve_limit(count, 3) == expected


def test_expect_object_rejects_lists():
    with pytest.raises(UpstreamFailure):
        expect_object([], URL)
    assert expect_object({"a": 1}, URL) == {"a": 1}
