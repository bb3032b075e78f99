import asyncio
from contextlib import asynccontextmanager
from typing import Any, Awaitable, List, Optional, TypeVar
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from loguru import logger
from .clients.book_client import DoubanBookClient
from .clients.movie_client import DoubanMovieClient
from .config import Settings
from .errors import GatewayError, InvalidArgument, UpstreamFailure
from .logging_config import access_log_middleware
from .schemas.books_schemas import (
    BOOK_SEARCH_DEFAULT_COUNT,
    BOOK_SEARCH_MAX_COUNT,
    BookSearchParams,
)
from .schemas.movies_schemas import ErrorResponse, MovieSearchParams, ProxyParams
from .utils.cache import CatalogCache

T = TypeVar('T')

DEFAULT_PROXY_CONTENT_TYPE = 'application/octet-stream'

INDEX_HTML = """
       Available routes:<br/>
       /movies?q={movie_name}<br/>
       /movies?q={movie_name}&type=full<br/>
       /movies/{sid}<br/>
       /movies/{sid}/celebrities<br/>
       /celebrities/{cid}<br/>
       /photo/{sid}<br/>
       /v2/book/search?q={book_name}<br/>
       /v2/book/id/{sid}<br/>
       /v2/book/isbn/{isbn}<br/>
"""

UPSTREAM_ERRORS = {502: {'model': ErrorResponse}}
LOOKUP_ERRORS = {500: {'model': ErrorResponse}}

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_movie_client(request: Request) -> DoubanMovieClient:
    return request.app.state.movie_client


def get_book_client(request: Request) -> DoubanBookClient:
    return request.app.state.book_client


async def call_catalog(call: Awaitable[T], timeout: float) -> T:
    """
    Await a single collaborator call, bounded by ``timeout`` seconds.

    :param call: Pending catalog client coroutine.
    :param timeout: Upper bound in seconds.
    :return: The collaborator's result.
    :raises UpstreamFailure: The call failed, did not finish in time, or
        choked on a payload it could not interpret.
    """
    try:
        async with asyncio.timeout(timeout):
            return await call
    except UpstreamFailure:
        raise
    except TimeoutError as e:
        raise UpstreamFailure(
            f"catalog call timed out after {timeout}s") from e
    except Exception as e:
        logger.exception("Catalog client failed on an unexpected payload")
        raise UpstreamFailure(
            f"unusable catalog payload ({type(e).__name__}: {e})") from e


async def _movie_call(call: Awaitable[T], settings: Settings) -> T:
    try:
        return await call_catalog(call, settings.UPSTREAM_TIMEOUT)
    except UpstreamFailure as e:
        logger.error(f"Movie catalog error: {e}")
        raise GatewayError(502, f"Movie catalog error: {e}") from e


async def _book_lookup(call: Awaitable[T], settings: Settings) -> T:
    try:
        return await call_catalog(call, settings.UPSTREAM_TIMEOUT)
    except UpstreamFailure as e:
        logger.error(f"Book lookup failed: {e}")
        raise GatewayError(500, str(e)) from e


@router.get('/', response_class=HTMLResponse)
async def index():
    return HTMLResponse(INDEX_HTML)


@router.get('/movies', responses=UPSTREAM_ERRORS)
async def search_movies(
    params: MovieSearchParams = Depends(),
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
) -> List[Any]:
    if not params.q:
        return []
    count = params.count if params.count is not None else 0
    if params.is_full:
        return await _movie_call(movies.search_full(params.q, count), settings)
    return await _movie_call(
        movies.search(params.q, count, settings.IMG_PROXY), settings
    )


@router.get('/movies/{sid}', responses=UPSTREAM_ERRORS)
async def movie(
    sid: str,
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
):
    return await _movie_call(movies.get_movie_info(sid), settings)


@router.get('/movies/{sid}/celebrities', responses=UPSTREAM_ERRORS)
async def celebrities(
    sid: str,
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
):
    return await _movie_call(movies.get_celebrities(sid), settings)


@router.get('/celebrities/{cid}', responses=UPSTREAM_ERRORS)
async def celebrity(
    cid: str,
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
):
    return await _movie_call(movies.get_celebrity(cid), settings)


@router.get('/photo/{sid}', responses=UPSTREAM_ERRORS)
async def photo(
    sid: str,
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
):
    return await _movie_call(movies.get_wallpaper(sid), settings)


@router.get('/v2/book/search', responses={400: {'model': ErrorResponse}, **UPSTREAM_ERRORS})
async def search_books(
    params: BookSearchParams = Depends(),
    books: DoubanBookClient = Depends(get_book_client),
    settings: Settings = Depends(get_settings),
) -> List[Any]:
    if not params.q:
        return []
    count = params.count if params.count is not None else BOOK_SEARCH_DEFAULT_COUNT
    if count > BOOK_SEARCH_MAX_COUNT:
        raise InvalidArgument(
            f"count must not be greater than {BOOK_SEARCH_MAX_COUNT}")
    try:
        return await call_catalog(
            books.search(params.q, count), settings.UPSTREAM_TIMEOUT
        )
    except UpstreamFailure as e:
        logger.error(f"Book catalog error: {e}")
        raise GatewayError(502, f"Book catalog error: {e}") from e


@router.get('/v2/book/id/{sid}', responses=LOOKUP_ERRORS)
async def book(
    sid: str,
    books: DoubanBookClient = Depends(get_book_client),
    settings: Settings = Depends(get_settings),
):
    return await _book_lookup(books.get_book_info(sid), settings)


@router.get('/v2/book/isbn/{isbn}', responses=LOOKUP_ERRORS)
async def book_by_isbn(
    isbn: str,
    books: DoubanBookClient = Depends(get_book_client),
    settings: Settings = Depends(get_settings),
):
    return await _book_lookup(books.get_book_info_by_isbn(isbn), settings)


@router.get('/proxy', response_class=Response, responses=UPSTREAM_ERRORS)
async def proxy(
    params: ProxyParams = Depends(),
    movies: DoubanMovieClient = Depends(get_movie_client),
    settings: Settings = Depends(get_settings),
):
    relay = await _movie_call(movies.proxy_img(params.url), settings)
    return Response(
        content=relay.content,
        status_code=relay.status_code,
        headers={
            'content-type': relay.content_type or DEFAULT_PROXY_CONTENT_TYPE
        },
    )


def _error_body(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=status_code, message=message).model_dump(),
    )


async def _gateway_error_handler(request: Request, exc: GatewayError):
    return _error_body(exc.status_code, exc.message)


async def _invalid_argument_handler(request: Request, exc: InvalidArgument):
    logger.warning(f"Rejected {request.url.path}: {exc}")
    return _error_body(400, str(exc))


def create_app(
    settings: Settings,
    movie_client: Optional[DoubanMovieClient] = None,
    book_client: Optional[DoubanBookClient] = None,
) -> FastAPI:
    """
    Build the gateway application around one immutable Settings value.

    Clients not supplied by the caller are built from ``settings`` and
    closed, together with the shared cache, when the application shuts down.

    :param settings: Process-wide configuration.
    :param movie_client: Optional movie catalog client to use instead.
    :param book_client: Optional book catalog client to use instead.
    :return: Configured FastAPI application.
    """
    cache = CatalogCache.from_url(settings.REDIS_URL, settings.CACHE_TTL)
    owned = []
    if movie_client is None:
        movie_client = DoubanMovieClient.from_settings(settings, cache)
        owned.append(movie_client)
    if book_client is None:
        book_client = DoubanBookClient.from_settings(settings, cache)
        owned.append(book_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Media gateway ready (limit={settings.LIMIT_SIZE}, "
            f"img_proxy={settings.IMG_PROXY or '-'}, "
            f"cache={'on' if cache.enabled else 'off'})"
        )
        yield
        for client in owned:
            await client.close()
        await cache.close()
        logger.info("Media gateway stopped")

    app = FastAPI(title='Media Catalog Gateway', lifespan=lifespan)
    app.state.settings = settings
    app.state.movie_client = movie_client
    app.state.book_client = book_client

    app.middleware('http')(access_log_middleware)
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(InvalidArgument, _invalid_argument_handler)
    app.include_router(router)
    return app
