from typing import Optional
import typer
import uvicorn
from loguru import logger
from .config import load_settings
from .logging_config import configure_logging
from .main import create_app

app = typer.Typer(help="Media catalog gateway", add_completion=False)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Listen host [env: DOUBAN_API_HOST]"),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Listen port [env: DOUBAN_API_PORT]"),
    img_proxy: Optional[str] = typer.Option(
        None, "--img-proxy", "-i",
        help="Public base URL used to rewrite image links "
             "[env: DOUBAN_API_IMG_PROXY]"),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l",
        help="Default number of movie search results "
             "[env: DOUBAN_API_LIMIT_SIZE]"),
) -> None:
    """Run the gateway until it is terminated."""
    settings = load_settings(
        DOUBAN_API_HOST=host,
        DOUBAN_API_PORT=port,
        IMG_PROXY=img_proxy,
        LIMIT_SIZE=limit,
    )
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Listening on {settings.HOST}:{settings.PORT}")
    try:
        uvicorn.run(
            create_app(settings),
            host=settings.HOST,
            port=settings.PORT,
            access_log=False,
            log_config=None,
        )
    except OSError as e:
        logger.error(f"Cannot bind {settings.HOST}:{settings.PORT}: {e}")
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
