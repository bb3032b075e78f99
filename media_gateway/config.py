from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    HOST: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("DOUBAN_API_HOST"),
    )
    PORT: int = Field(
        default=8080,
        validation_alias=AliasChoices("DOUBAN_API_PORT"),
    )
    IMG_PROXY: str = Field(
        default="",
        validation_alias=AliasChoices("IMG_PROXY", "DOUBAN_API_IMG_PROXY"),
    )
    LIMIT_SIZE: int = Field(
        default=3,
        validation_alias=AliasChoices("LIMIT_SIZE", "DOUBAN_API_LIMIT_SIZE"),
    )

    MOVIE_API_BASE_URL: str = "https://m.douban.com/rexxar/api/v2"
    MOVIE_SUGGEST_URL: str = "https://movie.douban.com/j/subject_suggest"
    BOOK_API_BASE_URL: str = "https://api.douban.com/v2"
    BOOK_API_KEY: str = ""

    UPSTREAM_TIMEOUT: float = 10.0
    REDIS_URL: str = ""
    CACHE_TTL: int = 3600     # 1 hour
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )


def load_settings(**overrides) -> Settings:
    """
    Build the process-wide settings once at startup.

    Values passed explicitly (e.g. from the command line) win over
    environment variables and the .env file. ``None`` overrides are ignored.

    :param overrides: Values keyed by environment name (e.g. DOUBAN_API_PORT
        or LIMIT_SIZE).
    :return: Immutable Settings instance.
    """
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
