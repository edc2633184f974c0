from enum import Enum
import logging
from pathlib import Path

from pydantic_settings import BaseSettings
from rich.logging import RichHandler


RECIPES_URL = (
    "https://gist.githubusercontent.com/icebeam7/a6c1c7523e67272e294204aff0b115cc"
    "/raw/938694ed82fa34384c9704f6000fa0307ca72c06/recipes.json"
)


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    env: Env = Env.local
    db_url: str = "sqlite+aiosqlite:///RecipesDb-v1_0.db3"
    recipes_url: str = RECIPES_URL
    # None leaves the transport default in place.
    http_timeout: float | None = None
    preferences_path: Path = Path("preferences.json")
    online_mode_key: str = "online_mode"
    log_level: str = "INFO"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
