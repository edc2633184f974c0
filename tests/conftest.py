import json
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

from data import NetworkError
from db import LocalStore
from models import Recipe


FEED_URL = "https://recipes.test/recipes.json"


FEED: list[dict[str, Any]] = [
    {
        "recipeId": 1,
        "recipeName": "Raspberry Smoothie",
        "recipePhotoUrl": "http://x/y.png",
        "recipeInstructions": "Blend and serve.",
    },
    {
        "recipeId": 2,
        "recipeName": "Lemonade",
        "recipePhotoUrl": "http://x/lemonade.png",
        "recipeInstructions": "Squeeze, stir, chill.",
    },
    {
        "recipeId": 3,
        "recipeName": "Iced Tea",
        "recipePhotoUrl": None,
        "recipeInstructions": "Brew strong and pour over ice.",
    },
]


def feed_transport(
    body: Any = FEED,
    *,
    status_code: int = 200,
    calls: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        content = body if isinstance(body, bytes) else json.dumps(body).encode()
        return httpx.Response(status_code, content=content)

    return httpx.MockTransport(handler)


class FakeRemote:
    """Stands in for the feed and counts how often it is asked."""

    def __init__(self, recipes: list[dict[str, Any]] | None = None) -> None:
        self.recipes = FEED if recipes is None else recipes
        self.calls = 0
        self.closed = False

    async def fetch_all(self, *, timeout: float | None = None) -> list[Recipe]:
        self.calls += 1
        return [
            Recipe(
                recipe_id=r["recipeId"],
                name=r["recipeName"],
                photo_url=r["recipePhotoUrl"],
                instructions=r["recipeInstructions"],
            )
            for r in self.recipes
        ]

    async def aclose(self) -> None:
        self.closed = True


class FailingRemote(FakeRemote):
    async def fetch_all(self, *, timeout: float | None = None) -> list[Recipe]:
        self.calls += 1
        raise NetworkError("Feed is down", status_code=503)


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'recipes.db'}"


@pytest_asyncio.fixture
async def store(db_url: str):
    store = LocalStore(db_url)
    yield store
    await store.close()

