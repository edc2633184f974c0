from collections.abc import Callable
from enum import Enum
import logging
from typing import NamedTuple

from data import RemoteRecipeSource
from db import LocalStore
from models import Recipe


logger = logging.getLogger(__name__)


type ModeFlag = bool | Callable[[], bool]


class SeedStatus(Enum):
    SEEDED = "seeded"
    ALREADY_SEEDED = "already_seeded"


class SeedResult(NamedTuple):
    status: SeedStatus
    count: int


class PartialInsertError(Exception):
    def __init__(self, expected: int, inserted: int) -> None:
        super().__init__(f"Stored {inserted} of {expected} recipes.")
        self.expected = expected
        self.inserted = inserted


class RecipeRepository:
    """Recipes from the remote feed or the local store.

    Which one answers is decided by the online-mode flag. The two are never
    merged: offline shows whatever was seeded, online shows the feed as it
    is now.
    """

    def __init__(
        self,
        remote: RemoteRecipeSource,
        store: LocalStore,
        *,
        online_mode: ModeFlag = True,
    ) -> None:
        self.remote = remote
        self.store = store
        self.online_mode = online_mode

    def is_online(self) -> bool:
        if callable(self.online_mode):
            return self.online_mode()
        return self.online_mode

    async def get_recipes(
        self,
        *,
        online: bool | None = None,
        timeout: float | None = None,
    ) -> list[Recipe]:
        online = self.is_online() if online is None else online
        if online:
            return await self.remote.fetch_all(timeout=timeout)
        return await self.store.list_all(Recipe, timeout=timeout)

    async def seed_local_from_remote(
        self, *, timeout: float | None = None
    ) -> SeedResult:
        """Fill an empty local store from the feed.

        Does nothing once the store has any recipes.
        """
        async with self.store.exclusive():
            if await self.store.count(Recipe, timeout=timeout):
                logger.info("Local store already seeded")
                return SeedResult(SeedStatus.ALREADY_SEEDED, 0)

            recipes = await self.remote.fetch_all(timeout=timeout)
            if not await self.store.insert_all(recipes, timeout=timeout):
                inserted = sum(1 for r in recipes if r.id is not None)
                raise PartialInsertError(expected=len(recipes), inserted=inserted)

        logger.info("Seeded local store with %d recipes", len(recipes))
        return SeedResult(SeedStatus.SEEDED, len(recipes))
