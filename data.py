"""Recipes from the remote feed."""

import asyncio
import logging

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError

from models import Recipe


logger = logging.getLogger(__name__)


class NetworkError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecipePayload(BaseModel):
    """One entry of the feed. The feed writes its keys in camelCase."""

    model_config = ConfigDict(extra="ignore")

    recipe_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("recipeId", "RecipeId", "recipe_id", "id"),
    )
    name: str = Field(
        validation_alias=AliasChoices("recipeName", "RecipeName", "name"),
    )
    photo_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "recipePhotoUrl", "RecipePhotoUrl", "photoUrl", "photo_url"
        ),
    )
    instructions: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "recipeInstructions", "RecipeInstructions", "instructions"
        ),
    )

    def to_recipe(self) -> Recipe:
        return Recipe(
            recipe_id=self.recipe_id,
            name=self.name,
            photo_url=self.photo_url,
            instructions=self.instructions or "",
        )


FEED = TypeAdapter(list[RecipePayload])


class RemoteRecipeSource:
    def __init__(
        self,
        url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url
        self._owns_client = http_client is None
        if http_client is None:
            http_client = (
                httpx.AsyncClient()
                if timeout is None
                else httpx.AsyncClient(timeout=timeout)
            )
        self.http_client = http_client

    async def fetch_all(self, *, timeout: float | None = None) -> list[Recipe]:
        """Every recipe the feed has. An empty feed gives an empty list.

        Raises `NetworkError` when the feed could not be read.
        """
        try:
            async with asyncio.timeout(timeout):
                async with self.http_client.stream("GET", self.url) as resp:
                    if not resp.is_success:
                        raise self._failed(
                            f"{self.url} answered {resp.status_code}",
                            status_code=resp.status_code,
                        )
                    body = await resp.aread()
        except TimeoutError as e:
            raise self._failed(f"Timed out fetching {self.url}") from e
        except httpx.HTTPError as e:
            raise self._failed(f"Could not fetch {self.url}: {e!r}") from e

        try:
            payload = FEED.validate_json(body)
        except ValidationError as e:
            raise self._failed(
                f"Malformed recipes from {self.url}", status_code=resp.status_code
            ) from e

        logger.info("Fetched %d recipes from %s", len(payload), self.url)
        return [p.to_recipe() for p in payload]

    @staticmethod
    def _failed(message: str, *, status_code: int | None = None) -> NetworkError:
        logger.warning(message)
        return NetworkError(message, status_code=status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
