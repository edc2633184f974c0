from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Self


MAX_NAME_LENGTH = 255


class Record(ABC):
    """Something the local store can keep in a table of its own.

    Subclasses name their table and describe their columns (everything but
    the `id` primary key, which the store assigns on insert).
    """

    __tablename__: ClassVar[str]
    __columns__: ClassVar[dict[str, str]]

    id: int | None

    @abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    @abstractmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self: ...


class Recipe(Record):
    __tablename__ = "Recipes"
    __columns__ = {
        "recipe_id": "INTEGER UNIQUE",
        "name": (
            f"VARCHAR({MAX_NAME_LENGTH}) NOT NULL "
            f"CHECK (length(name) <= {MAX_NAME_LENGTH})"
        ),
        "photo_url": "TEXT",
        "instructions": "TEXT",
    }

    def __init__(
        self,
        *,
        name: str,
        photo_url: str | None = None,
        instructions: str = "",
        recipe_id: int | None = None,
        id: int | None = None,
    ) -> None:
        self.id = id
        self.recipe_id = recipe_id
        self.name = name
        self.photo_url = photo_url
        self.instructions = instructions

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, name={self.name})>"

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "name": self.name,
            "photo_url": self.photo_url,
            "instructions": self.instructions,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self:
        return cls(
            id=row["id"],
            recipe_id=row["recipe_id"],
            name=row["name"],
            photo_url=row["photo_url"],
            instructions=row["instructions"] or "",
        )
