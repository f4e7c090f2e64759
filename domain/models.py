from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class LoadingState(Enum):
    idle = "idle"
    generating_recipe = "generating-recipe"
    generating_image = "generating-image"
    complete = "complete"
    error = "error"

    @property
    def busy(self) -> bool:
        return self in (LoadingState.generating_recipe, LoadingState.generating_image)


class RecipeStep(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    instruction: str
    visual_description: str | None = None

    def __str__(self) -> str:
        return self.instruction


class Recipe(BaseModel):
    """A dessert concept as returned by the text model."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    name: str = Field(min_length=1)
    description: str
    ingredients: list[str] = Field(min_length=1)
    steps: list[RecipeStep] = Field(min_length=1)
    cost_price: str
    selling_price: str
    image_prompt: str = Field(min_length=1)
    flavor_profile: str

    @field_validator("steps", mode="before")
    @classmethod
    def plain_steps(cls, steps: Any) -> Any:
        # Older payloads carry steps as bare instructions.
        if not isinstance(steps, list):
            return steps
        return [{"instruction": s} if isinstance(s, str) else s for s in steps]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class GeneratedSweet:
    def __init__(self, recipe: Recipe, image_url: str | None = None) -> None:
        self.recipe = recipe
        self.image_url = image_url

    def __repr__(self) -> str:
        return f"<GeneratedSweet(name={self.recipe.name}, image={self.has_image})>"

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)


class IllustrationStatus(Enum):
    pending = "pending"
    ready = "ready"
    failed = "failed"


class Illustration:
    def __init__(
        self,
        index: int,
        *,
        status: IllustrationStatus = IllustrationStatus.pending,
        url: str | None = None,
    ) -> None:
        self.index = index
        self.status = status
        self.url = url

    def __repr__(self) -> str:
        return f"<Illustration(index={self.index}, status={self.status.value})>"
