from enum import Enum
import logging
from typing import Any

import pydantic

from domain.agemini import (
    GeminiClient,
    block_reason,
    response_image,
    response_text,
    text_part,
    user_content,
)
from domain.models import Recipe
from domain.prompts import RECIPE_SCHEMA, CreateSweetPrompt, photo_prompt, sketch_prompt


logger = logging.getLogger(__name__)


class Model(Enum):
    GEMINI_25_FLASH = "gemini-2.5-flash"
    GEMINI_25_FLASH_IMAGE = "gemini-2.5-flash-image"


class AspectRatio(Enum):
    SQUARE = "1:1"
    LANDSCAPE = "4:3"


class GenerationError(Exception):
    pass


class ImageGenerationError(GenerationError):
    pass


def parse_recipe(text: str) -> Recipe:
    if not text or not text.strip():
        raise GenerationError("No response from AI.")
    try:
        return Recipe.model_validate_json(text)
    except pydantic.ValidationError as e:
        raise GenerationError(f"Malformed recipe from AI. {e}") from e


class LLMService:
    def __init__(
        self,
        client: GeminiClient | None = None,
        *,
        text_model: str = Model.GEMINI_25_FLASH.value,
        image_model: str = Model.GEMINI_25_FLASH_IMAGE.value,
        temperature: float = 1.0,
    ) -> None:
        self.client = GeminiClient() if client is None else client
        self.text_model = text_model
        self.image_model = image_model
        self.temperature = temperature

    async def generate_recipe(
        self,
        keywords: str,
        *,
        cost_constraint: str | None = None,
        price_constraint: str | None = None,
        previous_recipe: Recipe | None = None,
    ) -> Recipe:
        if not keywords.strip():
            raise ValueError("Provide some keywords.")

        prompt = CreateSweetPrompt(
            keywords,
            cost_constraint=cost_constraint,
            price_constraint=price_constraint,
            previous_recipe=previous_recipe,
        )
        payload: dict[str, Any] = {
            "systemInstruction": {"parts": [text_part(prompt.system_instruction)]},
            "contents": [user_content(prompt.user_prompt)],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RECIPE_SCHEMA,
                "temperature": self.temperature,
            },
        }

        logger.info(
            "%s recipe for %r", "Refining" if prompt.refining else "Creating", keywords
        )
        data = await self.client.generate_content(self.text_model, payload)

        reason = block_reason(data)
        if reason:
            raise GenerationError(f"Recipe blocked by the model: {reason}")

        return parse_recipe(response_text(data))

    async def _image(self, prompt: str, aspect_ratio: AspectRatio) -> str:
        payload: dict[str, Any] = {
            "contents": [user_content(prompt)],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": aspect_ratio.value},
            },
        }
        data = await self.client.generate_content(self.image_model, payload)

        image = response_image(data)
        if image is None:
            reason = block_reason(data)
            raise ImageGenerationError(
                f"No image generated: {reason}" if reason else "No image generated."
            )
        return image

    async def generate_image(self, prompt: str) -> str:
        """Hero photo of the finished dessert as a data URI."""
        return await self._image(photo_prompt(prompt), AspectRatio.SQUARE)

    async def generate_step_illustration(self, prompt: str) -> str:
        """Pencil sketch for a single preparation step as a data URI."""
        return await self._image(sketch_prompt(prompt), AspectRatio.LANDSCAPE)

    async def close(self) -> None:
        await self.client.close()
