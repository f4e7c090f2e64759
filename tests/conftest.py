import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from domain.agemini import GeminiClient, gemini_client_factory
from domain.llm_service import ImageGenerationError, LLMService
from domain.models import LoadingState, Recipe
from domain.services import Atelier


HERO = "data:image/png;base64,aGVybw=="
SKETCH = "data:image/png;base64,c2tldGNo"


def recipe_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": "Forêt de Minuit（フォレ・ド・ミニュイ）",
        "description": "初恋の甘さと真夜中の森の静けさを閉じ込めた一皿。",
        "ingredients": ["ダークチョコレート 80g", "生クリーム 200ml", "ブラックベリー 12粒"],
        "steps": [
            {
                "instruction": "チョコレートを湯煎で溶かす。",
                "visualDescription": "Sketch of chocolate melting in a bowl over water",
            },
            {
                "instruction": "生クリームを七分立てにする。",
                "visualDescription": "Sketch of a hand whisking cream",
            },
        ],
        "costPrice": "420円",
        "sellingPrice": "1,800円",
        "imagePrompt": "A dark chocolate dome on a mossy slate, blackberries, mist",
        "flavorProfile": "ほろ苦い、ベリー、クリーミー",
    }
    payload.update(overrides)
    return payload


def text_response(text: str) -> dict[str, Any]:
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": "STOP",
            }
        ]
    }


def image_response(data: str = "aW1hZ2U=", mime: str = "image/png") -> dict[str, Any]:
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": "Voilà."},
                        {"inlineData": {"mimeType": mime, "data": data}},
                    ],
                },
                "finishReason": "STOP",
            }
        ]
    }


@pytest.fixture
def recipe() -> Recipe:
    return Recipe.model_validate(recipe_payload())


class Gemini:
    """Canned Gemini endpoint that remembers what it was asked."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def service(self, token: str = "test-key") -> LLMService:
        transport = httpx.MockTransport(self)
        client = GeminiClient(token=token, client=gemini_client_factory(transport=transport))
        return LLMService(client)


@pytest.fixture
def gemini() -> Callable[..., Gemini]:
    return Gemini


class FakeLLM:
    def __init__(
        self,
        recipe: Recipe,
        *,
        image: str = HERO,
        recipe_error: Exception | None = None,
        image_error: Exception | None = None,
        sketch_error: Exception | None = None,
        failing_sketches: tuple[str, ...] = (),
    ) -> None:
        self.recipe = recipe
        self.image = image
        self.recipe_error = recipe_error
        self.image_error = image_error
        self.sketch_error = sketch_error
        self.failing_sketches = failing_sketches
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, Any]] = []
        self.previous: list[Recipe | None] = []

    async def generate_recipe(
        self,
        keywords: str,
        *,
        cost_constraint: str | None = None,
        price_constraint: str | None = None,
        previous_recipe: Recipe | None = None,
    ) -> Recipe:
        self.calls.append(("recipe", keywords))
        self.previous.append(previous_recipe)
        if self.gate is not None:
            await self.gate.wait()
        if self.recipe_error is not None:
            raise self.recipe_error
        return self.recipe

    async def generate_image(self, prompt: str) -> str:
        self.calls.append(("image", prompt))
        if self.image_error is not None:
            raise self.image_error
        return self.image

    async def generate_step_illustration(self, prompt: str) -> str:
        self.calls.append(("sketch", prompt))
        if self.sketch_error is not None:
            raise self.sketch_error
        if prompt in self.failing_sketches:
            raise ImageGenerationError("No image generated.")
        return SKETCH

    async def close(self) -> None:
        pass


class RecordingListener:
    def __init__(self) -> None:
        self.states: list[LoadingState] = []
        self.images: list[str | None] = []
        self.names: list[str | None] = []
        self.illustrations: list[int] = []

    async def state_changed(self, atelier: Atelier) -> None:
        self.states.append(atelier.state)
        sweet = atelier.sweet
        self.images.append(sweet.image_url if sweet else None)
        self.names.append(sweet.recipe.name if sweet else None)

    async def illustration_ready(self, atelier: Atelier, index: int) -> None:
        self.illustrations.append(index)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()
