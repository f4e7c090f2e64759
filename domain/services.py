import asyncio
import logging
from typing import Protocol

from domain.llm_service import LLMService
from domain.models import (
    GeneratedSweet,
    Illustration,
    IllustrationStatus,
    LoadingState,
    Recipe,
)


logger = logging.getLogger(__name__)


ILLUSTRATION_STAGGER = 1.2

GENERIC_MESSAGE = (
    "申し訳ありません。現在シェフが多忙のようです。少し時間を置いて再度お試しください。"
)

ERROR_MESSAGES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("api key is missing",),
        "APIキーが設定されていません。環境設定を確認してください。",
    ),
    (
        ("api key not valid", "api_key_invalid", "permission_denied"),
        "APIキーが無効です。環境設定を確認してください。",
    ),
    (
        ("429", "resource_exhausted", "quota"),
        "ただいまオーダーが殺到しています。少し時間を置いて再度お試しください。",
    ),
    (
        ("503", "unavailable", "overloaded"),
        "厨房が大変混み合っています。しばらくしてから再度お試しください。",
    ),
    (
        ("safety", "blocked", "prohibited"),
        "このキーワードではスイーツを考案できませんでした。別の言葉でお試しください。",
    ),
    (
        ("no response", "malformed"),
        "シェフのメモがうまく読み取れませんでした。もう一度お試しください。",
    ),
)


def user_message(error: BaseException) -> str:
    text = str(error).lower()
    for markers, message in ERROR_MESSAGES:
        if any(marker in text for marker in markers):
            return message
    return GENERIC_MESSAGE


class AtelierListener(Protocol):
    async def state_changed(self, atelier: "Atelier") -> None:
        ...

    async def illustration_ready(self, atelier: "Atelier", index: int) -> None:
        ...


class Atelier:
    """State of one tasting session: the current sweet and how far along it is.

    A session lives as long as the page that opened it. `submit` schedules a
    generation in the background so the caller can keep listening for a
    `reset`, which cancels whatever is still in flight.
    """

    def __init__(
        self,
        llm: LLMService,
        *,
        listener: AtelierListener | None = None,
        stagger: float = ILLUSTRATION_STAGGER,
    ) -> None:
        self.llm = llm
        self.listener = listener
        self.stagger = stagger
        self.state = LoadingState.idle
        self.sweet: GeneratedSweet | None = None
        self.error: str | None = None
        self.keywords = ""
        self.cost_constraint: str | None = None
        self.price_constraint: str | None = None
        self.illustrations: dict[int, Illustration] = {}
        self._task: asyncio.Task[None] | None = None
        self._illustration_tasks: set[asyncio.Task[None]] = set()

    def __repr__(self) -> str:
        return f"<Atelier(state={self.state.value}, sweet={self.sweet!r})>"

    @property
    def busy(self) -> bool:
        if self.state.busy:
            return True
        # Scheduled but not yet started.
        task = self._task
        return (
            task is not None
            and not task.done()
            and task is not asyncio.current_task()
        )

    def can_submit(self, keywords: str) -> bool:
        return bool(keywords.strip()) and not self.busy

    async def _set_state(self, state: LoadingState) -> None:
        self.state = state
        if self.listener is not None:
            await self.listener.state_changed(self)

    def submit(
        self,
        keywords: str,
        *,
        cost_constraint: str | None = None,
        price_constraint: str | None = None,
        refine: bool = False,
    ) -> asyncio.Task[None] | None:
        if not self.can_submit(keywords):
            logger.info("Ignoring submission %r while %s", keywords, self.state.value)
            return None
        previous = self.sweet.recipe if refine and self.sweet is not None else None
        self._task = asyncio.create_task(
            self.generate(
                keywords,
                cost_constraint=cost_constraint,
                price_constraint=price_constraint,
                previous_recipe=previous,
            )
        )
        return self._task

    async def generate(
        self,
        keywords: str,
        *,
        cost_constraint: str | None = None,
        price_constraint: str | None = None,
        previous_recipe: Recipe | None = None,
    ) -> None:
        if not self.can_submit(keywords):
            return

        self.keywords = keywords
        self.cost_constraint = cost_constraint or None
        self.price_constraint = price_constraint or None
        self.error = None
        await self._set_state(LoadingState.generating_recipe)

        try:
            recipe = await self.llm.generate_recipe(
                keywords,
                cost_constraint=self.cost_constraint,
                price_constraint=self.price_constraint,
                previous_recipe=previous_recipe,
            )

            self._cancel_illustrations()
            self.sweet = GeneratedSweet(recipe)
            self._illustrate(recipe)
            await self._set_state(LoadingState.generating_image)

            self.sweet.image_url = await self._plate(recipe)
            await self._set_state(LoadingState.complete)

        except Exception as e:
            logger.exception("Could not generate a sweet for %r", keywords)
            self.error = user_message(e)
            await self._set_state(LoadingState.error)

    async def _plate(self, recipe: Recipe) -> str | None:
        """Hero image; a failure here leaves the recipe without a photo."""
        try:
            return await self.llm.generate_image(recipe.image_prompt)
        except Exception as e:
            logger.warning("No hero image for %r: %s", recipe.name, e)
            return None

    def _illustrate(self, recipe: Recipe) -> None:
        self.illustrations = {}
        for index, step in enumerate(recipe.steps):
            if not step.visual_description:
                continue
            self.illustrations[index] = Illustration(index)
            task = asyncio.create_task(
                self._illustrate_step(index, step.visual_description)
            )
            self._illustration_tasks.add(task)
            task.add_done_callback(self._illustration_tasks.discard)

    async def _illustrate_step(self, index: int, prompt: str) -> None:
        await asyncio.sleep(index * self.stagger)
        illustration = self.illustrations[index]
        try:
            illustration.url = await self.llm.generate_step_illustration(prompt)
            illustration.status = IllustrationStatus.ready
        except Exception as e:
            logger.warning("No illustration for step %d: %s", index + 1, e)
            illustration.status = IllustrationStatus.failed
        if self.listener is not None:
            await self.listener.illustration_ready(self, index)

    async def illustrated(self) -> None:
        """Wait for all outstanding step illustrations."""
        if self._illustration_tasks:
            await asyncio.gather(*self._illustration_tasks, return_exceptions=True)

    def _cancel_illustrations(self) -> None:
        for task in list(self._illustration_tasks):
            task.cancel()
        self._illustration_tasks.clear()

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._cancel_illustrations()

    async def reset(self) -> None:
        self._cancel()
        self.sweet = None
        self.error = None
        self.keywords = ""
        self.cost_constraint = None
        self.price_constraint = None
        self.illustrations = {}
        await self._set_state(LoadingState.idle)

    def close(self) -> None:
        self._cancel()
