from jinja2 import Environment

from domain.models import (
    GeneratedSweet,
    Illustration,
    LoadingState,
    RecipeStep,
)
from domain.services import Atelier


class StepView:
    def __init__(
        self,
        index: int,
        step: RecipeStep,
        illustration: Illustration | None = None,
    ) -> None:
        self.index = index
        self.step = step
        self.illustration = illustration

    @property
    def number(self) -> str:
        return f"{self.index + 1:02d}"

    @property
    def instruction(self) -> str:
        return self.step.instruction

    @property
    def sketch(self) -> str | None:
        if self.illustration is None:
            return None
        return self.illustration.status.value


class Showcase:
    """The sweet as it currently stands, ready for `showcase.html`."""

    def __init__(
        self,
        atelier: Atelier,
        *,
        environment: Environment,
        template_name: str = "showcase.html",
    ) -> None:
        self.atelier = atelier
        self.env = environment
        self.name = template_name

    @property
    def sweet(self) -> GeneratedSweet | None:
        return self.atelier.sweet

    @property
    def plating(self) -> bool:
        return self.atelier.state == LoadingState.generating_image

    @property
    def steps(self) -> list[StepView]:
        if self.sweet is None:
            return []
        return [
            StepView(i, step, self.atelier.illustrations.get(i))
            for i, step in enumerate(self.sweet.recipe.steps)
        ]

    def step(self, index: int) -> StepView:
        return self.steps[index]

    def render(self, oob: bool = False) -> str:
        return self.env.get_template(self.name).render(showcase=self, oob=oob)

    def render_step(self, index: int) -> str:
        return self.env.get_template("step-illustration.html").render(
            step=self.step(index), step_oob=True
        )


class Page:
    """The out-of-band fragments that follow a change of state."""

    def __init__(self, atelier: Atelier, *, environment: Environment) -> None:
        self.atelier = atelier
        self.env = environment

    @property
    def busy(self) -> bool:
        return self.atelier.busy

    @property
    def keywords(self) -> str:
        return self.atelier.keywords

    def render(self, oob: bool = True) -> str:
        showcase = Showcase(self.atelier, environment=self.env)
        return "".join(
            [
                self.env.get_template("order-form.html").render(page=self, oob=oob),
                self.env.get_template("status.html").render(
                    state=self.atelier.state.value, oob=oob
                ),
                self.env.get_template("error.html").render(
                    error=self.atelier.error, oob=oob
                ),
                showcase.render(oob=oob),
            ]
        )
