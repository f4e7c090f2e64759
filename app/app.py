import asyncio
import contextlib
import functools
import logging
from typing import Any, Awaitable, Callable

from jinja2 import Environment, FileSystemLoader, select_autoescape
from rich.logging import RichHandler
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Mount, Route, WebSocketRoute
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket, WebSocketDisconnect

from app import config
from app.html.showcase import Page, Showcase
from domain.agemini import GeminiClient
from domain.llm_service import LLMService
from domain.services import Atelier


logger = logging.getLogger(__name__)


CONFIG = config.Config()


TEMPLATES = Environment(
    loader=FileSystemLoader(CONFIG.html_dir),
    autoescape=select_autoescape(),
)


def setup_logging(level: str = CONFIG.log_level) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def llm_service_factory() -> LLMService:
    client = GeminiClient(token=CONFIG.api_key or None, timeout=CONFIG.timeout)
    if not client.token:
        logger.warning("No API_KEY set. Every order will fail.")
    return LLMService(
        client,
        text_model=CONFIG.text_model,
        image_model=CONFIG.image_model,
        temperature=CONFIG.temperature,
    )


@contextlib.asynccontextmanager
async def lifespan(app: Starlette):
    setup_logging()
    app.state.llm = app.state.llm_factory()
    app.state.illustration_stagger = CONFIG.illustration_stagger
    yield
    await app.state.llm.close()


def aHTMLResponse(route: Callable[..., Awaitable[str | tuple[str, int]]]):
    @functools.wraps(route)
    async def wrapper(*args: Any, **kwargs: Any) -> HTMLResponse:
        resp = await route(*args, **kwargs)
        if not isinstance(resp, tuple):
            html, code = resp, 200
        else:
            html, code = resp
        return HTMLResponse(html, status_code=code)

    return wrapper


class AtelierSocket:
    """Pushes the atelier's changes down the websocket as htmx oob swaps."""

    def __init__(self, ws: WebSocket, *, environment: Environment) -> None:
        self.ws = ws
        self.env = environment
        self._lock = asyncio.Lock()

    async def send(self, html: str) -> None:
        async with self._lock:
            await self.ws.send_text(html)

    async def state_changed(self, atelier: Atelier) -> None:
        await self.send(Page(atelier, environment=self.env).render())

    async def illustration_ready(self, atelier: Atelier, index: int) -> None:
        await self.send(Showcase(atelier, environment=self.env).render_step(index))


@aHTMLResponse
async def homepage(request: Request) -> str:
    atelier = Atelier(request.app.state.llm)
    page = Page(atelier, environment=TEMPLATES)
    return TEMPLATES.get_template("index.html").render(page=page)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def _field(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    return value.strip() if isinstance(value, str) else ""


async def atelier_ws(ws: WebSocket) -> None:
    """One tasting session per page. Orders come in as htmx `ws-send` forms."""
    await ws.accept()
    listener = AtelierSocket(ws, environment=TEMPLATES)
    atelier = Atelier(
        ws.app.state.llm,
        listener=listener,
        stagger=ws.app.state.illustration_stagger,
    )

    try:
        while True:
            data = await ws.receive_json()
            if not isinstance(data, dict):
                logger.warning("Unexpected message: %r", data)
                continue
            match data.get("action") or "generate":
                case "reset":
                    await atelier.reset()
                case "generate" | "refine" as action:
                    atelier.submit(
                        _field(data, "keywords"),
                        cost_constraint=_field(data, "cost") or None,
                        price_constraint=_field(data, "price") or None,
                        refine=action == "refine",
                    )
                case action:
                    logger.warning("Unsupported action: %r", action)
    except WebSocketDisconnect:
        logger.debug("Session closed.")
    finally:
        atelier.close()


app = Starlette(
    debug=True if CONFIG.env == config.Env.local else False,
    routes=[
        Route("/", homepage),
        Route("/health", health),
        WebSocketRoute("/atelier", atelier_ws),
        Mount("/assets", StaticFiles(directory=CONFIG.assets_dir, check_dir=False)),
    ],
    lifespan=lifespan,
)
app.state.llm_factory = llm_service_factory


def main() -> None:
    import uvicorn

    uvicorn.run("app.app:app", host=CONFIG.host, port=CONFIG.port)


if __name__ == "__main__":
    main()
