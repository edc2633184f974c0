import asyncio
import contextlib
import functools
import json
import logging
from typing import Any, Awaitable, Callable

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

import config
from data import NetworkError, RemoteRecipeSource
from db import LocalStore, StorageError
from domain.repository import PartialInsertError, RecipeRepository, SeedStatus
from domain.services import online_mode_reader, read_settings, save_settings
from preferences import Preferences


logger = logging.getLogger(__name__)


def aJSONResponse(route: Callable[..., Awaitable[Any | tuple[Any, int]]]):
    @functools.wraps(route)
    async def wrapper(*args: Any, **kwargs: Any) -> JSONResponse:
        resp = await route(*args, **kwargs)
        if not isinstance(resp, tuple):
            content, code = resp, 200
        else:
            content, code = resp
        return JSONResponse(content, status_code=code)

    return wrapper


def error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=status_code)

    return handler


@aJSONResponse
async def recipes(request: Request) -> Any:
    match request.query_params.get("mode"):
        case None:
            online = None
        case "online":
            online = True
        case "offline":
            online = False
        case mode:
            return {"error": f"Unknown mode: {mode}"}, 400
    repo: RecipeRepository = request.app.state.repo
    found = await repo.get_recipes(online=online)
    return [r.to_dict() for r in found]


@aJSONResponse
async def seed(request: Request) -> Any:
    repo: RecipeRepository = request.app.state.repo
    result = await repo.seed_local_from_remote()
    code = 201 if result.status == SeedStatus.SEEDED else 200
    return {"status": result.status.value, "count": result.count}, code


@aJSONResponse
async def settings(request: Request) -> Any:
    preferences: Preferences = request.app.state.preferences
    key: str = request.app.state.config.online_mode_key
    match request.method.lower():
        case "get":
            return read_settings(preferences, key)._asdict()
        case "put":
            try:
                body = await request.json()
            except json.JSONDecodeError:
                return {"error": "Body is not JSON."}, 422
            online_mode = body.get("online_mode") if isinstance(body, dict) else None
            if not isinstance(online_mode, bool):
                return {"error": "online_mode must be true or false."}, 422
            saved = await asyncio.to_thread(
                save_settings, preferences, online_mode=online_mode, key=key
            )
            return saved._asdict()
        case _:
            raise ValueError("Unsupported method.")


def create_app(
    cfg: config.Config | None = None,
    *,
    remote: RemoteRecipeSource | None = None,
    store: LocalStore | None = None,
    preferences: Preferences | None = None,
) -> Starlette:
    cfg = config.Config() if cfg is None else cfg
    remote = (
        RemoteRecipeSource(cfg.recipes_url, timeout=cfg.http_timeout)
        if remote is None
        else remote
    )
    store = LocalStore(cfg.db_url) if store is None else store
    preferences = (
        Preferences(cfg.preferences_path) if preferences is None else preferences
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        async with contextlib.AsyncExitStack() as stack:
            stack.push_async_callback(remote.aclose)
            stack.push_async_callback(store.close)
            await store.initialize()
            yield

    app = Starlette(
        debug=True if cfg.env == config.Env.local else False,
        routes=[
            Route("/recipes", recipes, methods=["GET"]),
            Route("/recipes/seed", seed, methods=["POST"]),
            Route("/settings", settings, methods=["GET", "PUT"]),
        ],
        exception_handlers={
            NetworkError: error_handler(502),
            StorageError: error_handler(503),
            PartialInsertError: error_handler(500),
        },
        lifespan=lifespan,
    )

    app.state.config = cfg
    app.state.preferences = preferences
    app.state.repo = RecipeRepository(
        remote,
        store,
        online_mode=online_mode_reader(preferences, cfg.online_mode_key),
    )
    return app


CONFIG = config.Config()
config.configure_logging(CONFIG.log_level)


app = create_app(CONFIG)
