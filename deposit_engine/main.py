import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deposit_engine import __version__
from deposit_engine.core.config import get_settings
from deposit_engine.core.container import get_container
from deposit_engine.core.logging import configure_logging
from deposit_engine.infrastructure.database.session import init_db
from deposit_engine.interfaces.http.api import create_api_router
from deposit_engine.worker import run_forever

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    await init_db()

    stop = asyncio.Event()
    worker: asyncio.Task | None = None
    if settings.reconciler.run_in_app:
        worker = asyncio.create_task(run_forever(get_container().reconciler, settings.poll_interval, stop))
    yield

    stop.set()
    if worker is not None:
        await worker
    await get_container().aclose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.project_name,
        description="Deposit reconciliation engine ops API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", summary="Liveness probe")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
