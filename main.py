import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from adapters.entry.http.history_router import router as history_router
from adapters.entry.ws.price_stream_router import router as price_stream_router
from config.settings import settings
from workers.price_feed_supervisor import PriceFeedSupervisor


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = PriceFeedSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logging.getLogger(__name__).info("Starting api-price-feed (lifespan startup)...")

    await supervisor.start()
    app.state.db = supervisor.db
    app.state.lifecycle = supervisor.lifecycle
    app.state.allowed_origins = settings.ALLOWED_ORIGINS

    try:
        yield
    finally:
        # uvicorn turns SIGINT/SIGTERM into this teardown, so the final flush runs on signals too
        logging.getLogger(__name__).info("Shutting down api-price-feed (lifespan shutdown)...")
        await supervisor.stop()


app = FastAPI(title="api-price-feed", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["GET"],
)

app.include_router(history_router)
app.include_router(price_stream_router)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
