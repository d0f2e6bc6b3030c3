"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_relay import __version__
from chat_relay.config import settings
from chat_relay.services.upstream_service import close_upstream_client

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Chat relay starting (%s), upstream: %s", settings.APP_ENV, settings.API_URL)
    yield
    # Shutdown: close the upstream connection pool
    await close_upstream_client()
    logger.info("Chat relay stopped")


app = FastAPI(
    title="Chat Relay API",
    description="Streams replies from the generation backend to chat clients",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: restrict once the frontend origin is fixed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routes ---
from chat_relay.api.routes import chat  # noqa: E402

app.include_router(chat.router, prefix="/api/chat", tags=["chat"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}


def run():
    """Start the uvicorn server (python -m chat_relay.main)."""
    import uvicorn

    uvicorn.run("chat_relay.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)


if __name__ == "__main__":
    run()
