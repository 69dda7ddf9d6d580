"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schema_assistant.config import get_settings
from schema_assistant.db.session import init_storage
from schema_assistant.routers import chat, diagram, suggestions

logger = logging.getLogger(__name__)


def _prepare_storage() -> None:
    """Create the key-value table at process start when it is missing."""

    try:
        init_storage()
    except Exception:
        logger.exception("Storage warm-up failed; chat state falls back to memory on first use.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _prepare_storage()
    yield


app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(diagram.router, tags=["diagram"])
app.include_router(suggestions.router, tags=["suggestions"])
app.include_router(chat.router, tags=["chat"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
