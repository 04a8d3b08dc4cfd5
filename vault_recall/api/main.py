"""FastAPI application and server startup."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .. import __version__
from ..config.settings import Settings
from ..retrieval.orchestrator import MemoryRetriever, create_retriever
from .retrieval import router as retrieval_router


def create_app(settings: Optional[Settings] = None, retriever: Optional[MemoryRetriever] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Settings used to build a retriever when none is given
        retriever: Preconstructed retriever (tests inject one with mocks)

    Returns:
        FastAPI app exposing /api/retrieval/*
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "retriever", None) is None:
            app.state.retriever = create_retriever(settings or Settings.from_env())
        yield
        executor = app.state.retriever.executor
        if executor is not None:
            executor.close()

    app = FastAPI(
        title="Vault Recall API",
        description="Token-budgeted memory retrieval for conversational agents",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.retriever = retriever
    app.include_router(retrieval_router, prefix="/api")

    @app.get("/", response_model=dict)
    async def root():
        return {"name": "vault-recall", "version": __version__}

    return app


def run():
    """Run the development server."""
    uvicorn.run("vault_recall.api.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)


if __name__ == "__main__":
    run()
