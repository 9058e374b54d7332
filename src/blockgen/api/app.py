"""FastAPI application factory.

Lifespan
--------
On startup the app creates the database engine from Settings, initialises
the schema, and keeps one ObjectCache shared by every request. Each request
opens its own session and wires a fresh set of services over it.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from blockgen.api import routes
from blockgen.config import Settings, load_config
from blockgen.core.cache import ObjectCache
from blockgen.crud.database import init_db, make_engine


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Return a configured application. Settings default to load_config()."""
    settings = settings or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = make_engine(settings.db_url)
        init_db(engine)
        app.state.settings = settings
        app.state.engine = engine
        app.state.cache = ObjectCache()
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(
        title="blockgen API",
        description="Recompilation triggers, full regeneration and SCSS compiler write-back.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(routes.router)
    return app
