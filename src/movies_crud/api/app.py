"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from movies_crud.api.auth import router as auth_router
from movies_crud.api.dependencies import get_container
from movies_crud.api.movies import router as movies_router
from movies_crud.api.playlists import router as playlists_router
from movies_crud.api.profiles import router as profiles_router
from movies_crud.app_logging import configure_logging
from movies_crud.containers import AppContainer
from movies_crud.services.auth_state import SessionSnapshot


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        reconciler = state_container.reconciler
        await reconciler.start()
        unsubscribe = state_container.auth_gateway.subscribe(
            reconciler.submit_threadsafe
        )
        await reconciler.bootstrap()
        logger.info("Session reconciler started")
        yield
        unsubscribe()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(auth_router)
    app.include_router(movies_router)
    app.include_router(playlists_router)
    app.include_router(profiles_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the current session snapshot without tokens."""
        return _session_payload(state_container.session_store.snapshot)

    return app


def _session_payload(snapshot: SessionSnapshot) -> dict[str, object]:
    identity = snapshot.identity
    return {
        "state": str(snapshot.state),
        "loading": snapshot.loading,
        "identity": (
            {
                "id": str(identity.id),
                "email": identity.email,
                "email_confirmed": identity.email_confirmed,
            }
            if identity
            else None
        ),
        "profile": snapshot.profile,
        "profile_state": str(snapshot.profile_state),
        "display_name": snapshot.display_name,
        "error": snapshot.error,
    }
