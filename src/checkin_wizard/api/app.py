"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from checkin_wizard.api.checkin import router as checkin_router
from checkin_wizard.api.models import CheckUserRequest
from checkin_wizard.app_logging import configure_logging
from checkin_wizard.containers import AppContainer, build_session
from checkin_wizard.domain.steps import Step
from checkin_wizard.services.user_lookup import LookupRoute


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Check-in wizard started against %s",
            app.state.container.settings.backend_base_url,
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(checkin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/check-user")
    async def check_user(body: CheckUserRequest, request: Request) -> JSONResponse:
        """Route a visitor to a new, pre-filled or already completed check-in."""
        state_container: AppContainer = request.app.state.container
        try:
            decision = await state_container.user_lookup_service.lookup(body.phone)
        except httpx.HTTPError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="An error occurred. Please try again.",
            ) from exc
        session = build_session(state_container, request.cookies, Step.first())
        if decision.route is not LookupRoute.ALREADY_CHECKED_IN:
            session.data_manager.ensure_document_for_phone(decision.phone)
        if decision.route is LookupRoute.RESUME_EXISTING:
            session.data_manager.merge_session_data(decision.prefill())
        content = {
            "route": decision.route,
            "nextUrl": decision.next_url,
            **decision.lookup.model_dump(by_alias=True),
        }
        response = JSONResponse(jsonable_encoder(content))
        session.store.apply_to_response(response)
        return response

    return app
