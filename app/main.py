"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes the ticket routes.

Run:
    uvicorn app.main:app --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketgen import Settings, create_service, load_settings
from ticketgen.logging_config import get_api_logger, get_service_logger

from .routes.tickets import router as tickets_router

logger = logging.getLogger("ticketgen.api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the ticket service for the lifetime of the process."""
        get_service_logger(settings.log_dir)
        get_api_logger(settings.log_dir)

        app.state.ticket_service = create_service(settings)
        report = app.state.ticket_service.health_check()
        logger.info(
            "Ticket service started: status=%s tiers=%s",
            report.status, ", ".join(report.capabilities),
        )

        yield
        await app.state.ticket_service.close()
        app.state.ticket_service = None

    app = FastAPI(title="Figma Ticket Generation API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tickets_router)

    @app.get("/health")
    async def health_check():
        """Liveness probe."""
        return {"status": "ok"}

    return app


app = create_app()
