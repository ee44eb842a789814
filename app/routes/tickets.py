"""Ticket generation API endpoints.

POST /api/v1/tickets/generate  generate a ticket from a Figma selection
GET  /api/v1/tickets/health    component health report
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ticketgen import TicketGenerationService, ValidationError
from ticketgen.models import GenerationResult, HealthReport

logger = logging.getLogger("ticketgen.api.tickets")

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])


def get_ticket_service(request: Request) -> TicketGenerationService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not initialized")
    return service


@router.post("/generate", response_model=GenerationResult)
async def generate_ticket(
    payload: Dict[str, Any] = Body(...),
    service: TicketGenerationService = Depends(get_ticket_service),
):
    """Generate a ticket. Validation failures return 422 with the offending fields."""
    try:
        result = await service.generate_ticket(payload)
    except ValidationError as e:
        logger.info("Rejected generation request: %s", e)
        raise HTTPException(status_code=422, detail={"message": str(e), "fields": e.fields})

    logger.info(
        "Ticket generated: strategy=%s degraded=%s cached=%s chars=%d",
        result.metadata.strategy_used, result.metadata.degraded,
        result.metadata.cached, len(result.content),
    )
    return result


@router.get("/health", response_model=HealthReport)
async def tickets_health(service: TicketGenerationService = Depends(get_ticket_service)):
    return service.health_check()
