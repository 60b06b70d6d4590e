"""
HTTP surface for the transport layer.

POST /turns is the turn-processing endpoint: one call per caller
utterance, returning the next prompt and whether to keep listening.
Converting that into TwiML, audio or a chat reply is the transport's job.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from civic_intake.api.schemas import (
    ErrorResponse,
    ServiceFieldView,
    ServiceView,
    SessionView,
    TurnRequest,
    TurnResponse,
)
from civic_intake.errors import (
    IntakeError,
    PersistenceError,
    UnknownServiceError,
)
from civic_intake.service import IntakeTurnService, build_turn_service

logger = logging.getLogger(__name__)

_STATUS_FOR_ERROR = {
    UnknownServiceError: 404,
    PersistenceError: 503,
}


def create_app(turn_service: IntakeTurnService) -> FastAPI:
    app = FastAPI(title="Civic Intake API", version="1.0.0")
    catalog = turn_service.orchestrator.catalog

    @app.exception_handler(IntakeError)
    async def _intake_error(request: Request, exc: IntakeError) -> JSONResponse:
        status = next(
            (code for cls, code in _STATUS_FOR_ERROR.items() if isinstance(exc, cls)), 500
        )
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "services": len(catalog)}

    @app.post("/turns", response_model=TurnResponse)
    def process_turn(payload: TurnRequest) -> TurnResponse:
        result = turn_service.process_turn(
            session_id=payload.session_id,
            caller_address=payload.caller_address,
            utterance=payload.utterance,
        )
        return TurnResponse(
            session_id=result.session_id,
            prompt=result.prompt,
            action=result.action,
            stage=result.stage,
            record_reference=result.record_reference,
            email_sent=result.notified,
        )

    @app.get("/sessions/{session_id}", response_model=SessionView)
    def get_session(session_id: str) -> SessionView:
        session = turn_service.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found.")
        return SessionView.model_validate(session.model_dump())

    @app.get("/services", response_model=list[ServiceView])
    def list_services() -> list[ServiceView]:
        return [
            ServiceView(
                id=svc.id,
                name=svc.name,
                description=svc.description,
                priority=svc.priority.value,
                fields=[
                    ServiceFieldView(
                        id=f.id,
                        label=f.label,
                        type=f.type.value,
                        required=f.required,
                        options=list(f.options),
                    )
                    for f in svc.fields
                ],
            )
            for svc in catalog.services()
        ]

    return app


def build_default_app(turn_service: Optional[IntakeTurnService] = None) -> FastAPI:
    """Application wired from environment settings."""
    return create_app(turn_service or build_turn_service())
